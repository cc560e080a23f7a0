"""
健康检查模块测试
"""

import pytest

from core import pg_queries
from core.health_checker import HealthStatus, classify
from core.thresholds import MB


class SteppingClock:
    """每次读取前进固定秒数"""

    def __init__(self, step: float):
        self.step = step
        self.now = 0.0

    def __call__(self) -> float:
        self.now += self.step
        return self.now


class TestClassify:
    """健康状态判定测试"""

    def test_all_passed(self):
        assert classify({"a": True, "b": True, "c": True, "d": True}) == HealthStatus.HEALTHY

    def test_three_of_four(self):
        assert classify({"a": True, "b": True, "c": True, "d": False}) == HealthStatus.DEGRADED

    def test_two_of_four(self):
        assert classify({"a": True, "b": True, "c": False, "d": False}) == HealthStatus.CRITICAL

    def test_ratio_independent_of_check_count(self):
        """测试按比例判定"""
        eight = {str(i): i != 0 and i != 1 for i in range(8)}  # 6/8
        assert classify(eight) == HealthStatus.DEGRADED


class TestHealthAggregator:
    """综合健康检查测试"""

    @pytest.mark.asyncio
    async def test_healthy(self, monitor):
        """测试全部通过"""
        monitor.health._clock = SteppingClock(0.05)  # 存活查询 50ms

        verdict = await monitor.check_health()

        assert verdict.status == HealthStatus.HEALTHY
        assert verdict.checks == {
            "connection": True,
            "connections": True,
            "db_size": True,
            "error_rate": True,
        }
        assert verdict.details["connection_latency_ms"] == pytest.approx(50, abs=0.01)
        assert verdict.details["connections"]["active"] == 3
        assert verdict.details["database_info"]["size_pretty"] == "100 MB"
        assert verdict.details["error_rate"] == 0
        assert "checked_at" in verdict.details

    @pytest.mark.asyncio
    async def test_slow_liveness_degrades(self, monitor):
        """测试存活延迟超过 1 秒"""
        monitor.health._clock = SteppingClock(1.2)

        verdict = await monitor.check_health()

        assert verdict.checks["connection"] is False
        assert verdict.status == HealthStatus.DEGRADED

    @pytest.mark.asyncio
    async def test_degraded_by_connections(self, monitor, executor):
        """测试活跃连接达到警告阈值"""
        executor.responses[pg_queries.CONNECTION_STATES] = [{"state": "active", "count": 15}]

        verdict = await monitor.check_health()

        assert verdict.checks["connections"] is False
        assert verdict.status == HealthStatus.DEGRADED

    @pytest.mark.asyncio
    async def test_critical_when_two_checks_fail(self, monitor, executor):
        """测试两项未通过判定为 critical"""
        executor.responses[pg_queries.CONNECTION_STATES] = [{"state": "active", "count": 16}]
        executor.responses[pg_queries.DATABASE_SIZE] = [{"size_bytes": 600 * MB, "size_pretty": "600 MB"}]

        verdict = await monitor.check_health()

        assert verdict.status == HealthStatus.CRITICAL
        assert verdict.checks["connections"] is False
        assert verdict.checks["db_size"] is False

    @pytest.mark.asyncio
    async def test_error_rate_check(self, monitor):
        """测试错误率达到警告阈值"""
        for _ in range(19):
            monitor.track_query("t", "SELECT", 5, True)
        monitor.track_query("t", "SELECT", 5, False)  # 5%

        verdict = await monitor.check_health()

        assert verdict.checks["error_rate"] is False
        assert verdict.details["error_rate"] == pytest.approx(0.05)
        assert verdict.status == HealthStatus.DEGRADED

    @pytest.mark.asyncio
    async def test_info_probe_failure_is_critical(self, monitor, executor):
        """测试数据库信息查询失败直接判定为 critical"""
        executor.fail(pg_queries.OBJECT_COUNTS, RuntimeError("relation does not exist"))

        verdict = await monitor.check_health()

        assert verdict.status == HealthStatus.CRITICAL
        assert verdict.checks == {}
        assert "relation does not exist" in verdict.details["error"]

    @pytest.mark.asyncio
    async def test_liveness_failure_is_critical(self, monitor, executor):
        """测试存活查询失败"""
        executor.fail(pg_queries.LIVENESS, ConnectionError("connection refused"))

        verdict = await monitor.check_health()

        assert verdict.status == HealthStatus.CRITICAL
        assert verdict.details == {"error": "connection refused"}

    @pytest.mark.asyncio
    async def test_connection_probe_failure_is_not_fatal(self, monitor, executor):
        """测试连接统计失败时按零连接处理"""
        executor.fail(pg_queries.CONNECTION_STATES)

        verdict = await monitor.check_health()

        assert verdict.status == HealthStatus.HEALTHY
        assert verdict.details["connections"]["total"] == 0

    @pytest.mark.asyncio
    async def test_critical_threshold_alerts(self, monitor, executor, sink):
        """测试连接数和数据库大小达到严重阈值时告警"""
        executor.responses[pg_queries.CONNECTION_STATES] = [{"state": "active", "count": 20}]
        executor.responses[pg_queries.DATABASE_SIZE] = [{"size_bytes": 1000 * MB, "size_pretty": "1000 MB"}]

        await monitor.check_health()
        await monitor.check_health()

        # 第二次检查在冷却窗口内被抑制
        assert sink.types() == ["CRITICAL_CONNECTION_COUNT", "CRITICAL_DATABASE_SIZE"]
        assert sink.records[0]["metadata"] == {"active": 20, "threshold": 20}
        assert sink.records[1]["metadata"]["size_pretty"] == "1000 MB"

    @pytest.mark.asyncio
    async def test_verdict_to_dict(self, monitor):
        """测试结果导出"""
        data = (await monitor.check_health()).to_dict()
        assert data["status"] == "healthy"
        assert set(data) == {"status", "checks", "details"}
