"""
健康历史记录测试
"""

from datetime import datetime, timedelta

import pytest
from unittest.mock import MagicMock
from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from core.database import Base, async_session
from core.health_checker import HealthStatus, HealthVerdict
from core.health_history import METRIC_TYPE, cleanup_old_metrics, record_health_snapshot, verdict_to_metrics
from core.instrumentation import install_query_hooks, remove_query_hooks
from models import PerformanceMetric


class TestVerdictToMetrics:
    """健康结果拆分测试"""

    @pytest.mark.asyncio
    async def test_full_verdict(self, monitor):
        """测试完整结果生成全部指标"""
        verdict = await monitor.check_health()
        metrics = {m.metric_name: m for m in verdict_to_metrics(verdict)}

        assert set(metrics) == {
            "status_score", "connection_latency_ms", "active_connections",
            "size_bytes", "cache_hit_ratio", "error_rate",
        }
        assert metrics["status_score"].value == 1.0
        assert metrics["active_connections"].value == 3
        assert metrics["size_bytes"].unit == "bytes"
        assert all(m.metric_type == METRIC_TYPE for m in metrics.values())
        assert metrics["error_rate"].extra_metadata["status"] == "healthy"

    def test_critical_verdict_only_has_score(self):
        """测试失败结果只记录状态分"""
        verdict = HealthVerdict(status=HealthStatus.CRITICAL, details={"error": "boom"})
        metrics = verdict_to_metrics(verdict)

        assert len(metrics) == 1
        assert metrics[0].metric_name == "status_score"
        assert metrics[0].value == 0.0


class TestRecordHealthSnapshot:
    """健康快照测试"""

    @pytest.mark.asyncio
    async def test_snapshot_is_saved(self, monitor, db_session):
        """测试快照写入 sys_metrics"""
        verdict = await record_health_snapshot(monitor, session_factory=async_session)

        assert verdict.status == HealthStatus.HEALTHY
        result = await db_session.execute(select(PerformanceMetric))
        rows = result.scalars().all()
        assert len(rows) == 6
        assert {r.metric_name for r in rows} >= {"status_score", "size_bytes"}

    @pytest.mark.asyncio
    async def test_save_failure_still_returns_verdict(self, monitor, caplog):
        """测试保存失败不影响健康检查结果"""
        factory = MagicMock(side_effect=RuntimeError("db down"))

        verdict = await record_health_snapshot(monitor, session_factory=factory)

        assert verdict.status == HealthStatus.HEALTHY
        assert "保存数据库健康指标失败" in caplog.text

    @pytest.mark.asyncio
    async def test_snapshot_writes_are_not_tracked(self, monitor):
        """测试快照写入不计入查询统计"""
        engine = create_async_engine("sqlite+aiosqlite://")
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        hooks = install_query_hooks(engine, monitor)
        factory = async_sessionmaker(engine, expire_on_commit=False)

        try:
            await record_health_snapshot(monitor, session_factory=factory)

            assert monitor.get_query_stats().total_queries == 0
            async with factory() as db:
                result = await db.execute(select(PerformanceMetric))
                assert len(result.scalars().all()) == 6
        finally:
            remove_query_hooks(engine, hooks)
            await engine.dispose()


class TestMetricsRetention:
    """健康指标保留测试"""

    @staticmethod
    def old_metric(metric_type=METRIC_TYPE, hours=200):
        return PerformanceMetric(
            metric_type=metric_type,
            metric_name="status_score",
            value=1.0,
            created_at=datetime.now() - timedelta(hours=hours)
        )

    @pytest.mark.asyncio
    async def test_snapshot_removes_expired_metrics(self, monitor, db_session):
        """测试保存快照时清理过期的健康指标"""
        db_session.add_all([self.old_metric(), self.old_metric(hours=2), self.old_metric("other")])
        await db_session.commit()

        await record_health_snapshot(monitor, session_factory=async_session, retention_hours=168)

        result = await db_session.execute(select(PerformanceMetric))
        rows = result.scalars().all()
        assert len(rows) == 6 + 2
        assert sum(1 for r in rows if r.metric_type == "other") == 1

    @pytest.mark.asyncio
    async def test_zero_retention_keeps_everything(self, monitor, db_session):
        """测试保留时长为 0 时不清理"""
        db_session.add(self.old_metric(hours=24 * 365))
        await db_session.commit()

        await record_health_snapshot(monitor, session_factory=async_session, retention_hours=0)

        result = await db_session.execute(select(PerformanceMetric))
        assert len(result.scalars().all()) == 7

    @pytest.mark.asyncio
    async def test_cleanup_returns_deleted_count(self, db_session):
        """测试清理返回删除条数"""
        db_session.add_all([self.old_metric(), self.old_metric(hours=300), self.old_metric(hours=1)])
        await db_session.commit()

        assert await cleanup_old_metrics(db_session, hours=168) == 2
        await db_session.commit()
