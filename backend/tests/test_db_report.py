"""
数据库健康报告脚本测试
"""

import json
from datetime import datetime, timedelta
from unittest.mock import MagicMock

import pytest

from core import pg_queries
from scripts.db_report import EXIT_CODES, build_report, format_report, parse_args
from core.database import async_session
from core.health_checker import HealthStatus
from models import SystemLog


class TestDbReport:
    """报告脚本测试"""

    def test_parse_args(self):
        args = parse_args(["--large-tables", "5", "--unused-indexes", "--json"])
        assert args.large_tables == 5
        assert args.unused_indexes is True
        assert args.json is True

    def test_default_args(self):
        args = parse_args([])
        assert args.large_tables == 0
        assert args.unused_indexes is False
        assert args.json is False

    def test_exit_codes(self):
        assert EXIT_CODES[HealthStatus.HEALTHY] == 0
        assert EXIT_CODES[HealthStatus.DEGRADED] == 1
        assert EXIT_CODES[HealthStatus.CRITICAL] == 2

    @pytest.mark.asyncio
    async def test_build_report(self, monitor):
        """测试完整报告"""
        report = await build_report(monitor, large_tables=1, unused_indexes=True)

        assert report["health"]["status"] == "healthy"
        assert len(report["large_tables"]) == 1
        assert report["unused_indexes"][0]["index_name"] == "ix_listings_color"
        json.dumps(report)

    @pytest.mark.asyncio
    async def test_health_only_report(self, monitor):
        """测试只做健康检查"""
        report = await build_report(monitor)
        assert set(report) == {"health"}

    @pytest.mark.asyncio
    async def test_format_report(self, monitor):
        """测试文本报告"""
        text = format_report(await build_report(monitor, large_tables=2, unused_indexes=True))

        assert "数据库状态: healthy" in text
        assert "public.listings" in text
        assert "ix_listings_color" in text

    @pytest.mark.asyncio
    async def test_format_critical_report(self, monitor, executor):
        """测试失败时的文本报告"""
        executor.fail(pg_queries.DATABASE_SIZE, RuntimeError("permission denied"))

        text = format_report(await build_report(monitor))

        assert "数据库状态: critical" in text
        assert "permission denied" in text

    @pytest.mark.asyncio
    async def test_report_counts_recent_alerts(self, monitor, db_session):
        """测试报告包含最近 1 小时的告警条数"""
        now = datetime.now()
        db_session.add_all([
            SystemLog(level="WARNING", module="DatabaseMonitor", action="PERFORMANCE_ALERT",
                      message="Database alert: SLOW_QUERY", created_at=now - timedelta(minutes=20)),
            SystemLog(level="WARNING", module="DatabaseMonitor", action="PERFORMANCE_ALERT",
                      message="Database alert: SLOW_QUERY", created_at=now - timedelta(hours=5)),
        ])
        await db_session.commit()

        report = await build_report(monitor, session_factory=async_session)

        assert report["recent_alerts"] == 1
        assert "最近 1 小时告警: 1 条" in format_report(report)

    @pytest.mark.asyncio
    async def test_alert_count_failure_is_skipped(self, monitor, caplog):
        """测试告警读取失败时报告不含该项"""
        factory = MagicMock(side_effect=RuntimeError("db down"))

        report = await build_report(monitor, session_factory=factory)

        assert "recent_alerts" not in report
        assert "读取告警记录失败" in caplog.text
