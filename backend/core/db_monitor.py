"""
数据库监控器
组合查询统计、告警分发、探测、健康检查与诊断报告，对外提供统一入口

不提供全局单例：由应用启动时显式创建，并注入到查询钩子和路由中
"""

import time
import logging
from typing import Any, Callable, Dict, List, Optional, Union

from sqlalchemy.ext.asyncio import AsyncEngine

from .alerting import AlertDispatcher, AlertSink, AlertType, DEFAULT_COOLDOWN_SECONDS
from .alert_sink import LoggingAlertSink
from .config import Settings, get_settings
from .diagnostics import DiagnosticScanners, LargeTable, UnusedIndex, DEFAULT_LARGE_TABLE_LIMIT
from .health_checker import HealthAggregator, HealthVerdict
from .probes import ConnectionProbe, DatabaseInfoProbe
from .query_executor import QueryExecutor, SQLAlchemyQueryExecutor
from .query_stats import QueryStats, QueryStatsTracker
from .thresholds import ThresholdConfig

logger = logging.getLogger(__name__)


class DatabaseMonitor:
    """数据库健康与告警监控器"""

    def __init__(
        self,
        executor: QueryExecutor,
        thresholds: Optional[ThresholdConfig] = None,
        sink: Optional[AlertSink] = None,
        enabled: bool = True,
        alert_cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS,
        clock: Callable[[], float] = time.monotonic
    ):
        self.thresholds = thresholds or ThresholdConfig()
        self.dispatcher = AlertDispatcher(
            sink or LoggingAlertSink(),
            cooldown_seconds=alert_cooldown_seconds,
            clock=clock
        )
        self.tracker = QueryStatsTracker(
            self.thresholds,
            alert_callback=self.dispatcher.send_alert,
            enabled=enabled
        )
        self.connection_probe = ConnectionProbe(executor)
        self.info_probe = DatabaseInfoProbe(executor, self.connection_probe)
        self.health = HealthAggregator(
            executor,
            self.connection_probe,
            self.info_probe,
            self.tracker,
            self.thresholds,
            dispatcher=self.dispatcher
        )
        self.scanners = DiagnosticScanners(executor)

    @classmethod
    def from_settings(
        cls,
        engine: AsyncEngine,
        settings: Optional[Settings] = None,
        sink: Optional[AlertSink] = None
    ) -> "DatabaseMonitor":
        """根据系统配置创建监控器"""
        settings = settings or get_settings()
        monitor = cls(
            SQLAlchemyQueryExecutor(engine, timeout=settings.probe_timeout_seconds),
            thresholds=ThresholdConfig.from_settings(settings),
            sink=sink,
            enabled=settings.db_monitoring_enabled,
            alert_cooldown_seconds=settings.alert_cooldown_seconds
        )
        logger.info(
            f"数据库监控已{'启用' if settings.db_monitoring_enabled else '禁用'}"
            f"（慢查询 {settings.query_slow_ms}ms / 严重 {settings.query_critical_ms}ms）"
        )
        return monitor

    @property
    def enabled(self) -> bool:
        return self.tracker.enabled

    def track_query(self, model: str, operation: str, duration_ms: float, success: bool) -> None:
        """查询钩子入口：每条查询完成后调用一次"""
        self.tracker.track_query(model, operation, duration_ms, success)

    async def check_health(self) -> HealthVerdict:
        return await self.health.check_health()

    def get_query_stats(self) -> QueryStats:
        return self.tracker.snapshot()

    def reset_stats(self) -> None:
        self.tracker.reset()

    def send_alert(self, alert_type: Union[AlertType, str], data: Dict[str, Any]) -> bool:
        return self.dispatcher.send_alert(alert_type, data)

    async def find_large_tables(self, limit: int = DEFAULT_LARGE_TABLE_LIMIT) -> List[LargeTable]:
        return await self.scanners.find_large_tables(limit)

    async def find_unused_indexes(self) -> List[UnusedIndex]:
        return await self.scanners.find_unused_indexes()
