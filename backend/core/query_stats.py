"""
查询统计
每条数据库查询完成后调用 track_query，实时维护计数、平均耗时，
识别慢查询并在超过阈值时触发告警
"""

import logging
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from .alerting import AlertType
from .thresholds import ThresholdConfig

logger = logging.getLogger(__name__)

AlertCallback = Callable[[AlertType, Dict[str, Any]], Any]


@dataclass
class QueryStats:
    """查询统计计数"""
    total_queries: int = 0
    successful_queries: int = 0
    failed_queries: int = 0
    slow_queries: int = 0
    avg_duration_ms: float = 0.0
    last_reset: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def error_rate(self) -> float:
        if self.total_queries == 0:
            return 0.0
        return self.failed_queries / self.total_queries

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_queries": self.total_queries,
            "successful_queries": self.successful_queries,
            "failed_queries": self.failed_queries,
            "slow_queries": self.slow_queries,
            "avg_duration_ms": round(self.avg_duration_ms, 2),
            "error_rate": round(self.error_rate, 4),
            "last_reset": self.last_reset.isoformat(),
        }


class QueryStatsTracker:
    """
    查询统计跟踪器

    计数更新在锁内完成，告警回调在锁外执行，
    避免告警接收端变慢时阻塞其他查询线程
    """

    def __init__(
        self,
        thresholds: ThresholdConfig,
        alert_callback: Optional[AlertCallback] = None,
        enabled: bool = True
    ):
        self._thresholds = thresholds
        self._alert_callback = alert_callback
        self._enabled = enabled
        self._stats = QueryStats()
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        with self._lock:
            return self._enabled

    @enabled.setter
    def enabled(self, value: bool):
        with self._lock:
            self._enabled = bool(value)

    @property
    def error_rate(self) -> float:
        """当前错误率（尚无查询时为 0）"""
        stats = self._stats
        total, failed = stats.total_queries, stats.failed_queries
        return failed / total if total else 0.0

    def track_query(self, model: str, operation: str, duration_ms: float, success: bool) -> None:
        """
        记录一次已完成的查询

        旁路观测，任何内部错误只记录日志，不影响调用方的数据库操作
        """
        try:
            alerts = self._record(model, operation, float(duration_ms), bool(success))
        except Exception as e:
            logger.error(f"记录查询统计失败 {model}.{operation}: {e}")
            return

        for alert_type, data in alerts:
            self._dispatch(alert_type, data)

    def _record(
        self,
        model: str,
        operation: str,
        duration_ms: float,
        success: bool
    ) -> List[Tuple[AlertType, Dict[str, Any]]]:
        alerts: List[Tuple[AlertType, Dict[str, Any]]] = []
        thresholds = self._thresholds

        with self._lock:
            if not self._enabled:
                return alerts

            stats = self._stats
            stats.total_queries += 1
            if success:
                stats.successful_queries += 1
            else:
                stats.failed_queries += 1

            n = stats.total_queries
            stats.avg_duration_ms = (stats.avg_duration_ms * (n - 1) + duration_ms) / n

            # 严重慢查询优先，同一条查询只计一次
            if duration_ms > thresholds.query_critical_ms:
                stats.slow_queries += 1
                alerts.append((AlertType.CRITICAL_SLOW_QUERY, {
                    "model": model,
                    "operation": operation,
                    "duration_ms": duration_ms,
                    "threshold": thresholds.query_critical_ms,
                }))
            elif duration_ms > thresholds.query_slow_ms:
                stats.slow_queries += 1
                logger.warning(f"检测到慢查询: {model}.{operation} ({duration_ms:.0f}ms)")

            # 每次都检查错误率，成功查询可以把错误率拉回阈值以下
            error_rate = stats.failed_queries / stats.total_queries
            if error_rate > thresholds.error_rate_critical:
                alerts.append((AlertType.HIGH_ERROR_RATE, {
                    "rate": error_rate,
                    "failed": stats.failed_queries,
                    "total": stats.total_queries,
                }))

        return alerts

    def _dispatch(self, alert_type: AlertType, data: Dict[str, Any]) -> None:
        if self._alert_callback is None:
            return
        try:
            self._alert_callback(alert_type, data)
        except Exception as e:
            logger.error(f"分发查询告警失败 {alert_type.value}: {e}")

    def snapshot(self) -> QueryStats:
        """获取统计副本"""
        with self._lock:
            return replace(self._stats)

    def reset(self) -> None:
        """重置统计（不影响告警抑制状态）"""
        with self._lock:
            self._stats = QueryStats()
        logger.info("查询统计已重置")
