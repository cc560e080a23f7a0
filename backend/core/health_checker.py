"""
数据库健康检查模块
汇总存活延迟、连接数、数据库大小、错误率四项检查，给出综合健康状态

判定规则：
- 全部通过: healthy
- 通过比例 >= 75%: degraded
- 其余: critical
- 检查过程中出现异常（如数据库信息查询失败）: 直接判定为 critical
"""

import time
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional

from . import pg_queries
from .alerting import AlertDispatcher, AlertType
from .probes import ConnectionProbe, DatabaseInfoProbe, ConnectionSnapshot, DatabaseInfo
from .query_executor import QueryExecutor
from .query_stats import QueryStatsTracker
from .thresholds import ThresholdConfig

logger = logging.getLogger(__name__)

# 存活查询延迟上限（毫秒）
LIVENESS_MAX_LATENCY_MS = 1000
# degraded 所需的最低通过比例
DEGRADED_PASS_RATIO = 0.75


class HealthStatus(str, Enum):
    """健康状态枚举"""
    HEALTHY = "healthy"
    DEGRADED = "degraded"  # 部分检查未通过
    CRITICAL = "critical"


@dataclass
class HealthVerdict:
    """综合健康结果"""
    status: HealthStatus
    checks: Dict[str, bool] = field(default_factory=dict)
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "checks": dict(self.checks),
            "details": dict(self.details),
        }


def classify(checks: Dict[str, bool]) -> HealthStatus:
    """按通过比例判定状态，与检查项数量无关"""
    total = len(checks)
    passed = sum(1 for ok in checks.values() if ok)

    if passed == total:
        return HealthStatus.HEALTHY
    if passed >= DEGRADED_PASS_RATIO * total:
        return HealthStatus.DEGRADED
    return HealthStatus.CRITICAL


class HealthAggregator:
    """数据库健康检查器"""

    def __init__(
        self,
        executor: QueryExecutor,
        connection_probe: ConnectionProbe,
        info_probe: DatabaseInfoProbe,
        tracker: QueryStatsTracker,
        thresholds: ThresholdConfig,
        dispatcher: Optional[AlertDispatcher] = None,
        clock: Callable[[], float] = time.perf_counter
    ):
        self._executor = executor
        self._connection_probe = connection_probe
        self._info_probe = info_probe
        self._tracker = tracker
        self._thresholds = thresholds
        self._dispatcher = dispatcher
        self._clock = clock

    async def check_health(self) -> HealthVerdict:
        """执行一次完整健康检查"""
        thresholds = self._thresholds
        checks: Dict[str, bool] = {}
        details: Dict[str, Any] = {}

        try:
            # 1. 存活检查
            start = self._clock()
            await self._executor.execute(pg_queries.LIVENESS)
            latency_ms = (self._clock() - start) * 1000
            checks["connection"] = latency_ms < LIVENESS_MAX_LATENCY_MS
            details["connection_latency_ms"] = round(latency_ms, 2)

            # 2. 连接数
            connections = await self._connection_probe.snapshot()
            checks["connections"] = connections.active < thresholds.connection_warning
            details["connections"] = connections.to_dict()

            # 3. 数据库大小（失败时抛出，整体判定为 critical）
            db_info = await self._info_probe.gather()
            checks["db_size"] = db_info.size_bytes < thresholds.db_size_warning_bytes
            details["database_info"] = db_info.to_dict()

            # 4. 错误率
            error_rate = self._tracker.error_rate
            checks["error_rate"] = error_rate < thresholds.error_rate_warning
            details["error_rate"] = error_rate
        except Exception as e:
            logger.error(f"数据库健康检查失败: {e}")
            return HealthVerdict(
                status=HealthStatus.CRITICAL,
                checks={},
                details={"error": str(e) or type(e).__name__}
            )

        details["checked_at"] = datetime.now(timezone.utc).isoformat()
        status = classify(checks)

        self._alert_on_critical_thresholds(connections, db_info)

        if status != HealthStatus.HEALTHY:
            failed = [name for name, ok in checks.items() if not ok]
            logger.warning(f"数据库健康状态 {status.value}，未通过检查: {', '.join(failed)}")

        return HealthVerdict(status=status, checks=checks, details=details)

    def _alert_on_critical_thresholds(self, connections: ConnectionSnapshot, db_info: DatabaseInfo) -> None:
        """连接数、数据库大小达到严重阈值时告警（不影响健康判定）"""
        if self._dispatcher is None:
            return

        thresholds = self._thresholds
        if connections.active >= thresholds.connection_critical:
            self._dispatcher.send_alert(AlertType.CRITICAL_CONNECTION_COUNT, {
                "active": connections.active,
                "threshold": thresholds.connection_critical,
            })
        if db_info.size_bytes >= thresholds.db_size_critical_bytes:
            self._dispatcher.send_alert(AlertType.CRITICAL_DATABASE_SIZE, {
                "size_bytes": db_info.size_bytes,
                "size_pretty": db_info.size_pretty,
                "threshold": thresholds.db_size_critical_bytes,
            })
