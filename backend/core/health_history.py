"""
健康历史记录
定期执行健康检查，并把各项数值写入 sys_metrics，供趋势查询使用
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import get_settings
from core.database import async_session
from models import PerformanceMetric

from .db_monitor import DatabaseMonitor
from .health_checker import HealthStatus, HealthVerdict
from .query_executor import PROBE_EXECUTION_OPTION

logger = logging.getLogger(__name__)

METRIC_TYPE = "db_health"

STATUS_SCORES = {
    HealthStatus.HEALTHY: 1.0,
    HealthStatus.DEGRADED: 0.5,
    HealthStatus.CRITICAL: 0.0,
}


def verdict_to_metrics(verdict: HealthVerdict) -> List[PerformanceMetric]:
    """把一次健康检查结果拆分为若干指标记录"""
    details: Dict[str, Any] = verdict.details
    meta = {"status": verdict.status.value, "checks": dict(verdict.checks)}

    values = [("status_score", STATUS_SCORES[verdict.status], None)]
    if "connection_latency_ms" in details:
        values.append(("connection_latency_ms", details["connection_latency_ms"], "ms"))
    if "connections" in details:
        values.append(("active_connections", details["connections"]["active"], None))
    if "database_info" in details:
        info = details["database_info"]
        values.append(("size_bytes", info["size_bytes"], "bytes"))
        values.append(("cache_hit_ratio", info["cache_hit_ratio_percent"], "%"))
    if "error_rate" in details:
        values.append(("error_rate", details["error_rate"], None))

    return [
        PerformanceMetric(
            metric_type=METRIC_TYPE,
            metric_name=name,
            value=float(value),
            unit=unit,
            extra_metadata=meta
        )
        for name, value, unit in values
    ]


async def cleanup_old_metrics(db: AsyncSession, hours: int) -> int:
    """清理超过保留时长的健康指标，返回删除条数"""
    cutoff = datetime.now() - timedelta(hours=hours)

    result = await db.execute(
        delete(PerformanceMetric).where(
            PerformanceMetric.metric_type == METRIC_TYPE,
            PerformanceMetric.created_at < cutoff
        )
    )

    count = result.rowcount or 0
    if count > 0:
        logger.info(f"已清理 {count} 条过期健康指标")
    return count


async def record_health_snapshot(
    monitor: DatabaseMonitor,
    session_factory: Callable = async_session,
    retention_hours: Optional[int] = None
) -> HealthVerdict:
    """
    执行健康检查并保存指标，保存失败只记录日志

    保存时顺带清理超过 retention_hours 的旧指标（默认取配置 metrics_retention_hours，0 表示不清理）
    """
    verdict = await monitor.check_health()

    if retention_hours is None:
        retention_hours = get_settings().metrics_retention_hours

    try:
        async with session_factory() as db:
            # 快照写入不计入查询统计
            await db.connection(execution_options={PROBE_EXECUTION_OPTION: True})
            if retention_hours > 0:
                await cleanup_old_metrics(db, retention_hours)
            db.add_all(verdict_to_metrics(verdict))
            await db.commit()
    except Exception as e:
        logger.error(f"保存数据库健康指标失败: {e}")

    logger.debug(f"数据库健康快照: {verdict.status.value}")
    return verdict
