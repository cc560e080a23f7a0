"""
告警接收端
- LoggingAlertSink: 仅写本地日志
- SystemLogAlertSink: 批量写入 sys_logs 表
- fetch_recent_alerts / count_recent_alerts: 读回已保存的告警

告警在查询钩子中同步产生，写库是异步的，因此先入队，由后台任务定期刷新
"""

import asyncio
import logging
import threading
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import select, func, desc
from sqlalchemy.ext.asyncio import AsyncSession

from core.alerting import ALERT_ACTION
from core.database import async_session
from core.query_executor import PROBE_EXECUTION_OPTION
from models import SystemLog

logger = logging.getLogger(__name__)


class LoggingAlertSink:
    """只记录日志的告警接收端（未配置持久化时使用）"""

    def emit(self, record: Dict[str, Any]) -> None:
        level = logging.ERROR if record.get("severity") == "CRITICAL" else logging.WARNING
        logger.log(
            level,
            f"[{record.get('component')}] {record.get('message')} {record.get('metadata')}"
        )


class SystemLogAlertSink:
    """系统日志告警接收端（支持批量写入）"""

    def __init__(
        self,
        session_factory: Callable = async_session,
        batch_size: int = 50,
        flush_interval: float = 5.0,
        max_queue_size: int = 1000
    ):
        self._session_factory = session_factory
        self._batch_size = batch_size
        self._flush_interval = flush_interval
        self._max_queue_size = max_queue_size
        self._queue: List[Dict[str, Any]] = []
        self._lock = threading.Lock()
        self._flush_task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> int:
        """待写入条数"""
        with self._lock:
            return len(self._queue)

    def emit(self, record: Dict[str, Any]) -> None:
        """告警入队（同步，可在任意线程调用）"""
        with self._lock:
            if len(self._queue) >= self._max_queue_size:
                # 丢弃最旧的一条，保证新告警能写入
                dropped = self._queue.pop(0)
                logger.warning(f"告警队列已满，丢弃告警: {dropped.get('message')}")
            self._queue.append(dict(record))

    @staticmethod
    def _to_log_entry(record: Dict[str, Any]) -> SystemLog:
        created_at = datetime.now()
        timestamp = record.get("timestamp")
        if timestamp:
            # 与 sys_logs 其他记录一致，存储本地时间
            created_at = datetime.fromisoformat(timestamp).astimezone().replace(tzinfo=None)
        return SystemLog(
            level=record.get("severity", "WARNING"),
            module=record.get("component", "DatabaseMonitor"),
            action=record.get("action", ALERT_ACTION),
            message=record.get("message"),
            extra=record.get("metadata"),
            created_at=created_at
        )

    async def flush(self) -> int:
        """
        批量刷新告警到数据库

        Returns:
            成功写入的条数（写入失败返回 0，失败的批次不会重新入队）
        """
        with self._lock:
            batch = self._queue[:self._batch_size]
            self._queue = self._queue[self._batch_size:]

        if not batch:
            return 0

        try:
            async with self._session_factory() as db:
                # 告警写入不计入查询统计，写入失败也不会再触发告警
                await db.connection(execution_options={PROBE_EXECUTION_OPTION: True})
                db.add_all([self._to_log_entry(record) for record in batch])
                await db.commit()
            logger.debug(f"批量写入 {len(batch)} 条数据库告警")
            return len(batch)
        except Exception as e:
            logger.error(f"批量写入数据库告警失败: {e}")
            return 0

    async def flush_all(self) -> int:
        """刷新全部待写入告警"""
        written = 0
        while self.pending:
            count = await self.flush()
            if count == 0:
                break
            written += count
        return written

    async def _auto_flush_loop(self):
        """自动刷新循环（后台任务）"""
        while True:
            try:
                await asyncio.sleep(self._flush_interval)
                await self.flush_all()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"告警自动刷新循环错误: {e}")

    def start(self):
        """启动自动刷新任务（需在事件循环中调用）"""
        if self._flush_task is None or self._flush_task.done():
            self._flush_task = asyncio.get_running_loop().create_task(self._auto_flush_loop())
            logger.debug("告警自动刷新任务已启动")

    async def stop(self):
        """停止自动刷新任务并写入剩余告警"""
        if self._flush_task and not self._flush_task.done():
            self._flush_task.cancel()
            try:
                await self._flush_task
            except asyncio.CancelledError:
                pass
        self._flush_task = None

        await self.flush_all()
        logger.debug("告警自动刷新任务已停止")


def _recent_alert_filter(hours: int):
    since = datetime.now() - timedelta(hours=hours)
    return (SystemLog.action == ALERT_ACTION, SystemLog.created_at >= since)


async def fetch_recent_alerts(db: AsyncSession, limit: int = 50, hours: int = 24) -> List[SystemLog]:
    """按时间倒序读取最近保存的数据库告警"""
    result = await db.execute(
        select(SystemLog)
        .where(*_recent_alert_filter(hours))
        .order_by(desc(SystemLog.created_at), desc(SystemLog.id))
        .limit(limit)
    )
    return list(result.scalars().all())


async def count_recent_alerts(db: AsyncSession, hours: int = 1) -> int:
    """统计最近 hours 小时内的数据库告警条数"""
    result = await db.execute(
        select(func.count(SystemLog.id)).where(*_recent_alert_filter(hours))
    )
    return result.scalar() or 0
