"""
原始查询执行器
探测组件只依赖 execute(sql, params) -> rows 这一能力，与具体驱动解耦
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Protocol

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from .errors import ProbeError

logger = logging.getLogger(__name__)

Row = Dict[str, Any]

# 标记监控器自身发出的查询，查询钩子据此跳过统计
PROBE_EXECUTION_OPTION = "db_monitor_probe"


class QueryExecutor(Protocol):
    """只读查询执行能力"""

    async def execute(self, sql: str, params: Optional[Dict[str, Any]] = None) -> List[Row]:
        ...


class SQLAlchemyQueryExecutor:
    """
    基于 SQLAlchemy 异步引擎的执行器

    每条语句单独取连接执行，并受 timeout 限制；超时抛出 ProbeError，不做重试
    """

    def __init__(self, engine: AsyncEngine, timeout: float = 5.0):
        self.engine = engine
        self.timeout = timeout

    async def execute(self, sql: str, params: Optional[Dict[str, Any]] = None) -> List[Row]:
        try:
            return await asyncio.wait_for(self._run(sql, params), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            statement = " ".join(sql.split())[:60]
            logger.warning(f"探测查询超时（{self.timeout}s）: {statement}")
            raise ProbeError("query", f"查询超时（{self.timeout}s）", timeout=True) from e

    async def _run(self, sql: str, params: Optional[Dict[str, Any]]) -> List[Row]:
        async with self.engine.connect() as conn:
            conn = await conn.execution_options(**{PROBE_EXECUTION_OPTION: True})
            result = await conn.execute(text(sql), params or {})
            return [dict(row._mapping) for row in result]
