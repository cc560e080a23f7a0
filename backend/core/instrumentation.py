"""
查询钩子
通过 SQLAlchemy 引擎事件测量每条语句的耗时，并上报给数据库监控器

用法：
    hooks = install_query_hooks(engine, monitor)
    ...
    remove_query_hooks(engine, hooks)
"""

import re
import time
import logging
from typing import Tuple, Union

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.ext.asyncio import AsyncEngine

from .query_executor import PROBE_EXECUTION_OPTION

logger = logging.getLogger(__name__)

_START_KEY = "db_monitor_query_start"

# 取语句的目标表：FROM / INTO / UPDATE 后的第一个标识符（可带模式前缀和引号）
_TABLE_PATTERN = re.compile(
    r'\b(?:FROM|INTO|UPDATE)\s+(?:["`]?\w+["`]?\.)?["`]?(\w+)',
    re.IGNORECASE
)


def describe_statement(statement: str) -> Tuple[str, str]:
    """
    从 SQL 推断 (model, operation)

    例如 'SELECT ... FROM "users" ...' -> ("users", "SELECT")
    无法识别目标表时 model 为 "raw"
    """
    stripped = (statement or "").lstrip()
    operation = stripped.split(None, 1)[0].upper() if stripped else "UNKNOWN"
    match = _TABLE_PATTERN.search(stripped)
    model = match.group(1) if match else "raw"
    return model, operation


class QueryHooks:
    """引擎事件处理器"""

    def __init__(self, monitor):
        self.monitor = monitor

    @staticmethod
    def _is_probe(conn) -> bool:
        return bool(conn.get_execution_options().get(PROBE_EXECUTION_OPTION, False))

    def before_cursor_execute(self, conn, cursor, statement, parameters, context, executemany):
        if self._is_probe(conn):
            return
        conn.info.setdefault(_START_KEY, []).append(time.perf_counter())

    def after_cursor_execute(self, conn, cursor, statement, parameters, context, executemany):
        self._finish(conn, statement, success=True)

    def handle_error(self, exception_context):
        conn = exception_context.connection
        if conn is None:
            return
        self._finish(conn, exception_context.statement, success=False)

    def _finish(self, conn, statement: str, success: bool) -> None:
        try:
            starts = conn.info.get(_START_KEY)
            if not starts or self._is_probe(conn):
                return
            duration_ms = (time.perf_counter() - starts.pop()) * 1000
            model, operation = describe_statement(statement)
        except Exception as e:
            logger.debug(f"查询耗时计算失败: {e}")
            return
        self.monitor.track_query(model, operation, duration_ms, success)


def _sync_engine(engine: Union[AsyncEngine, Engine]) -> Engine:
    return getattr(engine, "sync_engine", engine)


def install_query_hooks(engine: Union[AsyncEngine, Engine], monitor) -> QueryHooks:
    """为引擎注册查询钩子"""
    target = _sync_engine(engine)
    hooks = QueryHooks(monitor)
    event.listen(target, "before_cursor_execute", hooks.before_cursor_execute)
    event.listen(target, "after_cursor_execute", hooks.after_cursor_execute)
    event.listen(target, "handle_error", hooks.handle_error)
    logger.debug("数据库查询钩子已注册")
    return hooks


def remove_query_hooks(engine: Union[AsyncEngine, Engine], hooks: QueryHooks) -> None:
    """移除查询钩子"""
    target = _sync_engine(engine)
    event.remove(target, "before_cursor_execute", hooks.before_cursor_execute)
    event.remove(target, "after_cursor_execute", hooks.after_cursor_execute)
    event.remove(target, "handle_error", hooks.handle_error)
    logger.debug("数据库查询钩子已移除")
