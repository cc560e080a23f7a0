"""
数据库诊断报告
按需执行的只读报告（大表、未使用索引），用于容量与性能排查，不参与健康判定
"""

import logging
from dataclasses import dataclass, asdict
from typing import Any, Dict, List

from . import pg_queries
from .query_executor import QueryExecutor

logger = logging.getLogger(__name__)

DEFAULT_LARGE_TABLE_LIMIT = 10


@dataclass(frozen=True)
class LargeTable:
    """大表信息"""
    table_name: str
    size_pretty: str
    row_count_approx: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class UnusedIndex:
    """未使用索引信息"""
    table_name: str
    index_name: str
    size_pretty: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class DiagnosticScanners:
    """诊断扫描器，失败时返回空列表"""

    def __init__(self, executor: QueryExecutor):
        self._executor = executor

    async def find_large_tables(self, limit: int = DEFAULT_LARGE_TABLE_LIMIT) -> List[LargeTable]:
        """按总占用空间列出最大的表"""
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            logger.warning(f"无效的大表数量限制: {limit!r}")
            return []

        try:
            rows = await self._executor.execute(pg_queries.LARGE_TABLES, {"limit": limit})
            return [
                LargeTable(
                    table_name=str(row["table_name"]),
                    size_pretty=str(row["size_pretty"]),
                    row_count_approx=int(row["row_count_approx"] or 0),
                )
                for row in rows[:limit]
            ]
        except Exception as e:
            logger.error(f"查找大表失败: {e}")
            return []

    async def find_unused_indexes(self) -> List[UnusedIndex]:
        """列出自统计重置以来从未被扫描的索引"""
        try:
            rows = await self._executor.execute(pg_queries.UNUSED_INDEXES)
            return [
                UnusedIndex(
                    table_name=str(row["table_name"]),
                    index_name=str(row["index_name"]),
                    size_pretty=str(row["size_pretty"]),
                )
                for row in rows
            ]
        except Exception as e:
            logger.error(f"查找未使用索引失败: {e}")
            return []
