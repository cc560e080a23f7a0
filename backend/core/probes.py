"""
数据库探测
- ConnectionProbe: 会话状态快照，失败时返回全零快照
- DatabaseInfoProbe: 大小、表/索引数量、缓存命中率，失败时抛出 ProbeError

两者的失败策略不同：连接统计属于可有可无的遥测数据，
而大小/目录查询失败通常意味着权限或模式问题，需要上报为严重
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict

from . import pg_queries
from .errors import ProbeError
from .query_executor import QueryExecutor

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ConnectionSnapshot:
    """连接状态快照"""
    total: int = 0
    active: int = 0
    idle: int = 0
    waiting: int = 0  # idle in transaction
    timestamp: datetime = field(default_factory=_utcnow)

    @classmethod
    def empty(cls) -> "ConnectionSnapshot":
        return cls()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "active": self.active,
            "idle": self.idle,
            "waiting": self.waiting,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class DatabaseInfo:
    """数据库信息快照"""
    size_bytes: int
    size_pretty: str
    table_count: int
    index_count: int
    connections: ConnectionSnapshot
    cache_hit_ratio_percent: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "size_bytes": self.size_bytes,
            "size_pretty": self.size_pretty,
            "table_count": self.table_count,
            "index_count": self.index_count,
            "connections": self.connections.to_dict(),
            "cache_hit_ratio_percent": self.cache_hit_ratio_percent,
        }


class ConnectionProbe:
    """连接探测"""

    # 会话状态 -> 快照字段
    STATE_BUCKETS = {
        "active": "active",
        "idle": "idle",
        "idle in transaction": "waiting",
    }

    def __init__(self, executor: QueryExecutor):
        self._executor = executor

    async def snapshot(self) -> ConnectionSnapshot:
        """获取连接状态快照，任何失败都返回全零快照"""
        try:
            rows = await self._executor.execute(pg_queries.CONNECTION_STATES)

            buckets = {"active": 0, "idle": 0, "waiting": 0}
            total = 0
            for row in rows:
                count = int(row.get("count") or 0)
                total += count
                bucket = self.STATE_BUCKETS.get(row.get("state"))
                if bucket:
                    buckets[bucket] += count

            return ConnectionSnapshot(total=total, **buckets)
        except Exception as e:
            logger.error(f"获取连接统计失败: {e}")
            return ConnectionSnapshot.empty()


class DatabaseInfoProbe:
    """数据库信息探测"""

    def __init__(self, executor: QueryExecutor, connection_probe: ConnectionProbe):
        self._executor = executor
        self._connection_probe = connection_probe

    async def gather(self) -> DatabaseInfo:
        """
        收集数据库信息

        Raises:
            ProbeError: 任意一条查询失败或结果无法解析
        """
        try:
            size_row = (await self._executor.execute(pg_queries.DATABASE_SIZE))[0]
            count_row = (await self._executor.execute(pg_queries.OBJECT_COUNTS))[0]
            cache_rows = await self._executor.execute(pg_queries.CACHE_HIT_RATIO)

            size_bytes = int(size_row["size_bytes"])
            size_pretty = str(size_row["size_pretty"])
            table_count = int(count_row["table_count"])
            index_count = int(count_row["index_count"])
            cache_hit_ratio = float((cache_rows[0].get("cache_hit_ratio") if cache_rows else None) or 0)
        except ProbeError as e:
            logger.error(f"获取数据库信息失败: {e}")
            raise ProbeError("database_info", e.detail, timeout=e.timeout) from e
        except Exception as e:
            logger.error(f"获取数据库信息失败: {e}")
            raise ProbeError("database_info", str(e)) from e

        connections = await self._connection_probe.snapshot()

        return DatabaseInfo(
            size_bytes=size_bytes,
            size_pretty=size_pretty,
            table_count=table_count,
            index_count=index_count,
            connections=connections,
            cache_hit_ratio_percent=cache_hit_ratio,
        )
