"""
测试配置和 Fixtures
提供假执行器、假告警接收端、手动时钟、数据库会话和测试客户端
"""

import os
import sys

# 立即设置测试环境变量，确保核心模块加载时使用测试配置
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("HEALTH_CHECK_INTERVAL", "0")

from typing import Any, AsyncGenerator, Dict, List, Optional

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession

# 确保可以导入项目模块
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core import pg_queries
from core.database import Base, engine as global_engine, async_session as TestSessionLocal
from core.db_monitor import DatabaseMonitor
from core.thresholds import ThresholdConfig, MB
import models  # 强制加载模型以注册 Base.metadata
from main import app


# ==================== 测试替身 ====================

def healthy_responses() -> Dict[str, Any]:
    """一个健康的小型数据库的探测结果"""
    return {
        pg_queries.LIVENESS: [{"?column?": 1}],
        pg_queries.CONNECTION_STATES: [
            {"state": "active", "count": 3},
            {"state": "idle", "count": 5},
            {"state": "idle in transaction", "count": 1},
            {"state": None, "count": 2},
        ],
        pg_queries.DATABASE_SIZE: [{"size_bytes": 100 * MB, "size_pretty": "100 MB"}],
        pg_queries.OBJECT_COUNTS: [{"table_count": 12, "index_count": 30}],
        pg_queries.CACHE_HIT_RATIO: [{"cache_hit_ratio": 99.5}],
        pg_queries.LARGE_TABLES: [
            {"table_name": "public.listings", "size_pretty": "80 MB", "row_count_approx": 120000},
            {"table_name": "public.users", "size_pretty": "12 MB", "row_count_approx": 9000},
        ],
        pg_queries.UNUSED_INDEXES: [
            {"table_name": "listings", "index_name": "ix_listings_color", "size_pretty": "2 MB"},
        ],
    }


class FakeExecutor:
    """
    按 SQL 文本返回预设结果的执行器

    结果为异常实例时抛出该异常
    """

    def __init__(self, responses: Optional[Dict[str, Any]] = None):
        self.responses = responses if responses is not None else healthy_responses()
        self.calls: List[tuple] = []

    async def execute(self, sql, params=None):
        self.calls.append((sql, params))
        result = self.responses.get(sql, [])
        if isinstance(result, Exception):
            raise result
        return [dict(row) for row in result]

    def fail(self, sql: str, error: Optional[Exception] = None):
        self.responses[sql] = error or RuntimeError("permission denied")


class FakeSink:
    """收集告警记录的接收端"""

    def __init__(self):
        self.records: List[Dict[str, Any]] = []

    def emit(self, record):
        self.records.append(record)

    def types(self) -> List[str]:
        return [r["message"].split(": ", 1)[1] for r in self.records]


class ManualClock:
    """手动推进的时钟（秒）"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


# ==================== 测试夹具 (Fixtures) ====================

@pytest.fixture
def executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def sink() -> FakeSink:
    return FakeSink()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def thresholds() -> ThresholdConfig:
    return ThresholdConfig()


@pytest.fixture
def monitor(executor, sink, clock, thresholds) -> DatabaseMonitor:
    """使用假执行器、假接收端和手动时钟的监控器"""
    return DatabaseMonitor(executor, thresholds=thresholds, sink=sink, clock=clock)


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    创建测试用数据库会话
    每个测试函数使用独立的内存数据库，并自动注入到 FastAPI 中
    """
    async with global_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session = TestSessionLocal()

    try:
        from core.database import get_db

        async def _get_test_db():
            yield session

        app.dependency_overrides[get_db] = _get_test_db

        yield session

    finally:
        await session.rollback()
        await session.close()
        app.dependency_overrides.clear()

        async with global_engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        await global_engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def client(monitor) -> AsyncGenerator[AsyncClient, None]:
    """
    创建测试用 HTTP 客户端

    ASGITransport 不触发 lifespan，监控器直接挂到 app.state
    """
    app.state.db_monitor = monitor
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test"
        ) as ac:
            yield ac
    finally:
        app.state.db_monitor = None
