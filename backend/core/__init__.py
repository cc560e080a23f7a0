"""
Marketplace DB Monitor 核心模块
提供数据库监控的基础设施和通用功能

导出列表：
- 配置管理: get_settings, Settings
- 数据库: Base, get_db, async_session
- 错误处理: ErrorCode, AppException, ProbeError
- 监控组件: ThresholdConfig, HealthAggregator, HealthStatus
- 告警: AlertType, AlertDispatcher

告警接收端（alert_sink）和监控器（db_monitor）依赖 models，需单独导入，避免循环导入
"""

# 配置管理
from .config import get_settings, Settings, reload_settings

# 数据库
from .database import Base, get_db, async_session, init_db, close_db

# 错误处理
from .errors import (
    ErrorCode,
    AppException,
    ConfigException,
    ProbeError,
    MonitorUnavailableException,
    register_exception_handlers
)

# 阈值与统计
from .thresholds import ThresholdConfig
from .query_stats import QueryStats, QueryStatsTracker

# 告警
from .alerting import AlertType, AlertSeverity, AlertDispatcher, AlertSink

# 探测与健康检查
from .query_executor import QueryExecutor, SQLAlchemyQueryExecutor
from .probes import ConnectionProbe, DatabaseInfoProbe, ConnectionSnapshot, DatabaseInfo
from .health_checker import HealthAggregator, HealthStatus, HealthVerdict
from .diagnostics import DiagnosticScanners, LargeTable, UnusedIndex

# 查询钩子
from .instrumentation import install_query_hooks, remove_query_hooks

__all__ = [
    # 配置
    "get_settings", "Settings", "reload_settings",
    # 数据库
    "Base", "get_db", "async_session", "init_db", "close_db",
    # 错误处理
    "ErrorCode", "AppException", "ConfigException", "ProbeError",
    "MonitorUnavailableException", "register_exception_handlers",
    # 阈值与统计
    "ThresholdConfig", "QueryStats", "QueryStatsTracker",
    # 告警
    "AlertType", "AlertSeverity", "AlertDispatcher", "AlertSink",
    # 探测与健康检查
    "QueryExecutor", "SQLAlchemyQueryExecutor",
    "ConnectionProbe", "DatabaseInfoProbe", "ConnectionSnapshot", "DatabaseInfo",
    "HealthAggregator", "HealthStatus", "HealthVerdict",
    "DiagnosticScanners", "LargeTable", "UnusedIndex",
    # 查询钩子
    "install_query_hooks", "remove_query_hooks",
]
