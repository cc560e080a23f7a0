"""
依赖注入
提供全局可复用的依赖项
"""

from fastapi import Request

from .database import get_db
from .config import get_settings
from .db_monitor import DatabaseMonitor
from .errors import MonitorUnavailableException


__all__ = [
    "get_db",
    "get_settings",
    "get_db_monitor",
]


def get_db_monitor(request: Request) -> DatabaseMonitor:
    """获取应用启动时创建的数据库监控器"""
    monitor = getattr(request.app.state, "db_monitor", None)
    if monitor is None:
        raise MonitorUnavailableException()
    return monitor
