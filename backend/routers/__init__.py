"""
路由目录
"""

from . import health, monitor

__all__ = ["health", "monitor"]
