"""
数据模型目录
"""

from .system import SystemLog
from .monitor import PerformanceMetric

__all__ = ["SystemLog", "PerformanceMetric"]
