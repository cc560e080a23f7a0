"""
数据验证模式目录
"""

from .monitor import (
    QueryStatsInfo, HealthVerdictInfo,
    LargeTableInfo, UnusedIndexInfo, ThresholdInfo, MetricInfo, AlertLogInfo
)
from .response import ApiResponse, success

__all__ = [
    # 数据库监控
    "QueryStatsInfo", "HealthVerdictInfo",
    "LargeTableInfo", "UnusedIndexInfo", "ThresholdInfo", "MetricInfo", "AlertLogInfo",
    # 响应
    "ApiResponse", "success",
]
