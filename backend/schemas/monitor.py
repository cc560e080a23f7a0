"""
数据库监控 Schema
"""

from typing import Optional, Dict, Any
from pydantic import BaseModel
from datetime import datetime


class QueryStatsInfo(BaseModel):
    """查询统计"""
    total_queries: int
    successful_queries: int
    failed_queries: int
    slow_queries: int
    avg_duration_ms: float
    error_rate: float
    last_reset: datetime


class HealthVerdictInfo(BaseModel):
    """综合健康结果"""
    status: str  # healthy, degraded, critical
    checks: Dict[str, bool]
    details: Dict[str, Any]


class LargeTableInfo(BaseModel):
    """大表信息"""
    table_name: str
    size_pretty: str
    row_count_approx: int


class UnusedIndexInfo(BaseModel):
    """未使用索引信息"""
    table_name: str
    index_name: str
    size_pretty: str


class ThresholdInfo(BaseModel):
    """监控阈值"""
    query_slow_ms: float
    query_critical_ms: float
    connection_warning: int
    connection_critical: int
    db_size_warning_bytes: int
    db_size_critical_bytes: int
    error_rate_warning: float
    error_rate_critical: float


class MetricInfo(BaseModel):
    """性能指标信息"""
    id: int
    metric_type: str
    metric_name: str
    value: float
    unit: Optional[str] = None
    extra_metadata: Optional[Dict[str, Any]] = None
    created_at: datetime

    class Config:
        from_attributes = True


class AlertLogInfo(BaseModel):
    """已保存的数据库告警"""
    id: int
    level: str
    module: str
    action: str
    message: Optional[str] = None
    extra: Optional[Dict[str, Any]] = None
    created_at: datetime

    class Config:
        from_attributes = True
