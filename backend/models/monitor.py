"""
数据库监控数据模型
"""

from typing import Optional
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, Float, DateTime, JSON

from core.database import Base


class PerformanceMetric(Base):
    """性能指标记录表（定期健康检查写入）"""
    __tablename__ = "sys_metrics"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    metric_type: Mapped[str] = mapped_column(String(50), index=True)  # 指标类型: db_health
    metric_name: Mapped[str] = mapped_column(String(100), index=True)  # 指标名称: error_rate, size_bytes ...
    value: Mapped[float] = mapped_column(Float)  # 指标值
    unit: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)  # 单位
    extra_metadata: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)  # 额外元数据
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, index=True)

    __table_args__ = (
        {'comment': '数据库健康指标表'},
    )
