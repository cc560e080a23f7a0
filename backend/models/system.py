"""
系统数据模型
系统日志（数据库告警的持久化去向）
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import String, Integer, DateTime, JSON, Text
from sqlalchemy.orm import Mapped, mapped_column

from core.database import Base


class SystemLog(Base):
    """系统活动日志表"""
    __tablename__ = "sys_logs"
    __table_args__ = {"comment": "系统活动日志表"}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    level: Mapped[str] = mapped_column(String(20), default="INFO", index=True)  # INFO/WARNING/CRITICAL
    module: Mapped[str] = mapped_column(String(50), index=True)  # 组件名称
    action: Mapped[str] = mapped_column(String(100), index=True)  # 操作类型
    message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)  # 日志内容
    extra: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)  # 附加数据
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, index=True)
