"""
数据库监控路由
提供查询统计、阈值、诊断报告、告警记录和健康指标历史查询
"""

import logging
from typing import List, Optional
from datetime import datetime, timedelta
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc

from core.alert_sink import fetch_recent_alerts
from core.config import get_settings
from core.database import get_db
from core.deps import get_db_monitor
from core.db_monitor import DatabaseMonitor
from core.health_history import METRIC_TYPE
from models.monitor import PerformanceMetric
from schemas.monitor import QueryStatsInfo, ThresholdInfo, LargeTableInfo, UnusedIndexInfo, MetricInfo, AlertLogInfo
from schemas.response import ApiResponse, success

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/monitor/db", tags=["数据库监控"])


@router.get("/stats", response_model=ApiResponse[QueryStatsInfo])
async def get_query_stats(monitor: DatabaseMonitor = Depends(get_db_monitor)):
    """获取查询统计快照"""
    stats = monitor.get_query_stats()
    return success(stats)


@router.post("/stats/reset", response_model=ApiResponse[QueryStatsInfo])
async def reset_query_stats(monitor: DatabaseMonitor = Depends(get_db_monitor)):
    """
    重置查询统计

    告警冷却记录不受影响
    """
    monitor.reset_stats()
    return success(monitor.get_query_stats(), "统计已重置")


@router.get("/thresholds", response_model=ApiResponse[ThresholdInfo])
async def get_thresholds(monitor: DatabaseMonitor = Depends(get_db_monitor)):
    """获取当前生效的监控阈值"""
    return success(monitor.thresholds)


@router.get("/large-tables", response_model=ApiResponse[List[LargeTableInfo]])
async def get_large_tables(
    limit: int = Query(10, ge=1, le=100, description="返回数量"),
    monitor: DatabaseMonitor = Depends(get_db_monitor)
):
    """按总大小列出最大的用户表"""
    tables = await monitor.find_large_tables(limit)
    return success(tables)


@router.get("/unused-indexes", response_model=ApiResponse[List[UnusedIndexInfo]])
async def get_unused_indexes(monitor: DatabaseMonitor = Depends(get_db_monitor)):
    """列出从未被扫描过的索引"""
    indexes = await monitor.find_unused_indexes()
    return success(indexes)


@router.get("/alerts", response_model=ApiResponse[List[AlertLogInfo]])
async def get_recent_alerts(
    limit: int = Query(50, ge=1, le=500, description="返回数量"),
    hours: int = Query(24, ge=1, le=24 * 30, description="时间范围（小时）"),
    db: AsyncSession = Depends(get_db)
):
    """获取最近保存的数据库告警，按时间倒序"""
    alerts = await fetch_recent_alerts(db, limit=limit, hours=hours)
    return success([AlertLogInfo.model_validate(a).model_dump(mode="json") for a in alerts])


@router.get("/metrics", response_model=ApiResponse[List[MetricInfo]])
async def get_metrics(
    metric_name: Optional[str] = None,
    hours: int = Query(24, ge=1, le=24 * 30, description="时间范围（小时）"),
    limit: Optional[int] = Query(None, ge=1, le=1000, description="返回数量，默认取配置 metrics_page_size"),
    db: AsyncSession = Depends(get_db)
):
    """
    获取数据库健康指标历史

    数据由定期健康检查写入，按时间倒序返回
    """
    limit = limit or get_settings().metrics_page_size
    since = datetime.now() - timedelta(hours=hours)
    query = (
        select(PerformanceMetric)
        .where(PerformanceMetric.metric_type == METRIC_TYPE)
        .where(PerformanceMetric.created_at >= since)
    )

    if metric_name:
        query = query.where(PerformanceMetric.metric_name == metric_name)

    query = query.order_by(desc(PerformanceMetric.created_at)).limit(limit)

    result = await db.execute(query)
    metrics = result.scalars().all()

    return success([MetricInfo.model_validate(m).model_dump(mode="json") for m in metrics])
