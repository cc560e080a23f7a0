"""
健康检查路由
提供数据库综合健康状态和存活/就绪探针
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from core.deps import get_db_monitor
from core.db_monitor import DatabaseMonitor
from core.health_checker import HealthStatus
from schemas.monitor import HealthVerdictInfo

logger = logging.getLogger(__name__)

router = APIRouter(tags=["健康检查"])


@router.get("/health", response_model=HealthVerdictInfo)
async def health_check(monitor: DatabaseMonitor = Depends(get_db_monitor)):
    """
    健康检查端点

    返回数据库综合健康状态（status / checks / details）
    critical 时返回 503，供负载均衡器和监控系统摘除实例
    """
    verdict = await monitor.check_health()
    status_code = 503 if verdict.status == HealthStatus.CRITICAL else 200
    return JSONResponse(status_code=status_code, content=verdict.to_dict())


@router.get("/health/live")
async def liveness_probe():
    """
    存活探针

    只检查应用是否在运行，不检查数据库
    """
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness_probe(monitor: DatabaseMonitor = Depends(get_db_monitor)):
    """
    就绪探针

    数据库处于 critical 状态时视为未就绪
    """
    verdict = await monitor.check_health()

    if verdict.status == HealthStatus.CRITICAL:
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "reason": "数据库状态异常"}
        )

    return {"status": "ready"}
