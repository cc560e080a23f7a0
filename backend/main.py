"""
Marketplace DB Monitor - 主入口
基于FastAPI的数据库健康与告警监控服务

功能：
- 查询耗时统计与慢查询告警
- 数据库综合健康检查端点
- 告警去重并写入系统日志
- 定期健康快照与指标历史
- 大表、未使用索引诊断报告
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from core.config import get_settings
from core.database import engine, init_db, close_db
from core.alert_sink import SystemLogAlertSink
from core.db_monitor import DatabaseMonitor
from core.instrumentation import install_query_hooks, remove_query_hooks
from core.health_history import record_health_snapshot
from core.scheduler import Scheduler
from core.errors import register_exception_handlers

settings = get_settings()

# 配置日志
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# 减少第三方库的日志输出
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
logging.getLogger("uvicorn.error").setLevel(logging.WARNING)
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    # ==================== 启动阶段 ====================
    current_settings = get_settings()
    logger.info(f"🚀 正在启动 {current_settings.app_name} v{current_settings.app_version}...")

    # 1. 初始化数据库
    await init_db()

    # 2. 告警写入系统日志（后台批量落库）
    sink = SystemLogAlertSink()
    sink.start()

    # 3. 创建监控器并挂载查询钩子
    monitor = DatabaseMonitor.from_settings(engine, current_settings, sink=sink)
    app.state.db_monitor = monitor
    hooks = install_query_hooks(engine, monitor)
    logger.info("✅ 数据库监控器已就绪")

    # 4. 定期健康检查
    scheduler = Scheduler()
    scheduler.start()
    if current_settings.health_check_interval > 0:
        await scheduler.schedule_periodic(
            lambda: record_health_snapshot(monitor),
            interval_seconds=current_settings.health_check_interval,
            name="数据库健康快照"
        )
        logger.info(f"✅ 定期健康检查已启用（间隔: {current_settings.health_check_interval}秒）")
    else:
        logger.info("ℹ️ 定期健康检查已禁用")

    logger.info(f"🎉 {current_settings.app_name} 启动完成! 访问: http://localhost:8000")

    yield

    # ==================== 关闭阶段 ====================
    logger.info("🛑 系统关闭中...")
    await scheduler.stop()
    remove_query_hooks(engine, hooks)
    app.state.db_monitor = None
    await sink.stop()
    await close_db()
    logger.info("👋 系统已关闭")


# ==================== 创建应用 ====================
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="数据库健康与告警监控服务",
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json"
)


# ==================== 异常处理器 ====================
register_exception_handlers(app)

# 全局未捕获异常处理
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """全局异常捕获"""
    logger.error(f"未处理异常: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "code": 1000,
            "message": "服务器内部错误，请稍后重试",
            "data": None
        }
    )


# ==================== 注册路由 ====================
from routers import health, monitor

app.include_router(health.router)
app.include_router(monitor.router)


# ==================== 根路由 ====================
@app.get("/api", include_in_schema=False)
async def api_info():
    """API 信息"""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/api/docs",
        "health": "/health",
        "monitor": "/api/v1/monitor/db"
    }


# ==================== 启动入口 ====================
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug
    )
