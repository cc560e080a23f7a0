"""
标准错误码体系
提供统一的错误码定义和异常处理
"""

from typing import Optional, Any, Dict
from enum import IntEnum
from fastapi import status
from fastapi.responses import JSONResponse


class ErrorCode(IntEnum):
    """
    标准错误码

    错误码规范：
    - 0: 成功
    - 1xxx: 系统级错误
    - 3xxx: 业务通用错误
    - 6xxx: 数据库监控错误
    """

    # ==================== 成功 ====================
    SUCCESS = 0

    # ==================== 系统级错误 (1xxx) ====================
    INTERNAL_ERROR = 1000           # 服务器内部错误
    CONFIG_ERROR = 1003             # 配置错误
    SERVICE_UNAVAILABLE = 1004      # 服务不可用

    # ==================== 业务通用错误 (3xxx) ====================
    VALIDATION_ERROR = 3001         # 参数验证失败
    RESOURCE_NOT_FOUND = 3002       # 资源不存在

    # ==================== 数据库监控错误 (6xxx) ====================
    PROBE_FAILED = 6001             # 探测查询失败
    PROBE_TIMEOUT = 6002            # 探测查询超时
    MONITOR_UNAVAILABLE = 6003      # 监控器未初始化


# 错误码对应的默认消息
ERROR_MESSAGES: Dict[int, str] = {
    ErrorCode.SUCCESS: "操作成功",

    # 系统级
    ErrorCode.INTERNAL_ERROR: "服务器内部错误，请稍后重试",
    ErrorCode.CONFIG_ERROR: "系统配置错误",
    ErrorCode.SERVICE_UNAVAILABLE: "服务暂时不可用",

    # 业务通用
    ErrorCode.VALIDATION_ERROR: "参数验证失败",
    ErrorCode.RESOURCE_NOT_FOUND: "请求的资源不存在",

    # 数据库监控
    ErrorCode.PROBE_FAILED: "数据库探测查询失败",
    ErrorCode.PROBE_TIMEOUT: "数据库探测查询超时",
    ErrorCode.MONITOR_UNAVAILABLE: "数据库监控未启用",
}

# 错误码对应的 HTTP 状态码
ERROR_HTTP_STATUS: Dict[int, int] = {
    ErrorCode.SUCCESS: status.HTTP_200_OK,

    # 系统级 -> 500
    ErrorCode.INTERNAL_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.CONFIG_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.SERVICE_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,

    # 业务通用 -> 400/404
    ErrorCode.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    ErrorCode.RESOURCE_NOT_FOUND: status.HTTP_404_NOT_FOUND,

    # 数据库监控 -> 502/504/503
    ErrorCode.PROBE_FAILED: status.HTTP_502_BAD_GATEWAY,
    ErrorCode.PROBE_TIMEOUT: status.HTTP_504_GATEWAY_TIMEOUT,
    ErrorCode.MONITOR_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


class AppException(Exception):
    """
    应用异常基类

    用于抛出业务异常，包含错误码和详细信息

    Usage:
        raise AppException(ErrorCode.CONFIG_ERROR, "query_slow_ms 不能大于 query_critical_ms")
    """

    def __init__(
        self,
        code: int = ErrorCode.INTERNAL_ERROR,
        message: Optional[str] = None,
        data: Any = None
    ):
        self.code = code
        self.message = message or ERROR_MESSAGES.get(code, "未知错误")
        self.data = data
        self.http_status = ERROR_HTTP_STATUS.get(code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        super().__init__(self.message)

    def to_response(self) -> JSONResponse:
        """转换为 JSONResponse"""
        return JSONResponse(
            status_code=self.http_status,
            content=self.to_dict()
        )

    def to_dict(self) -> dict:
        """转换为字典"""
        return {
            "code": self.code,
            "message": self.message,
            "data": self.data
        }


class ConfigException(AppException):
    """配置异常"""

    def __init__(self, message: str):
        super().__init__(code=ErrorCode.CONFIG_ERROR, message=message)


class ProbeError(AppException):
    """
    探测查询异常

    probe 为探测名称（如 database_info、liveness），timeout 标记是否因超时失败
    detail 为不带探测名前缀的原始描述
    """

    def __init__(self, probe: str, message: Optional[str] = None, timeout: bool = False):
        self.probe = probe
        self.timeout = timeout
        code = ErrorCode.PROBE_TIMEOUT if timeout else ErrorCode.PROBE_FAILED
        self.detail = message or ERROR_MESSAGES[code]
        super().__init__(
            code=code,
            message=f"{probe}: {self.detail}",
            data={"probe": probe, "timeout": timeout}
        )


class MonitorUnavailableException(AppException):
    """监控器未初始化"""

    def __init__(self, message: str = "数据库监控未启用"):
        super().__init__(code=ErrorCode.MONITOR_UNAVAILABLE, message=message)


# ==================== 异常处理器 ====================

def register_exception_handlers(app):
    """
    注册异常处理器

    在 main.py 中调用：
        from core.errors import register_exception_handlers
        register_exception_handlers(app)
    """
    from fastapi.exceptions import RequestValidationError
    from starlette.exceptions import HTTPException as StarletteHTTPException

    @app.exception_handler(AppException)
    async def handle_app_exception(request, exc: AppException):
        return exc.to_response()

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request, exc: RequestValidationError):
        errors = []
        for error in exc.errors():
            errors.append({
                "field": ".".join(str(loc) for loc in error["loc"]),
                "message": error["msg"],
                "type": error["type"]
            })

        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "code": ErrorCode.VALIDATION_ERROR,
                "message": "参数验证失败",
                "data": {"errors": errors}
            }
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request, exc: StarletteHTTPException):
        code_mapping = {
            404: ErrorCode.RESOURCE_NOT_FOUND,
            503: ErrorCode.SERVICE_UNAVAILABLE,
            500: ErrorCode.INTERNAL_ERROR,
        }

        code = code_mapping.get(exc.status_code, ErrorCode.INTERNAL_ERROR)
        message = str(exc.detail) if exc.detail else ERROR_MESSAGES.get(code, "请求失败")

        return JSONResponse(
            status_code=exc.status_code,
            content={
                "code": code,
                "message": message,
                "data": None
            }
        )
