"""
统一响应格式
监控接口返回 {"code", "message", "data"} 结构，data 可以是监控组件的值对象
"""

from typing import Any, Generic, TypeVar, Optional
from pydantic import BaseModel


T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """统一API响应"""
    code: int = 200
    message: str = "success"
    data: Optional[T] = None


def _to_payload(data: Any) -> Any:
    """值对象（QueryStats、LargeTable 等）通过 to_dict 导出，列表逐项转换"""
    if isinstance(data, (list, tuple)):
        return [_to_payload(item) for item in data]
    to_dict = getattr(data, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    return data


def success(data: Any = None, message: str = "success") -> dict:
    """成功响应"""
    return {"code": 200, "message": message, "data": _to_payload(data)}
