"""
数据库告警分发
按告警类型去重（冷却窗口内同类告警只发送一次），并转交给外部告警接收端

注意：send_alert 在任何情况下都不会向调用方抛出异常
"""

import time
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional, Protocol, Union

logger = logging.getLogger(__name__)

ALERT_ACTION = "PERFORMANCE_ALERT"
ALERT_COMPONENT = "DatabaseMonitor"
DEFAULT_COOLDOWN_SECONDS = 5 * 60


class AlertType(str, Enum):
    """告警类型"""
    CRITICAL_SLOW_QUERY = "CRITICAL_SLOW_QUERY"
    HIGH_ERROR_RATE = "HIGH_ERROR_RATE"
    CRITICAL_CONNECTION_COUNT = "CRITICAL_CONNECTION_COUNT"
    CRITICAL_DATABASE_SIZE = "CRITICAL_DATABASE_SIZE"


class AlertSeverity(str, Enum):
    """告警级别"""
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


def alert_type_name(alert_type: Union[AlertType, str]) -> str:
    """统一告警类型为字符串"""
    if isinstance(alert_type, AlertType):
        return alert_type.value
    return str(alert_type)


def severity_for(alert_type: Union[AlertType, str]) -> AlertSeverity:
    """类型名包含 CRITICAL 的为严重告警，其余为警告"""
    if "CRITICAL" in alert_type_name(alert_type):
        return AlertSeverity.CRITICAL
    return AlertSeverity.WARNING


@dataclass(frozen=True)
class AlertEvent:
    """告警事件（仅在分发过程中存在）"""
    type: str
    data: Dict[str, Any]
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def severity(self) -> AlertSeverity:
        return severity_for(self.type)

    @property
    def message(self) -> str:
        return f"Database alert: {self.type}"

    def to_record(self, component: str = ALERT_COMPONENT) -> Dict[str, Any]:
        """转换为告警接收端的记录格式"""
        return {
            "action": ALERT_ACTION,
            "component": component,
            "severity": self.severity.value,
            "message": self.message,
            "metadata": dict(self.data),
            "timestamp": self.occurred_at.isoformat(),
        }


class AlertSink(Protocol):
    """告警接收端（外部协作方：日志库、消息通道等）"""

    def emit(self, record: Dict[str, Any]) -> None:
        ...


class AlertDispatcher:
    """
    告警分发器

    - 以告警类型为键记录最近一次发送时间（与告警内容无关）
    - 冷却窗口内的同类告警直接丢弃，不产生任何副作用
    - 接收端写入失败只记录本地日志，不会再次进入告警流程
    """

    def __init__(
        self,
        sink: AlertSink,
        cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        component: str = ALERT_COMPONENT
    ):
        self._sink = sink
        self._cooldown = cooldown_seconds
        self._clock = clock
        self._component = component
        self._last_sent_at: Dict[str, float] = {}
        self._lock = threading.Lock()

    @property
    def cooldown_seconds(self) -> float:
        return self._cooldown

    def send_alert(self, alert_type: Union[AlertType, str], data: Dict[str, Any]) -> bool:
        """
        发送告警

        Returns:
            是否实际分发（被抑制或内部出错时返回 False）
        """
        try:
            type_name = alert_type_name(alert_type)
            now = self._clock()

            with self._lock:
                last = self._last_sent_at.get(type_name)
                if last is not None and now - last < self._cooldown:
                    return False
                self._last_sent_at[type_name] = now

            event = AlertEvent(type=type_name, data=dict(data or {}))
            logger.error(f"[数据库告警] {type_name}: {event.data}")
            self._forward(event)
            return True
        except Exception as e:
            logger.error(f"处理数据库告警失败 {alert_type}: {e}")
            return False

    def _forward(self, event: AlertEvent) -> None:
        try:
            self._sink.emit(event.to_record(self._component))
        except Exception as e:
            # 接收端失败只记录本地日志
            logger.error(f"保存数据库告警失败 {event.type}: {e}")

    def last_sent_at(self, alert_type: Union[AlertType, str]) -> Optional[float]:
        """获取某类告警最近一次发送时间（时钟读数）"""
        with self._lock:
            return self._last_sent_at.get(alert_type_name(alert_type))
