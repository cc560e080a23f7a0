"""
数据库监控阈值
查询耗时、连接数、数据库大小、错误率的告警界限，进程内只读
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

from .config import Settings, get_settings
from .errors import ConfigException

MB = 1024 * 1024


@dataclass(frozen=True)
class ThresholdConfig:
    """监控阈值配置"""
    query_slow_ms: float = 1000
    query_critical_ms: float = 3000
    connection_warning: int = 15
    connection_critical: int = 20
    db_size_warning_bytes: int = 500 * MB
    db_size_critical_bytes: int = 1000 * MB
    error_rate_warning: float = 0.05  # 5%
    error_rate_critical: float = 0.10  # 10%

    def __post_init__(self):
        for name, value in asdict(self).items():
            if value < 0:
                raise ConfigException(f"阈值 {name} 不能为负数: {value}")

        if self.query_slow_ms > self.query_critical_ms:
            raise ConfigException("query_slow_ms 不能大于 query_critical_ms")
        if self.connection_warning > self.connection_critical:
            raise ConfigException("connection_warning 不能大于 connection_critical")
        if self.db_size_warning_bytes > self.db_size_critical_bytes:
            raise ConfigException("db_size_warning_bytes 不能大于 db_size_critical_bytes")

        for name in ("error_rate_warning", "error_rate_critical"):
            if getattr(self, name) > 1:
                raise ConfigException(f"阈值 {name} 必须在 0-1 之间")
        if self.error_rate_warning > self.error_rate_critical:
            raise ConfigException("error_rate_warning 不能大于 error_rate_critical")

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "ThresholdConfig":
        """从系统配置构建（MB 换算为字节）"""
        settings = settings or get_settings()
        return cls(
            query_slow_ms=settings.query_slow_ms,
            query_critical_ms=settings.query_critical_ms,
            connection_warning=settings.connection_warning,
            connection_critical=settings.connection_critical,
            db_size_warning_bytes=settings.db_size_warning_mb * MB,
            db_size_critical_bytes=settings.db_size_critical_mb * MB,
            error_rate_warning=settings.error_rate_warning,
            error_rate_critical=settings.error_rate_critical,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
