"""
系统配置管理
统一管理所有配置项，支持环境变量覆盖
"""

from pathlib import Path
from pydantic_settings import BaseSettings
from typing import Optional
from urllib.parse import quote_plus

# 获取backend目录的绝对路径
BACKEND_DIR = Path(__file__).parent.parent.resolve()
ENV_FILE = BACKEND_DIR / ".env"


class Settings(BaseSettings):
    """系统配置"""

    # 应用信息
    app_name: str = "Marketplace DB Monitor"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"

    # 数据库配置（DATABASE_URL 优先于分项配置）
    database_url: Optional[str] = None
    db_host: str = "localhost"
    db_port: int = 5432
    db_user: str = "postgres"
    db_password: str = ""
    db_name: str = "marketplace"
    db_pool_size: int = 10
    db_max_overflow: int = 20

    @property
    def db_url(self) -> str:
        if self.database_url:
            return self.database_url
        encoded_user = quote_plus(self.db_user)
        encoded_pwd = quote_plus(self.db_password)
        return f"postgresql+asyncpg://{encoded_user}:{encoded_pwd}@{self.db_host}:{self.db_port}/{self.db_name}"

    # 数据库监控开关（关闭后 track_query 为空操作）
    db_monitoring_enabled: bool = True

    # 查询耗时阈值（毫秒）
    query_slow_ms: float = 1000
    query_critical_ms: float = 3000

    # 活跃连接数阈值
    connection_warning: int = 15
    connection_critical: int = 20

    # 数据库大小阈值（MB）
    db_size_warning_mb: int = 500
    db_size_critical_mb: int = 1000

    # 错误率阈值（0-1）
    error_rate_warning: float = 0.05
    error_rate_critical: float = 0.10

    # 单条探测查询超时（秒）
    probe_timeout_seconds: float = 5.0

    # 同类告警抑制窗口（秒）
    alert_cooldown_seconds: float = 300.0

    # 定期健康检查间隔（秒），0 表示关闭
    health_check_interval: int = 30

    # 健康指标保留时长（小时），0 表示不清理
    metrics_retention_hours: int = 168

    # 健康历史查询默认返回条数
    metrics_page_size: int = 500

    class Config:
        env_file = str(ENV_FILE)
        env_file_encoding = "utf-8"
        extra = "ignore"


_settings_instance: Optional[Settings] = None


def get_settings() -> Settings:
    """
    获取配置实例
    首次调用时从环境变量和 .env 加载
    """
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance


def reload_settings() -> Settings:
    """重新加载配置（测试或运维调整阈值后使用）"""
    global _settings_instance
    _settings_instance = Settings()
    return _settings_instance
