"""
pytest 测试配置入口
在任何测试模块加载之前设置环境变量，fixtures 位于 tests/conftest.py
"""

import os

# 在导入任何其他模块之前设置测试环境变量
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("HEALTH_CHECK_INTERVAL", "0")
os.environ.setdefault("ENV", "test")
