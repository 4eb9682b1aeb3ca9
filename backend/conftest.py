"""
pytest 测试配置入口
在任何项目模块加载之前设置测试环境变量
"""

import os
import tempfile

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-unit-tests-only")
os.environ.setdefault("UPLOAD_DIR", os.path.join(tempfile.gettempdir(), "coder-cloud-test-uploads"))
os.environ.setdefault("SERVICE_NAME", "all")
os.environ.setdefault("USER_SOURCE", "local")
