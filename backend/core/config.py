"""
系统配置管理
统一管理所有配置项，支持环境变量覆盖
"""

import logging
from pathlib import Path
from pydantic_settings import BaseSettings
from typing import Dict, List, Optional
from urllib.parse import quote, quote_plus

# 获取backend目录的绝对路径
BACKEND_DIR = Path(__file__).parent.parent.resolve()
ENV_FILE = BACKEND_DIR / ".env"

DEFAULT_JWT_SECRET = "coder-secret-key-change-in-production"


class Settings(BaseSettings):
    """系统配置"""

    # 应用信息
    app_name: str = "Coder Cloud"
    app_version: str = "1.0.0"
    debug: bool = False
    api_prefix: str = "/coder"
    # 当前进程承载的服务：all / auth / user / file
    service_name: str = "all"
    host: str = "0.0.0.0"
    port: int = 8000

    # 数据库配置
    db_host: str = "localhost"
    db_port: int = 3306
    db_user: str = "root"
    db_password: str = ""
    db_name: str = "coder_cloud"
    db_time_zone: str = "+08:00"
    # 完整连接串（优先级高于上面的分项，测试时指向 SQLite）
    database_url: Optional[str] = None

    @property
    def db_url(self) -> str:
        if self.database_url:
            return self.database_url
        encoded_user = quote_plus(self.db_user)
        encoded_pwd = quote_plus(self.db_password)
        return f"mysql+aiomysql://{encoded_user}:{encoded_pwd}@{self.db_host}:{self.db_port}/{self.db_name}"

    @property
    def is_sqlite(self) -> bool:
        return self.db_url.startswith("sqlite")

    # Redis 配置（邮箱验证码）
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: Optional[str] = None

    @property
    def redis_url(self) -> str:
        if self.redis_password:
            encoded_password = quote(self.redis_password, safe="")
            return f"redis://default:{encoded_password}@{self.redis_host}:{self.redis_port}/{self.redis_db}"
        return f"redis://{self.redis_host}:{self.redis_port}/{self.redis_db}"

    # JWT令牌配置
    jwt_secret: str = DEFAULT_JWT_SECRET
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 120
    jwt_refresh_expire_days: int = 7

    # 身份传递配置
    # common: 认证/文件服务使用的白名单；user: 用户服务使用的白名单
    identity_allow_list_profile: str = "common"
    # 显式指定白名单时覆盖 profile
    identity_allow_list: Optional[List[str]] = None

    # 用户与权限数据来源：local 直接查库；remote 调用用户服务
    user_source: str = "local"

    # 服务间调用
    user_service_url: str = "http://localhost:8082"
    service_timeout: float = 10.0

    # 网关配置（路径前缀 -> 下游服务地址）
    gateway_routes: Dict[str, str] = {
        "/coder/auth": "http://localhost:8081",
        "/coder/user": "http://localhost:8082",
        "/coder/role": "http://localhost:8082",
        "/coder/menu": "http://localhost:8082",
        "/coder/user-role": "http://localhost:8082",
        "/coder/role-menu": "http://localhost:8082",
        "/coder/file": "http://localhost:8083",
    }
    gateway_anonymous_paths: List[str] = [
        "/coder/auth/login",
        "/coder/auth/register",
        "/coder/auth/refresh-token",
        "/coder/auth/forgot-password",
        "/coder/auth/reset-password",
        "/coder/auth/send-email-code",
        "/health",
    ]

    # 文件存储
    upload_dir: str = "storage/uploads"
    file_url_prefix: str = "/files"
    max_upload_size: int = 100 * 1024 * 1024  # 100MB
    allowed_file_types: List[str] = [
        "jpg", "jpeg", "png", "gif", "bmp", "webp", "svg",
        "pdf", "doc", "docx", "xls", "xlsx", "ppt", "pptx", "txt", "md", "csv",
        "mp4", "avi", "mov", "mkv", "mp3", "wav", "flac",
        "zip", "rar", "7z", "tar", "gz",
    ]
    forbidden_file_types: List[str] = ["exe", "bat", "cmd", "sh", "com", "scr", "vbs", "jar"]
    file_type_check: bool = True
    # 严格模式下通过 create 接口重复登记同一 MD5 返回冲突
    file_strict_md5: bool = False

    # 邮件配置（找回密码）
    smtp_host: str = "localhost"
    smtp_port: int = 465
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_use_ssl: bool = True
    smtp_timeout: float = 10.0
    mail_from_address: str = "noreply@coder.local"
    mail_from_name: str = "Coder"
    email_code_expire_seconds: int = 300
    email_code_interval_seconds: int = 60
    email_code_max_attempts: int = 5

    # 默认管理员账户配置（首次启动时创建）
    admin_username: str = "admin"
    admin_password: str = "admin123"  # 首次启动后请立即修改
    admin_nickname: str = "系统管理员"

    class Config:
        env_file = str(ENV_FILE)
        env_file_encoding = "utf-8"
        extra = "ignore"


_settings_instance: Optional[Settings] = None


def get_settings() -> Settings:
    """获取配置单例"""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()

        if not _settings_instance.debug and _settings_instance.jwt_secret == DEFAULT_JWT_SECRET:
            logging.getLogger("core.config").warning(
                "[安全警告] 当前使用默认的 JWT_SECRET，请在 .env 文件中配置 JWT_SECRET"
            )
    return _settings_instance
