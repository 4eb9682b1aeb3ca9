"""
文件存储工具
处理文件校验、落盘路径生成和安全路径检查
"""

import hashlib
import uuid
from pathlib import Path
from typing import Optional, Tuple
from datetime import datetime
import logging

import filetype

from core.config import get_settings

logger = logging.getLogger(__name__)

# 无法通过魔数识别的纯文本类型
TEXT_EXTENSIONS = {"txt", "md", "csv", "json", "xml", "svg"}

# 扩展名变体
_EXT_ALIASES = {"jpeg": "jpg", "tif": "tiff"}

CATEGORY_EXTENSIONS = {
    "IMAGE": {"jpg", "jpeg", "png", "gif", "bmp", "webp", "svg"},
    "DOCUMENT": {"pdf", "doc", "docx", "xls", "xlsx", "ppt", "pptx", "txt", "md", "csv"},
    "VIDEO": {"mp4", "avi", "mov", "mkv", "flv", "wmv"},
    "AUDIO": {"mp3", "wav", "flac", "aac", "ogg"},
}


def get_extension(filename: str) -> str:
    return Path(filename or "").suffix.lower().lstrip(".")


def compute_md5(content: bytes) -> str:
    """计算内容 MD5"""
    return hashlib.md5(content).hexdigest()


def detect_category(mime_type: Optional[str], extension: str) -> str:
    """根据 MIME 类型和扩展名判断文件分类"""
    if mime_type:
        major = mime_type.split("/", 1)[0]
        if major == "image":
            return "IMAGE"
        if major == "video":
            return "VIDEO"
        if major == "audio":
            return "AUDIO"
    for category, extensions in CATEGORY_EXTENSIONS.items():
        if extension in extensions:
            return category
    return "OTHER"


def format_file_size(size: Optional[int]) -> str:
    """格式化文件大小"""
    if size is None or size < 0:
        return "0 B"
    if size < 1024:
        return f"{size} B"
    if size < 1024 ** 2:
        return f"{size / 1024:.2f} KB"
    if size < 1024 ** 3:
        return f"{size / 1024 ** 2:.2f} MB"
    return f"{size / 1024 ** 3:.2f} GB"


class StorageManager:
    """文件存储管理器"""

    def __init__(self, upload_dir: Optional[str] = None):
        settings = get_settings()
        # 使用绝对路径，避免工作目录差异导致多处生成 storage
        self.upload_dir = Path(upload_dir or settings.upload_dir).resolve()
        self.max_size = settings.max_upload_size
        self.allowed_extensions = {ext.lower() for ext in settings.allowed_file_types}
        self.forbidden_extensions = {ext.lower() for ext in settings.forbidden_file_types}
        self.check_content = settings.file_type_check

        self.upload_dir.mkdir(parents=True, exist_ok=True)

    def generate_path(self, original_filename: str, business_type: Optional[str] = None) -> Tuple[str, Path]:
        """
        生成唯一存储路径：{business}/YYYY/MM/{uuid}.{ext}

        Returns:
            (相对路径, 完整路径)
        """
        ext = get_extension(original_filename)
        file_id = uuid.uuid4().hex
        filename = f"{file_id}.{ext}" if ext else file_id

        dir_name = (business_type or "files").lower()
        date_dir = datetime.now().strftime("%Y/%m")
        relative_path = f"{dir_name}/{date_dir}/{filename}"
        return relative_path, self.upload_dir / dir_name / date_dir / filename

    def validate_file(self, filename: str, size: int, content: Optional[bytes] = None) -> Tuple[bool, Optional[str]]:
        """
        验证文件

        Returns:
            (是否有效, 错误信息)
        """
        if size <= 0:
            return False, "上传文件不能为空"
        if size > self.max_size:
            return False, f"文件大小超过限制（最大 {format_file_size(self.max_size)}）"

        ext = get_extension(filename)
        if ext in self.forbidden_extensions:
            return False, f"禁止上传的文件类型: {ext}"
        if self.allowed_extensions and ext not in self.allowed_extensions:
            return False, f"不支持的文件类型: {ext or '无扩展名'}"

        if content and self.check_content:
            kind = filetype.guess(content)
            if kind is None:
                if ext not in TEXT_EXTENSIONS:
                    logger.warning(f"无法识别文件真实类型: {filename}")
            else:
                detected = _EXT_ALIASES.get(kind.extension.lower(), kind.extension.lower())
                if _EXT_ALIASES.get(ext, ext) != detected:
                    return False, f"文件类型不匹配：扩展名为 {ext}，实际类型为 {kind.extension}（{kind.mime}）"

        return True, None

    def guess_mime(self, content: bytes, fallback: Optional[str] = None) -> Optional[str]:
        kind = filetype.guess(content) if content else None
        return kind.mime if kind else fallback

    def save(self, content: bytes, full_path: Path) -> None:
        """写入文件"""
        full_path.parent.mkdir(parents=True, exist_ok=True)
        with open(full_path, "wb") as f:
            f.write(content)

    def _is_safe_path(self, path: Path) -> bool:
        """检查路径是否位于上传目录内（防止路径遍历）"""
        return path.resolve().is_relative_to(self.upload_dir)

    def get_file_path(self, relative_path: str) -> Optional[Path]:
        """获取文件完整路径，不存在或路径不安全返回 None"""
        if ".." in relative_path or relative_path.startswith("/"):
            logger.warning(f"检测到可疑路径: {relative_path}")
            return None

        full_path = self.upload_dir / relative_path
        if not self._is_safe_path(full_path):
            logger.warning(f"路径遍历尝试被阻止: {relative_path}")
            return None

        if full_path.is_file():
            return full_path
        return None


_storage_manager: Optional[StorageManager] = None


def get_storage_manager() -> StorageManager:
    """获取存储管理器实例"""
    global _storage_manager
    if _storage_manager is None:
        _storage_manager = StorageManager()
    return _storage_manager


def reset_storage_manager() -> None:
    """重置存储管理器（配置变更后调用）"""
    global _storage_manager
    _storage_manager = None
