"""扩展名/MIME 与文件类型之间的映射。"""

from __future__ import annotations

from typing import Optional

from app.packages.portfolio.core.enums import FileType

_EXTENSION_GROUPS = {
    FileType.IMAGE: {"jpg", "jpeg", "png", "gif", "bmp", "svg", "webp", "tiff"},
    FileType.VIDEO: {"mp4", "avi", "mov", "wmv", "flv", "webm", "mkv"},
    FileType.AUDIO: {"mp3", "wav", "flac", "aac", "ogg", "wma"},
    FileType.ARCHIVE: {"zip", "rar", "7z", "tar", "gz", "bz2"},
    FileType.CODE: {
        "js", "ts", "jsx", "tsx", "html", "css", "scss", "json", "xml",
        "py", "java", "cpp", "c", "php", "rb", "go", "rs",
    },
    FileType.DOCUMENT: {"pdf", "doc", "docx", "rtf", "odt", "xls", "xlsx", "ppt", "pptx"},
    FileType.TEXT: {"txt", "md", "log", "csv"},
}

_MIME_PREFIXES = (
    ("image/", FileType.IMAGE),
    ("video/", FileType.VIDEO),
    ("audio/", FileType.AUDIO),
    ("text/", FileType.TEXT),
)

# 无扩展名的虚拟文件按类型补齐默认扩展名
_DEFAULT_EXTENSIONS = {
    FileType.DOCUMENT: "pdf",
    FileType.VIDEO: "mp4",
    FileType.IMAGE: "jpg",
    FileType.AUDIO: "mp3",
    FileType.ARCHIVE: "zip",
    FileType.CODE: "js",
    FileType.TEXT: "txt",
    FileType.OTHER: "txt",
}


def detect_file_type(extension: Optional[str], mime_type: Optional[str] = None) -> FileType:
    """优先按扩展名判定类型，无法判定时回退到 MIME 前缀。"""
    ext = (extension or "").lower()
    for file_type, group in _EXTENSION_GROUPS.items():
        if ext in group:
            return file_type
    mime = (mime_type or "").lower()
    if mime == "application/pdf":
        return FileType.DOCUMENT
    for prefix, file_type in _MIME_PREFIXES:
        if mime.startswith(prefix):
            return file_type
    return FileType.OTHER


def default_extension_for(file_type: FileType) -> Optional[str]:
    if file_type == FileType.FOLDER:
        return None
    return _DEFAULT_EXTENSIONS.get(file_type, "txt")
