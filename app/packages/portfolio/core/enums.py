"""枚举定义：约束文件类型与排序方式的可选值。"""

from enum import Enum


class FileType(str, Enum):
    """文件系统条目类型，序列化时使用大写名称。"""

    FOLDER = "FOLDER"
    IMAGE = "IMAGE"
    VIDEO = "VIDEO"
    AUDIO = "AUDIO"
    DOCUMENT = "DOCUMENT"
    ARCHIVE = "ARCHIVE"
    CODE = "CODE"
    TEXT = "TEXT"
    OTHER = "OTHER"


class SortByEnum(str, Enum):
    NAME = "name"
    DATE_MODIFIED = "dateModified"
    SIZE = "size"
    TYPE = "type"


class SortOrderEnum(str, Enum):
    ASC = "asc"
    DESC = "desc"


class BlobBackendEnum(str, Enum):
    """字节存储后端类型。"""

    LOCAL = "LOCAL"
    S3 = "S3"
