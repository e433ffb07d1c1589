"""常量定义：HTTP 状态码别名与文件系统保留对象。"""

HTTP_STATUS_OK = 200
HTTP_STATUS_BAD_REQUEST = 400
HTTP_STATUS_FORBIDDEN = 403
HTTP_STATUS_NOT_FOUND = 404
HTTP_STATUS_CONFLICT = 409
HTTP_STATUS_INTERNAL_SERVER_ERROR = 500
HTTP_STATUS_SERVICE_UNAVAILABLE = 503

ROOT_PATH = "/"

# 根目录下的系统文件夹：不可删除、重命名、移动或重新分配归属
PROTECTED_FOLDERS = ("Documents", "Desktop", "Downloads", "Pictures", "Music", "Movies")

SORT_FIELDS = ("name", "dateModified", "size", "type")
SORT_ORDERS = ("asc", "desc")

MAX_LIST_LIMIT = 500

# 统计“最近文件”的时间窗口（天）
RECENT_FILES_DAYS = 7
