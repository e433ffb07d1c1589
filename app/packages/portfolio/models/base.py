"""模型基类：声明式基类与时间戳字段。

``date_created`` / ``date_modified`` 均以 UTC 入库；服务层在每次写入时显式刷新
``date_modified``，批量改写子树路径时也不例外。
"""

from datetime import datetime

from sqlalchemy import DateTime, MetaData
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from app.packages.portfolio.core.timezone import utc_now

metadata_obj = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_name)s",
        "pk": "pk_%(table_name)s",
    }
)


class Base(DeclarativeBase):
    metadata = metadata_obj


class TimestampMixin:
    date_created: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, nullable=False)
    date_modified: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, nullable=False)
