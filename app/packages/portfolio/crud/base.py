"""CRUD 基类：为各实体提供通用的数据访问方法。"""

from typing import Any, Dict, Generic, Optional, Type, TypeVar

from sqlalchemy.orm import Session

from app.packages.portfolio.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class CRUDBase(Generic[ModelType]):
    """封装常见的查询、创建与保存逻辑，减少重复代码。

    ``auto_commit=False`` 时仅 flush，由调用方统一提交，便于把多条写入放入同一事务。
    """

    def __init__(self, model: Type[ModelType]):
        self.model = model

    def get(self, db: Session, id: Any) -> Optional[ModelType]:
        return self.query(db).filter(self.model.id == id).first()

    def create(self, db: Session, obj_in: Dict[str, Any], *, auto_commit: bool = True) -> ModelType:
        db_obj = self.model(**obj_in)
        db.add(db_obj)
        self._finish(db, db_obj, auto_commit)
        return db_obj

    def save(self, db: Session, db_obj: ModelType, *, auto_commit: bool = True) -> ModelType:
        db.add(db_obj)
        self._finish(db, db_obj, auto_commit)
        return db_obj

    def query(self, db: Session):
        return db.query(self.model)

    @staticmethod
    def _finish(db: Session, db_obj: ModelType, auto_commit: bool) -> None:
        if not auto_commit:
            db.flush()
            return
        try:
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(db_obj)
