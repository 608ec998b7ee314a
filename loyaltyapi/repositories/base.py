from abc import ABC
from typing import TypeVar, Generic, Optional, Dict, Any, Type

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session
from pydantic import BaseModel

T = TypeVar("T")
SchemaType = TypeVar("SchemaType", bound=BaseModel)


class BaseRepository(Generic[T, SchemaType], ABC):
    """Base class for repositories - returns pydantic schemas.

    Repositories flush but never commit: the service owning the unit of
    work decides when a ledger transaction ends.
    """

    def __init__(
        self, model_class: Type[T], schema_class: Type[SchemaType], db: Session
    ):
        self.model_class = model_class
        self.schema_class = schema_class
        self.db = db

    def _to_schema(self, model_instance: Any) -> Optional[SchemaType]:
        """SQLAlchemy model -> pydantic schema"""
        if model_instance is None:
            return None

        return self.schema_class.model_validate(model_instance)

    def _upsert_insert(self, model_class: Any):
        """Dialect-specific INSERT that supports ON CONFLICT"""
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert(model_class)
        if dialect == "sqlite":
            return sqlite.insert(model_class)
        raise NotImplementedError(f"Upsert is not supported on {dialect}")

    def get_model(self, id: Any) -> Optional[T]:
        return (
            self.db.query(self.model_class)
            .filter(getattr(self.model_class, "id") == id)
            .first()
        )

    def create(self, **kwargs) -> T:
        """Add a row and flush so generated columns are populated"""
        instance = self.model_class(**kwargs)
        self.db.add(instance)
        self.db.flush()
        self.db.refresh(instance)
        return instance

    def count(self, filters: Optional[Dict[str, Any]] = None) -> int:
        query = self.db.query(self.model_class)

        if filters:
            for key, value in filters.items():
                if hasattr(self.model_class, key):
                    query = query.filter(getattr(self.model_class, key) == value)

        return query.count()

    def delete_where(self, **filters: Any) -> int:
        """Bulk delete by equality filters, returns affected rows"""
        query = self.db.query(self.model_class)
        for key, value in filters.items():
            query = query.filter(getattr(self.model_class, key) == value)
        return query.delete(synchronize_session=False)
