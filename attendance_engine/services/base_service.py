# attendance_engine/services/base_service.py
"""Base service with common CRUD operations."""
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from typing import Type, Any, Dict, Optional, TypeVar, Generic

# Define generic type
T = TypeVar('T')


def violates_constraint(error: IntegrityError, model, name: str) -> bool:
    """Whether ``error`` was raised by the unique constraint ``name`` on ``model``.

    PostgreSQL names the constraint in its message; SQLite lists its columns.
    """
    message = str(error.orig)
    if name and name in message:
        return True
    for constraint in model.__table__.constraints:
        if constraint.name == name:
            columns = ", ".join(f"{model.__tablename__}.{column.name}" for column in constraint.columns)
            return f"UNIQUE constraint failed: {columns}" in message
    return False


class BaseService(Generic[T]):
    def __init__(self, model: Type[T], db: AsyncSession):
        self.model = model
        self.db = db

    async def get(self, id: Any) -> Optional[T]:
        stmt = select(self.model).where(self.model.id == id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def add(self, obj_in: Dict) -> T:
        """Stage a new row in the current transaction without committing."""
        obj = self.model(**obj_in)
        self.db.add(obj)
        await self.db.flush()
        return obj

    async def create(self, obj_in: Dict) -> T:
        try:
            obj = await self.add(obj_in)
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise self.translate_integrity_error(e)
        return obj

    async def commit(self) -> None:
        """Commit the current transaction, translating constraint violations."""
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise self.translate_integrity_error(e)

    def translate_integrity_error(self, error: IntegrityError) -> Exception:
        """Map a constraint violation to a domain exception; services override."""
        return error
