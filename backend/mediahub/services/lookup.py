"""Primary-key lookups shared by the services."""

import uuid
from typing import TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from mediahub.core.exceptions import NotFoundError, ValidationError
from mediahub.db.base import BaseModel

ModelT = TypeVar("ModelT", bound=BaseModel)


async def get_or_raise(db: AsyncSession, model: type[ModelT], record_id: uuid.UUID) -> ModelT:
    """Load a record by id; NotFoundError when it does not exist."""
    record = await db.get(model, record_id)
    if record is None:
        raise NotFoundError(
            f"{model.__name__} not found",
            {"entity": model.__name__, "id": str(record_id)},
        )
    return record


async def require_reference(
    db: AsyncSession,
    model: type[ModelT],
    record_id: uuid.UUID,
    field: str,
) -> ModelT:
    """
    Load a record named by a foreign key in the input.

    A dangling reference is bad input, so it raises ValidationError rather
    than NotFoundError.
    """
    record = await db.get(model, record_id)
    if record is None:
        raise ValidationError(
            f"{field} does not reference an existing {model.__name__}",
            {"field": field, "id": str(record_id)},
        )
    return record
