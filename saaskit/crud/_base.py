"""Base class for CRUD operations."""

from typing import Any, Generic, Optional, Type, TypeVar, Union
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from saaskit.core.exceptions import ImmutableFieldError
from saaskit.models._base import Base

ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)

_DIALECT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def dialect_insert(db: AsyncSession, model: Type[Base]):
    """Build an INSERT for the session's dialect that supports ON CONFLICT clauses.

    Args:
    ----
        db (AsyncSession): The database session, used to look up the bound dialect.
        model (Type[Base]): The model to insert into.

    Returns:
    -------
        The dialect-specific Insert construct.

    Raises:
    ------
        NotImplementedError: If the dialect has no insert-or-update support.

    """
    dialect_name = db.get_bind().dialect.name
    try:
        insert = _DIALECT_INSERTS[dialect_name]
    except KeyError as e:
        raise NotImplementedError(f"Upserts are not supported on {dialect_name}") from e
    return insert(model)


class CRUDBase(Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
    """Base class for CRUD operations without user scoping.

    Access control happens in the API layer; these methods trust their callers.
    """

    immutable_fields = ["id", "created_at"]

    def __init__(self, model: Type[ModelType]):
        """Initialize the CRUD object.

        Args:
        ----
            model (Type[ModelType]): The model to be used in the CRUD operations.

        """
        self.model = model

    async def get(self, db: AsyncSession, id: UUID) -> Optional[ModelType]:
        """Get a single object by ID.

        Args:
        ----
            db (AsyncSession): The database session.
            id (UUID): The UUID of the object to get.

        Returns:
        -------
            Optional[ModelType]: The object with the given ID.

        """
        result = await db.execute(select(self.model).where(self.model.id == id))
        return result.unique().scalar_one_or_none()

    async def create(self, db: AsyncSession, *, obj_in: Union[CreateSchemaType, dict]) -> ModelType:
        """Create a new object.

        Args:
        ----
            db (AsyncSession): The database session.
            obj_in (CreateSchemaType): The object to create.

        Returns:
        -------
            ModelType: The created object.

        """
        if not isinstance(obj_in, dict):
            obj_in = obj_in.model_dump(exclude_unset=True)
        db_obj = self.model(**obj_in)

        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        return db_obj

    async def update(
        self,
        db: AsyncSession,
        *,
        db_obj: ModelType,
        obj_in: Union[UpdateSchemaType, dict[str, Any]],
    ) -> ModelType:
        """Update an object.

        Args:
        ----
            db (AsyncSession): The database session.
            db_obj (ModelType): The object to update.
            obj_in (Union[UpdateSchemaType, Dict[str, Any]]): The new object data.

        Returns:
        -------
            ModelType: The updated object

        """
        if not isinstance(obj_in, dict):
            obj_in = obj_in.model_dump(exclude_unset=True)

        self._validate_no_update_of_immutable_attributes(db_obj, obj_in)

        for key, value in obj_in.items():
            if hasattr(db_obj, key):
                setattr(db_obj, key, value)

        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        return db_obj

    def _validate_no_update_of_immutable_attributes(
        self, db_obj: ModelType, obj_in: dict[str, Any]
    ) -> None:
        """Validate that no immutable attributes are being modified.

        Args:
        ----
            db_obj (ModelType): The existing object in the database.
            obj_in (Dict[str, Any]): The new data intended for update.

        Raises:
        ------
            ImmutableFieldError: If an immutable field is being modified.

        """
        for key in self.immutable_fields:
            original_value = getattr(db_obj, key, None)
            new_value = obj_in.get(key)

            if original_value is None:
                continue

            if new_value is not None and new_value != original_value:
                raise ImmutableFieldError(key)
