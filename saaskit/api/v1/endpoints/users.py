"""The API module that contains the endpoints for users.

Users are owned by the identity provider; these endpoints register the
authenticated identity locally and read it back.
"""

from typing import Optional

from fastapi import Depends, HTTPException
from fastapi_auth0 import Auth0User
from sqlalchemy.ext.asyncio import AsyncSession

from saaskit import crud, schemas
from saaskit.api import deps
from saaskit.api.auth import auth0
from saaskit.api.router import TrailingSlashRouter
from saaskit.core.logging import logger

router = TrailingSlashRouter()


@router.get("", response_model=schemas.User)
async def read_user(
    *,
    current_user: schemas.User = Depends(deps.get_user),
) -> schemas.User:
    """Get current user.

    Args:
    ----
        current_user (User): The current user.

    Returns:
    -------
        schemas.User: The user object.

    """
    return current_user


@router.post("/create_or_update", response_model=schemas.User)
async def create_or_update_user(
    user_data: schemas.UserCreate,
    db: AsyncSession = Depends(deps.get_db),
    auth0_user: Optional[Auth0User] = Depends(auth0.get_user),
) -> schemas.User:
    """Create the authenticated user in the database, or update it if it exists.

    Can only create user with the same email as the authenticated user.

    Args:
        user_data (schemas.UserCreate): The user object to be created.
        db (AsyncSession): Database session dependency to handle database operations.
        auth0_user (Auth0User): Authenticated auth0 user.

    Returns:
        schemas.User: The created or updated user.

    Raises:
        HTTPException: If the user is not authorized to create this user.
        HTTPException: If a user with the same email but different auth0_id already exists.
    """
    if not auth0_user or user_data.email != auth0_user.email:
        logger.error(f"Not authorized to create user {user_data.email}")
        raise HTTPException(
            status_code=403,
            detail="You are not authorized to create this user.",
        )

    existing_user = await crud.user.get_by_email(db, email=user_data.email)

    if existing_user:
        if existing_user.auth0_id and existing_user.auth0_id != auth0_user.id:
            logger.warning(
                f"Auth0 ID conflict for user {user_data.email}: "
                f"existing={existing_user.auth0_id}, incoming={auth0_user.id}"
            )
            raise HTTPException(
                status_code=409,
                detail={
                    "error": "auth0_id_conflict",
                    "message": "A user with this email already exists but with a different "
                    "Auth0 ID.",
                },
            )

        user = await crud.user.update(
            db,
            db_obj=existing_user,
            obj_in=schemas.UserUpdate(
                full_name=user_data.full_name or existing_user.full_name,
                auth0_id=auth0_user.id,
            ),
        )
        return schemas.User.model_validate(user)

    user = await crud.user.create(
        db, obj_in={**user_data.model_dump(), "auth0_id": auth0_user.id}
    )
    logger.info(f"Created new user {user.email}.")
    return schemas.User.model_validate(user)
