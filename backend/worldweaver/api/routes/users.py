from typing import Any

from fastapi import APIRouter, HTTPException

from worldweaver import crud
from worldweaver.api.deps import CurrentUser, SessionDep
from worldweaver.core.security import get_password_hash, verify_password
from worldweaver.models import (
    ActivityPublic,
    Message,
    UpdatePassword,
    UserCreate,
    UserPublic,
    UserRegister,
    UserStats,
    UserUpdateMe,
)
from worldweaver.services.activity import list_activity
from worldweaver.services.worlds import get_user_stats

router = APIRouter(prefix="/users", tags=["users"])


@router.post("/signup", response_model=UserPublic)
def register_user(session: SessionDep, user_in: UserRegister) -> Any:
    """
    Create new user without the need to be logged in.
    """
    user = crud.get_user_by_email(session=session, email=user_in.email)
    if user:
        raise HTTPException(
            status_code=400,
            detail="The user with this email already exists in the system",
        )
    user_create = UserCreate.model_validate(user_in)
    user = crud.create_user(session=session, user_create=user_create)
    return user


@router.get("/me", response_model=UserPublic)
def read_user_me(current_user: CurrentUser) -> Any:
    return current_user


@router.patch("/me", response_model=UserPublic)
def update_user_me(
    *, session: SessionDep, user_in: UserUpdateMe, current_user: CurrentUser
) -> Any:
    if user_in.email:
        existing_user = crud.get_user_by_email(session=session, email=user_in.email)
        if existing_user and existing_user.id != current_user.id:
            raise HTTPException(
                status_code=409, detail="User with this email already exists"
            )
    user_data = user_in.model_dump(exclude_unset=True)
    current_user.sqlmodel_update(user_data)
    session.add(current_user)
    session.commit()
    session.refresh(current_user)
    return current_user


@router.patch("/me/password", response_model=Message)
def update_password_me(
    *, session: SessionDep, body: UpdatePassword, current_user: CurrentUser
) -> Any:
    verified, _ = verify_password(body.current_password, current_user.hashed_password)
    if not verified:
        raise HTTPException(status_code=400, detail="Incorrect password")
    if body.current_password == body.new_password:
        raise HTTPException(
            status_code=400, detail="New password cannot be the same as the current one"
        )
    current_user.hashed_password = get_password_hash(body.new_password)
    session.add(current_user)
    session.commit()
    return Message(message="Password updated successfully")


@router.get("/me/stats", response_model=UserStats)
def read_user_stats(session: SessionDep, current_user: CurrentUser) -> Any:
    return get_user_stats(session=session, user_id=current_user.id)


@router.get("/me/activity", response_model=list[ActivityPublic])
def read_user_activity(
    session: SessionDep, current_user: CurrentUser, limit: int = 20
) -> Any:
    return list_activity(session, current_user.id, limit=min(max(limit, 1), 100))
