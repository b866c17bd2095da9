from datetime import timedelta

from sqlmodel import Session

from worldweaver import crud
from worldweaver.core import security
from worldweaver.models import User, UserCreate

TEST_PASSWORD = "correct-horse-battery"


def make_user(session: Session, email: str, *, is_superuser: bool = False) -> User:
    return crud.create_user(
        session=session,
        user_create=UserCreate(email=email, password=TEST_PASSWORD, is_superuser=is_superuser),
    )


def auth_headers(user: User) -> dict[str, str]:
    token = security.create_access_token(user.id, expires_delta=timedelta(minutes=30))
    return {"Authorization": f"Bearer {token}"}
