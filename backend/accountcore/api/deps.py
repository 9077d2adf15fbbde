from collections.abc import Generator

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from accountcore.core.errors import AuthRequired, LedgerError
from accountcore.db.session import SessionLocal
from accountcore.models.user import User


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    except LedgerError:
        # Services validate before writing, so only failure audit facts are pending here.
        db.commit()
        raise
    finally:
        db.close()


def get_current_user(
    db: Session = Depends(get_db),
    x_user_id: int | None = Header(default=None),
) -> User | None:
    if x_user_id is None:
        return None
    user = db.get(User, x_user_id)
    if user is None or not user.is_active:
        raise AuthRequired("Invalid user.", details={"user_id": x_user_id})
    return user
