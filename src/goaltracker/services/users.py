"""User lookup keyed by the identity provider subject."""

from __future__ import annotations

from typing import Optional

from sqlmodel import select

from ..infra.database import SessionFactory
from ..logging_config import get_logger
from ..models.user import User

logger = get_logger(__name__)


class UserService:
    """Maps authenticated subjects (``sub`` claims) onto local user rows."""

    def __init__(self, session_factory: SessionFactory):
        self.session_factory = session_factory

    def get_by_sub(self, sub: str) -> Optional[User]:
        with self.session_factory() as session:
            user = session.exec(select(User).where(User.sub == sub)).first()
            if user:
                session.expunge(user)
            return user

    def list_users(self) -> list[User]:
        with self.session_factory() as session:
            rows = list(session.exec(select(User).order_by(User.id)).all())  # type: ignore
            session.expunge_all()
            return rows

    def ensure_user(self, sub: str, *, email: str | None = None, name: str | None = None) -> User:
        """Return the user for ``sub``, creating it on first sight.

        Profile fields are filled in when the provider starts sending them but
        never blanked out by a request that omits them.
        """

        sub = (sub or "").strip()
        if not sub:
            raise ValueError("An authenticated subject is required.")

        with self.session_factory() as session:
            user = session.exec(select(User).where(User.sub == sub)).first()
            if user is None:
                user = User(sub=sub, email=email, name=name)
                session.add(user)
                session.commit()
                session.refresh(user)
                logger.info("User created", extra={"user_id": user.id})
            elif (email and email != user.email) or (name and name != user.name):
                user.email = email or user.email
                user.name = name or user.name
                session.add(user)
                session.commit()
                session.refresh(user)
            session.expunge(user)
            return user


__all__ = ["UserService"]
