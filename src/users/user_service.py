"""
The user service links OpenID Connect identities to Chefify users.
"""

import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone

from src.service.arg_checkers import not_falsy, require_string
from src.service.exceptions import UserError, UserNotFoundError
from src.service.oidc_auth import OIDCUser
from src.users.user_store import User, UserRepository

logger = logging.getLogger(__name__)

MAX_DISPLAY_NAME_LENGTH = 100


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _default_display_name(identity: OIDCUser) -> str:
    if identity.name and identity.name.strip():
        return identity.name.strip()[:MAX_DISPLAY_NAME_LENGTH]
    if identity.email and "@" in identity.email:
        return identity.email.split("@", 1)[0][:MAX_DISPLAY_NAME_LENGTH]
    return identity.subject[:MAX_DISPLAY_NAME_LENGTH]


class UserService(ABC):
    """
    Operations on Chefify users.
    """

    @abstractmethod
    def sign_in(self, identity: OIDCUser) -> User:
        """
        Get the user for an OIDC identity, creating the user on first sign in.
        """
        raise NotImplementedError()

    @abstractmethod
    def get_user(self, user_id: uuid.UUID) -> User:
        """
        Get a user by ID. Raises UserNotFoundError if the user does not exist.
        """
        raise NotImplementedError()

    @abstractmethod
    def get_user_by_subject(self, subject: str) -> User | None:
        """
        Get a user by OIDC subject, or None if nobody with the subject has signed in.
        """
        raise NotImplementedError()

    @abstractmethod
    def update_profile(self, user_id: uuid.UUID, display_name: str) -> User:
        """
        Update a user's display name.
        """
        raise NotImplementedError()


class DefaultUserService(UserService):
    """The user service backed by a UserRepository."""

    def __init__(self, repository: UserRepository):
        self._repo = not_falsy(repository, "repository")

    def sign_in(self, identity: OIDCUser) -> User:
        not_falsy(identity, "identity")
        now = _utcnow()
        user = self._repo.get_by_subject(identity.subject)
        if user is None:
            user = User(
                subject=identity.subject,
                email=identity.email,
                display_name=_default_display_name(identity),
                created_at=now,
                last_login_at=now,
            )
            try:
                self._repo.add(user)
                logger.info("Created user %s for subject %s", user.id, identity.subject)
                return user
            except UserError:
                # a concurrent sign in for the same subject won the race
                user = self._repo.get_by_subject(identity.subject)
                if user is None:
                    raise
        update = {"last_login_at": now}
        if identity.email and identity.email != user.email:
            update["email"] = identity.email
        return self._repo.update(user.model_copy(update=update))

    def get_user(self, user_id: uuid.UUID) -> User:
        user = self._repo.get(user_id)
        if user is None:
            raise UserNotFoundError(f"User {user_id} not found")
        return user

    def get_user_by_subject(self, subject: str) -> User | None:
        return self._repo.get_by_subject(not_falsy(subject, "subject"))

    def update_profile(self, user_id: uuid.UUID, display_name: str) -> User:
        display_name = require_string(display_name, "display_name", MAX_DISPLAY_NAME_LENGTH)
        user = self.get_user(user_id)
        return self._repo.update(user.model_copy(update={"display_name": display_name}))
