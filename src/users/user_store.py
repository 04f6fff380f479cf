"""
Storage for Chefify users.
"""

import threading
import uuid
from abc import ABC, abstractmethod
from datetime import datetime

from pydantic import BaseModel, Field

from src.service.exceptions import UserError, UserNotFoundError


class User(BaseModel):
    """A Chefify user, linked to an OpenID Connect subject."""

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    subject: str
    email: str | None = None
    display_name: str
    created_at: datetime
    last_login_at: datetime


class UserRepository(ABC):
    """
    Storage for users. Users are unique by ID and by subject.
    """

    @abstractmethod
    def get(self, user_id: uuid.UUID) -> User | None:
        """Get a user by ID, or None if the user does not exist."""
        raise NotImplementedError()

    @abstractmethod
    def get_by_subject(self, subject: str) -> User | None:
        """Get a user by OIDC subject, or None if the user does not exist."""
        raise NotImplementedError()

    @abstractmethod
    def add(self, user: User) -> User:
        """Add a new user. Raises UserError if the ID or subject is taken."""
        raise NotImplementedError()

    @abstractmethod
    def update(self, user: User) -> User:
        """Replace an existing user. Raises UserNotFoundError if the user does not exist."""
        raise NotImplementedError()


class InMemoryUserRepository(UserRepository):
    """A thread safe, process local user repository."""

    def __init__(self):
        self._users: dict[uuid.UUID, User] = {}
        self._by_subject: dict[str, uuid.UUID] = {}
        self._lock = threading.Lock()

    def get(self, user_id: uuid.UUID) -> User | None:
        with self._lock:
            return self._users.get(user_id)

    def get_by_subject(self, subject: str) -> User | None:
        with self._lock:
            user_id = self._by_subject.get(subject)
            return self._users.get(user_id) if user_id else None

    def add(self, user: User) -> User:
        with self._lock:
            if user.id in self._users:
                raise UserError(f"User {user.id} already exists")
            if user.subject in self._by_subject:
                raise UserError(f"A user for subject {user.subject} already exists")
            self._users[user.id] = user
            self._by_subject[user.subject] = user.id
        return user

    def update(self, user: User) -> User:
        with self._lock:
            existing = self._users.get(user.id)
            if existing is None:
                raise UserNotFoundError(f"User {user.id} not found")
            if existing.subject != user.subject:
                raise UserError("The subject of a user cannot change")
            self._users[user.id] = user
        return user
