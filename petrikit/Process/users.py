from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional

from ..Net.elements import new_id

LOGGER = logging.getLogger(__name__)

ADMIN_PREFIX = "ADM"
USER_PREFIX = "USR"

_EMAIL_RE = re.compile(r"^[^@\s,]+@[^@\s,]+\.[^@\s,]+$")


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    USER = "USER"


def _new_user_id(role: UserRole) -> str:
    return new_id(ADMIN_PREFIX if role is UserRole.ADMIN else USER_PREFIX)


@dataclass(frozen=True)
class User:
    """
    Account used for authorization decisions.

    :param email: Login e-mail, unique case-insensitively inside a directory.
    :type email: str
    :param role: Administrator or regular user.
    :type role: UserRole
    :param id: ``"ADM…"`` for administrators, ``"USR…"`` otherwise; generated
        when omitted.
    :type id: str
    """

    email: str
    role: UserRole = UserRole.USER
    id: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "role", UserRole(self.role))
        if not self.id:
            object.__setattr__(self, "id", _new_user_id(self.role))

    @property
    def is_admin(self) -> bool:
        return self.role is UserRole.ADMIN


@dataclass
class UserDirectory:
    """
    In-memory user lookup by id and by e-mail.

    Persistence is handled by :class:`petrikit.IO.store.UserFileStore`; the
    directory itself performs no I/O.
    """

    _by_id: Dict[str, User] = field(default_factory=dict)
    _by_email: Dict[str, User] = field(default_factory=dict)

    @classmethod
    def from_users(cls, users: Iterable[User]) -> "UserDirectory":
        directory = cls()
        for user in users:
            directory.add(user)
        return directory

    def add(self, user: User) -> User:
        key = user.email.lower()
        if user.id in self._by_id:
            raise ValueError(f"User id already registered: {user.id}")
        if key in self._by_email:
            raise ValueError(f"E-mail already registered: {user.email}")
        self._by_id[user.id] = user
        self._by_email[key] = user
        return user

    def register(self, email: str, role: UserRole = UserRole.USER) -> User:
        """
        Create and add a user after checking the e-mail.

        :param email: E-mail address of the new account.
        :param role: Role of the new account.
        :returns: The created user.
        :raises ValueError: If the e-mail is malformed or already taken.
        """
        if not self.is_email_valid(email):
            raise ValueError(f"Invalid e-mail address: {email!r}")
        if not self.is_email_available(email):
            raise ValueError(f"E-mail already registered: {email}")
        user = self.add(User(email=email, role=role))
        LOGGER.info("Registered %s user %s", user.role.value, user.id)
        return user

    def get(self, user_id: str) -> Optional[User]:
        return self._by_id.get(user_id)

    def get_by_email(self, email: str) -> Optional[User]:
        return self._by_email.get(email.lower())

    def is_email_available(self, email: str) -> bool:
        return email.lower() not in self._by_email

    @staticmethod
    def is_email_valid(email: str) -> bool:
        return bool(email) and _EMAIL_RE.match(email) is not None

    def all(self) -> List[User]:
        return list(self._by_id.values())

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._by_id

    def __len__(self) -> int:
        return len(self._by_id)
