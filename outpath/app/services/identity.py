#
# Acting-identity context ("run as user").
#
# The impersonated username lives in a ContextVar, so each thread or asyncio
# task sees its own value and the previous value is restored when the scope
# exits, whether normally or by an exception.
#
from __future__ import annotations

import contextvars
from contextlib import contextmanager
from typing import Callable, Iterator, TypeVar

from .scheduler_errors import UnknownIdentity


T = TypeVar("T")

_ACTING_USER: contextvars.ContextVar[str | None] = contextvars.ContextVar("outpath_acting_user", default=None)


def current_identity() -> str | None:
    return _ACTING_USER.get()


class IdentityContext:
    def __init__(self, *, identity_exists: Callable[[str], bool] | None = None):
        self._identity_exists = identity_exists

    @contextmanager
    def impersonate(self, username: str) -> Iterator[str]:
        name = (username or "").strip()
        if not name:
            raise UnknownIdentity(username)
        if self._identity_exists is not None and not self._identity_exists(name):
            raise UnknownIdentity(name)
        token = _ACTING_USER.set(name)
        try:
            yield name
        finally:
            _ACTING_USER.reset(token)

    def run_as(self, username: str, work: Callable[[], T]) -> T:
        with self.impersonate(username):
            return work()
