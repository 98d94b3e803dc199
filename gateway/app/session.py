"""Identity context shared by request handlers and the spend generator."""

import logging
from dataclasses import dataclass

from gateway.app.errors import IdentityNotSetError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IdentityContext:
    """Enrolled ledger identity that operations are signed as."""

    username: str
    organization: str


class IdentityStore:
    """Single active identity slot for the whole process.

    The most recent successful registration wins. Readers racing a
    registration may observe either the old or the new identity.
    """

    def __init__(self) -> None:
        self._current: IdentityContext | None = None

    @property
    def current(self) -> IdentityContext | None:
        return self._current

    def set(self, identity: IdentityContext) -> None:
        previous = self._current
        self._current = identity
        if previous is not None and previous != identity:
            logger.info(
                "Active identity replaced: %s@%s -> %s@%s",
                previous.username,
                previous.organization,
                identity.username,
                identity.organization,
            )

    def require(self) -> IdentityContext:
        """Return the active identity or fail fast.

        Raises:
            IdentityNotSetError: If no user has been registered yet
        """
        if self._current is None:
            raise IdentityNotSetError(
                "No registered user - POST /users before issuing ledger operations"
            )
        return self._current
