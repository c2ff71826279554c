# src/autobuild/services/login.py
"""RetryingLoginService: bounded login with tenacity.

An identity source may not be ready right after a host restart, so login
polls it a bounded number of times with a fixed delay and gives up with
LoginError carrying the last error seen.
"""

from typing import Protocol

from tenacity import AsyncRetrying, RetryError, retry_if_exception_type, stop_after_attempt, wait_fixed

from autobuild.contracts.errors import LoginError
from autobuild.contracts.services import UserIdentity
from autobuild.core.logging import get_logger

logger = get_logger(__name__)


class Authenticator(Protocol):
    """Source of the current user identity."""

    async def fetch_current_user(self) -> UserIdentity:
        """Return the current user.

        Raises:
            Exception: Any error; the login service retries it
        """
        ...


class RetryingLoginService:
    """LoginService that retries its authenticator up to a bound.

    The identity is cached once established.

    Example:
        login = RetryingLoginService(EnvironmentAuthenticator("ci-bot"), attempts=10, delay_seconds=0.25)
        user = await login.login()
    """

    def __init__(self, authenticator: Authenticator, *, attempts: int = 10, delay_seconds: float = 0.25) -> None:
        if attempts < 1:
            raise ValueError("attempts must be >= 1")
        if delay_seconds < 0:
            raise ValueError("delay_seconds must be >= 0")
        self._authenticator = authenticator
        self._attempts = attempts
        self._delay = delay_seconds
        self._identity: UserIdentity | None = None

    @property
    def identity(self) -> UserIdentity | None:
        return self._identity

    async def login(self) -> UserIdentity:
        """Return the current user, fetching it if not yet known.

        Raises:
            LoginError: If every attempt failed
        """
        if self._identity is not None:
            return self._identity

        logger.info("Logging in...")
        try:
            async for attempt_state in AsyncRetrying(
                stop=stop_after_attempt(self._attempts),
                wait=wait_fixed(self._delay),
                retry=retry_if_exception_type(Exception),
                reraise=False,  # We catch RetryError and convert to LoginError
            ):
                with attempt_state:
                    identity = await self._authenticator.fetch_current_user()
        except RetryError as e:
            last_error = e.last_attempt.exception()
            raise LoginError(
                f"Unable to log in after {self._attempts} attempts! ({last_error})",
                detail=repr(last_error),
            ) from last_error

        logger.info("Logged in", user=identity.user_id)
        self._identity = identity
        return identity
