from __future__ import annotations

import logging
import secrets
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from docstore.constants import DEFAULT_TOKEN_MAX_AGE

logger = logging.getLogger(__name__)

TOKEN_SEPARATOR = "_"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _to_millis(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


class AccessTokenIssuer:
    """Time-boxed tokens for the anonymous document endpoint.

    Tokens look like ``{issued_at_epoch_millis}_{random}``. They only gate a
    single low-value document fetch and are not signed.
    """

    def __init__(
        self,
        max_age: timedelta = DEFAULT_TOKEN_MAX_AGE,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.max_age = max_age
        self.clock = clock

    def issue(self) -> str:
        return f"{_to_millis(self.clock())}{TOKEN_SEPARATOR}{secrets.token_urlsafe(9).replace('_', '-')}"

    def issued_at(self, token: str) -> datetime | None:
        parts = token.split(TOKEN_SEPARATOR)
        if len(parts) < 2:
            return None
        try:
            return datetime.fromtimestamp(int(parts[0]) / 1000, tz=timezone.utc)
        except (ValueError, OverflowError, OSError):
            return None

    def expires_at(self, token: str, max_age: timedelta | None = None) -> datetime | None:
        issued_at = self.issued_at(token)
        if issued_at is None:
            return None
        try:
            return issued_at + (self.max_age if max_age is None else max_age)
        except OverflowError:
            return None

    def validate(self, token: str, max_age: timedelta | None = None) -> bool:
        issued_at = self.issued_at(token)
        if issued_at is None:
            logger.warning("Rejected access token: invalid format")
            return False

        age = self.clock() - issued_at
        if age < timedelta(0):
            logger.warning("Rejected access token: issued in the future")
            return False
        if age > (self.max_age if max_age is None else max_age):
            logger.info("Rejected access token: expired")
            return False
        return True
