"""Time-limited voice channel credentials.

The voice service is separate from the game; the server only hands out
credentials for it.
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Callable

import jwt

logger = logging.getLogger(__name__)

TOKEN_ALGORITHM = "HS256"
PUBLISHER_ROLE = "publisher"


class CredentialError(ValueError):
    """Raised when a credential cannot be issued or does not verify."""


class CredentialIssuer(ABC):
    """Issues voice channel credentials."""

    @abstractmethod
    def issue(self, channel_name: str, uid: int) -> str:
        """Return a credential for uid to publish on channel_name."""
        pass


class SignedTokenIssuer(CredentialIssuer):
    """JWT credentials signed with the app certificate.

    Claims: app_id, channel, uid, role, iat and exp. The voice service
    checks them with the same certificate (see verify).
    """

    def __init__(
        self,
        app_id: str,
        app_certificate: str,
        ttl_seconds: int = 3600,
        clock: Callable[[], float] = time.time,
    ):
        self.app_id = app_id
        self.app_certificate = app_certificate
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    def issue(self, channel_name: str, uid: int) -> str:
        if not self.app_id or not self.app_certificate:
            raise CredentialError("Voice credentials are not configured")
        if not channel_name:
            raise CredentialError("channelName is required")

        issued_at = int(self._clock())
        claims = {
            "app_id": self.app_id,
            "channel": channel_name,
            "uid": uid,
            "role": PUBLISHER_ROLE,
            "iat": issued_at,
            "exp": issued_at + self.ttl_seconds,
        }
        token = jwt.encode(claims, self.app_certificate, algorithm=TOKEN_ALGORITHM)

        logger.debug(f"Issued voice token for uid {uid} on {channel_name}")
        return token

    def verify(self, token: str) -> dict[str, Any]:
        """Check a token's signature and expiry.

        Returns:
            Decoded claims

        Raises:
            CredentialError: If the token is malformed, forged or expired
        """
        try:
            return jwt.decode(
                token,
                self.app_certificate,
                algorithms=[TOKEN_ALGORITHM],
                options={"require": ["exp", "iat"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise CredentialError("Token expired") from e
        except jwt.InvalidSignatureError as e:
            raise CredentialError("Bad token signature") from e
        except jwt.InvalidTokenError as e:
            raise CredentialError(f"Malformed token: {e}") from e
