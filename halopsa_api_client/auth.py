"""
OAuth2 client-credentials token handling for the HaloPSA API.

:class:`TokenManager` exchanges the configured client identifier and
secret for a bearer token at ``<url>/auth/token`` and caches it.  A
token is reused until its expiry, which is recorded 60 seconds
earlier than the lifetime declared by the server so that a token is
never sent when it is about to lapse mid-request.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import requests

from .exceptions import AuthenticationError

logger = logging.getLogger(__name__)

# Seconds subtracted from ``expires_in`` when computing the expiry.
EXPIRY_SKEW = 60


@dataclass(frozen=True)
class Token:
    """A bearer token and the epoch second after which it is not used."""

    access_token: str
    expires_at: float


class TokenManager:
    """Obtain and cache an access token for the HaloPSA API.

    Parameters
    ----------
    url : str
        Base URL of the HaloPSA instance, without a trailing slash.
    client_id : str
        OAuth client identifier of the HaloPSA API application.
    client_secret : str
        OAuth client secret of the HaloPSA API application.
    session : requests.Session, optional
        Transport used for the token request.  A new session is
        created when omitted.
    timeout : float, optional
        Timeout in seconds for the token request.
    clock : callable, optional
        Returns the current time as epoch seconds.  Defaults to
        :func:`time.time`.

    Notes
    -----
    There is no locking around a refresh.  Two callers finding an
    expired token at the same moment both authenticate and the last
    response wins; both tokens are valid.
    """

    def __init__(
        self,
        url: str,
        client_id: str,
        client_secret: str,
        *,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.token_url = f"{url}/auth/token"
        self.client_id = client_id
        self.client_secret = client_secret
        self.timeout = timeout
        self._session = session or requests.Session()
        self._clock = clock
        self._token: Optional[Token] = None

    @property
    def token(self) -> Optional[Token]:
        """The cached token, or ``None`` before the first exchange."""
        return self._token

    def is_valid(self) -> bool:
        """Return ``True`` if a token is cached and has not expired."""
        return self._token is not None and self._token.expires_at > self._clock()

    def invalidate(self) -> None:
        """Drop the cached token so the next call authenticates again."""
        self._token = None

    def ensure_valid(self) -> str:
        """Return a valid bearer token, authenticating only when needed."""
        if not self.is_valid():
            self._refresh()
        assert self._token is not None
        return self._token.access_token

    def _refresh(self) -> None:
        """Perform the client-credentials exchange and store the new token.

        Raises
        ------
        AuthenticationError
            If the server cannot be reached, answers with a
            non-success status, or returns a body without an
            ``access_token``.
        """
        payload = {
            "grant_type": "client_credentials",
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "scope": "all",
        }
        headers = {
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": "application/json",
        }
        logger.debug("Requesting access token from %s", self.token_url)
        try:
            response = self._session.post(
                self.token_url, data=payload, headers=headers, timeout=self.timeout
            )
        except requests.RequestException as exc:
            raise AuthenticationError(
                f"Failed to authenticate with HaloPSA: {exc}"
            ) from exc

        if not response.ok:
            raise AuthenticationError(
                f"Authentication failed: {response.status_code} - {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            token_info: Dict[str, Any] = response.json()
        except ValueError as exc:
            raise AuthenticationError(
                f"Authentication response was not valid JSON: {exc}",
                status_code=response.status_code,
                body=response.text,
            ) from exc

        access_token = token_info.get("access_token")
        if not access_token:
            raise AuthenticationError(
                "Authentication response did not contain an access_token",
                status_code=response.status_code,
                body=response.text,
            )
        expires_in = token_info.get("expires_in")
        if not isinstance(expires_in, (int, float)):
            raise AuthenticationError(
                "Authentication response did not contain a numeric expires_in",
                status_code=response.status_code,
                body=response.text,
            )

        self._token = Token(
            access_token=access_token,
            expires_at=self._clock() + float(expires_in) - EXPIRY_SKEW,
        )
        logger.debug("Access token refreshed, valid for %ss", expires_in - EXPIRY_SKEW)
