"""OAuth token providers for the verdict service."""

from __future__ import annotations

import logging
from typing import Protocol

import requests

from vaas.config import DEFAULT_TOKEN_URL
from vaas.errors import VaasAuthenticationError

logger = logging.getLogger(__name__)


class TokenProvider(Protocol):
    """Anything that can hand out a bearer token for ``connect()``."""

    def get_token(self) -> str:
        ...


class _GrantAuthenticator:
    def __init__(self, token_url: str, timeout: float | None) -> None:
        self.token_url = token_url
        self.timeout = timeout

    def _form(self) -> dict[str, str]:
        raise NotImplementedError

    def get_token(self) -> str:
        """POST the grant to the token endpoint and return the access token."""
        try:
            response = requests.post(
                self.token_url,
                data=self._form(),
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise VaasAuthenticationError(
                f"Token request to {self.token_url} failed: {exc}"
            ) from exc

        if response.status_code != 200:
            raise VaasAuthenticationError(
                f"Token endpoint answered {response.status_code}: {response.text[:200]}"
            )
        try:
            token = response.json()["access_token"]
        except (ValueError, KeyError, TypeError) as exc:
            raise VaasAuthenticationError(
                "Token endpoint response has no access_token"
            ) from exc
        logger.debug("Obtained access token from %s", self.token_url)
        return token


class ClientCredentialsGrantAuthenticator(_GrantAuthenticator):
    """Client-credentials grant: a client id and secret."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        token_url: str = DEFAULT_TOKEN_URL,
        timeout: float | None = 30.0,
    ) -> None:
        super().__init__(token_url, timeout)
        self.client_id = client_id
        self.client_secret = client_secret

    def _form(self) -> dict[str, str]:
        return {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "grant_type": "client_credentials",
        }


class ResourceOwnerPasswordGrantAuthenticator(_GrantAuthenticator):
    """Password grant: a public client id plus user name and password."""

    def __init__(
        self,
        client_id: str,
        username: str,
        password: str,
        token_url: str = DEFAULT_TOKEN_URL,
        timeout: float | None = 30.0,
    ) -> None:
        super().__init__(token_url, timeout)
        self.client_id = client_id
        self.username = username
        self.password = password

    def _form(self) -> dict[str, str]:
        return {
            "client_id": self.client_id,
            "username": self.username,
            "password": self.password,
            "grant_type": "password",
        }
