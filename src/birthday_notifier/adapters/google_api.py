from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Protocol, Sequence

import httpx
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow

from ..errors import ProviderError

LOGGER = logging.getLogger(__name__)

GOOGLE_SCOPES = (
    "https://www.googleapis.com/auth/calendar.readonly",
    "https://www.googleapis.com/auth/contacts.readonly",
)
AUTH_SOURCE_NAME = "Google OAuth"


class CredentialProvider(Protocol):
    async def get_access_token(self) -> str:
        """Return a bearer token valid for the Calendar and People APIs."""


class GoogleTokenFileCredentials:
    """Authorized-user token file produced by the OAuth consent flow.

    The file is loaded once at construction, so a missing or unreadable token
    fails startup instead of the first scheduled check. Expired access tokens
    are refreshed with the stored refresh token and written back to the file.
    """

    def __init__(self, *, token_path: Path, scopes: Sequence[str] = GOOGLE_SCOPES) -> None:
        self._token_path = Path(token_path)
        if not self._token_path.exists():
            raise ProviderError(AUTH_SOURCE_NAME, f"OAuth token file not found: {self._token_path}")
        try:
            self._credentials = Credentials.from_authorized_user_file(str(self._token_path), list(scopes))
        except (OSError, ValueError) as exc:
            raise ProviderError(AUTH_SOURCE_NAME, f"Unable to load OAuth token file: {self._token_path}") from exc
        self._refresh_lock = asyncio.Lock()

    @property
    def token_path(self) -> Path:
        return self._token_path

    @property
    def valid(self) -> bool:
        return self._credentials.valid

    async def get_access_token(self) -> str:
        if not self._credentials.valid:
            # Checks fetch in parallel; only the first caller refreshes.
            async with self._refresh_lock:
                if not self._credentials.valid:
                    await asyncio.to_thread(self._refresh)
        token = self._credentials.token
        if not token:
            raise ProviderError(AUTH_SOURCE_NAME, "OAuth credentials did not yield an access token")
        return token

    def _refresh(self) -> None:
        if not self._credentials.refresh_token:
            raise ProviderError(AUTH_SOURCE_NAME, "access token expired and no refresh token is stored")
        try:
            self._credentials.refresh(Request())
        except GoogleAuthError as exc:
            raise ProviderError(AUTH_SOURCE_NAME, f"token refresh failed: {exc}") from exc

        try:
            self._token_path.write_text(self._credentials.to_json(), encoding="utf-8")
        except OSError:
            LOGGER.warning("Refreshed OAuth token could not be saved to %s", self._token_path)


def run_consent_flow(
    *,
    client_secrets_path: Path,
    token_path: Path,
    scopes: Sequence[str] = GOOGLE_SCOPES,
) -> Credentials:
    """Run the browser consent flow and store the authorized-user token.

    Offline access with a forced consent prompt makes Google return a refresh
    token even when the account has authorized this client before.
    """
    if not client_secrets_path.exists():
        raise ProviderError(AUTH_SOURCE_NAME, f"OAuth client secrets file not found: {client_secrets_path}")
    try:
        flow = InstalledAppFlow.from_client_secrets_file(str(client_secrets_path), list(scopes))
    except (OSError, ValueError) as exc:
        raise ProviderError(AUTH_SOURCE_NAME, f"Unable to load OAuth client secrets: {client_secrets_path}") from exc

    try:
        credentials = flow.run_local_server(port=0, access_type="offline", prompt="consent")
    except (OSError, ValueError, GoogleAuthError) as exc:
        raise ProviderError(AUTH_SOURCE_NAME, f"authorization failed: {exc}") from exc

    try:
        token_path.parent.mkdir(parents=True, exist_ok=True)
        token_path.write_text(credentials.to_json(), encoding="utf-8")
    except OSError as exc:
        raise ProviderError(AUTH_SOURCE_NAME, f"Unable to save OAuth token file: {token_path}") from exc
    return credentials


def _error_detail(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.reason_phrase or "unexpected response"
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return error["message"]
    return response.reason_phrase or "unexpected response"


async def get_json(
    client: httpx.AsyncClient,
    url: str,
    *,
    source: str,
    credentials: CredentialProvider,
    params: dict[str, Any],
) -> dict[str, Any]:
    token = await credentials.get_access_token()
    headers = {"Authorization": f"Bearer {token}", "Accept": "application/json"}
    try:
        response = await client.get(url, params=params, headers=headers)
    except httpx.HTTPError as exc:
        raise ProviderError(source, f"request failed: {exc}") from exc

    if response.status_code != 200:
        raise ProviderError(source, f"HTTP {response.status_code}: {_error_detail(response)}")

    try:
        payload = response.json()
    except ValueError as exc:
        raise ProviderError(source, "response was not valid JSON") from exc
    if not isinstance(payload, dict):
        raise ProviderError(source, "unexpected response shape")
    return payload
