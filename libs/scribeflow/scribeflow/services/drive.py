"""Google OAuth + Drive v3 client (transcript export)."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import httplib2
import requests
from google.oauth2.credentials import Credentials
from google_auth_httplib2 import AuthorizedHttp
from google_auth_oauthlib.flow import Flow
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaInMemoryUpload
from oauthlib.oauth2.rfc6749.errors import OAuth2Error

from scribeflow.config import GoogleDriveConfig
from scribeflow.exceptions import ConfigurationError, DriveAuthError, DriveError

logger = logging.getLogger(__name__)

AUTH_URI = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URI = "https://oauth2.googleapis.com/token"
FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
FILE_FIELDS = "id,name,webViewLink,parents"


@dataclass(frozen=True)
class DriveFile:
    id: str
    name: str
    web_link: str | None = None
    parents: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "webViewLink": self.web_link,
            "parents": list(self.parents),
        }


@dataclass(frozen=True)
class OAuthTokens:
    access_token: str
    refresh_token: str | None = None
    expires_in: int | None = None
    scope: str | None = None
    token_type: str = "Bearer"

    def to_dict(self) -> dict[str, Any]:
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expires_in": self.expires_in,
            "scope": self.scope,
            "token_type": self.token_type,
        }


def _drive_file(item: dict[str, Any]) -> DriveFile:
    return DriveFile(
        id=str(item.get("id") or ""),
        name=str(item.get("name") or ""),
        web_link=item.get("webViewLink"),
        parents=tuple(str(p) for p in item.get("parents") or ()),
    )


def _scope_text(scope: Any) -> str | None:
    if scope is None:
        return None
    if isinstance(scope, (list, tuple)):
        return " ".join(str(s) for s in scope)
    return str(scope)


class GoogleDriveClient:
    """OAuth authorization-code flow plus the two Drive calls the app needs.

    The caller holds the access token (session handling is out of scope); a
    401 from Google surfaces as DriveAuthError so callers can restart the flow.
    The Google client libraries are blocking, so every call runs in a worker
    thread.
    """

    def __init__(
        self,
        config: GoogleDriveConfig,
        *,
        flow_factory: Callable[[GoogleDriveConfig], Any] | None = None,
        service_factory: Callable[[str], Any] | None = None,
    ) -> None:
        self.config = config
        self._flow_factory = flow_factory or self._build_flow
        self._service_factory = service_factory or self._build_service

    def _require_client_credentials(self) -> None:
        if not self.config.client_id or not self.config.client_secret:
            raise ConfigurationError("Google OAuth requires GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET")

    @staticmethod
    def _build_flow(config: GoogleDriveConfig) -> Flow:
        client_config = {
            "web": {
                "client_id": config.client_id,
                "client_secret": config.client_secret,
                "auth_uri": AUTH_URI,
                "token_uri": TOKEN_URI,
                "redirect_uris": [config.redirect_uri],
            }
        }
        # Authorization and code exchange happen in different requests, so no PKCE verifier.
        return Flow.from_client_config(
            client_config,
            scopes=list(config.scopes),
            redirect_uri=config.redirect_uri,
            autogenerate_code_verifier=False,
        )

    def _build_service(self, access_token: str) -> Any:
        http = AuthorizedHttp(
            Credentials(token=access_token),
            http=httplib2.Http(timeout=self.config.timeout),
            refresh_status_codes=(),
        )
        return build("drive", "v3", http=http, cache_discovery=False)

    def authorization_url(self, state: str | None = None) -> str:
        self._require_client_credentials()
        params: dict[str, Any] = {"access_type": "offline", "prompt": "consent"}
        if state:
            params["state"] = state
        url, _ = self._flow_factory(self.config).authorization_url(**params)
        return url

    def _fetch_token(self, code: str) -> dict[str, Any]:
        flow = self._flow_factory(self.config)
        try:
            return dict(flow.fetch_token(code=code))
        except OAuth2Error as exc:
            raise DriveAuthError(f"token exchange failed: {exc.description or exc.error}", status=400) from exc
        except requests.RequestException as exc:
            raise DriveError(f"token exchange failed: {exc}") from exc

    async def exchange_code(self, code: str) -> OAuthTokens:
        self._require_client_credentials()
        if not str(code or "").strip():
            raise DriveAuthError("authorization code is required", status=400)
        token = await asyncio.to_thread(self._fetch_token, code)
        access_token = str(token.get("access_token") or "")
        if not access_token:
            raise DriveAuthError("token exchange returned no access_token")
        logger.info("google oauth code exchanged (refresh_token=%s)", bool(token.get("refresh_token")))
        expires_in = token.get("expires_in")
        return OAuthTokens(
            access_token=access_token,
            refresh_token=token.get("refresh_token"),
            expires_in=int(expires_in) if expires_in is not None else None,
            scope=_scope_text(token.get("scope")),
            token_type=str(token.get("token_type") or "Bearer"),
        )

    def _execute(self, access_token: str, what: str, request: Callable[[Any], Any]) -> dict[str, Any]:
        try:
            payload = request(self._service_factory(access_token)).execute()
        except HttpError as exc:
            if exc.resp.status == 401:
                raise DriveAuthError("Authentication expired. Please sign in again.", status=401) from exc
            raise DriveError(f"{what} failed: {exc.reason}", status=exc.resp.status) from exc
        except (httplib2.HttpLib2Error, OSError) as exc:
            raise DriveError(f"{what} failed: {exc}") from exc
        if not isinstance(payload, dict):
            raise DriveError(f"{what} returned a malformed body")
        return payload

    @staticmethod
    def _token(access_token: str) -> str:
        token = str(access_token or "").strip()
        if not token:
            raise DriveAuthError("Access token required", status=401)
        return token

    async def upload(
        self,
        data: bytes,
        name: str,
        folder_id: str | None = None,
        *,
        access_token: str,
        mime_type: str = "text/plain",
    ) -> DriveFile:
        """Create a file with its metadata and content in one request."""
        token = self._token(access_token)
        metadata: dict[str, Any] = {"name": name}
        if folder_id:
            metadata["parents"] = [folder_id]
        media = MediaInMemoryUpload(bytes(data), mimetype=mime_type, resumable=False)
        payload = await asyncio.to_thread(
            self._execute,
            token,
            "drive upload",
            lambda service: service.files().create(body=metadata, media_body=media, fields=FILE_FIELDS),
        )
        uploaded = _drive_file(payload)
        logger.info("drive upload ok (id=%s, name=%s, folder=%s)", uploaded.id, uploaded.name, folder_id)
        return uploaded

    async def list_folders(self, *, access_token: str) -> list[DriveFile]:
        token = self._token(access_token)
        payload = await asyncio.to_thread(
            self._execute,
            token,
            "drive list folders",
            lambda service: service.files().list(
                q=f"mimeType='{FOLDER_MIME_TYPE}' and trashed=false",
                fields="files(id,name,parents)",
                orderBy="name",
            ),
        )
        return [_drive_file(item) for item in payload.get("files") or [] if isinstance(item, dict)]
