from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

import httpx

from rmcloud.archive import pack
from rmcloud.auth import AuthClient
from rmcloud.discovery import DEFAULT_GROUP, DiscoveryClient, resolve_base_url
from rmcloud.errors import (
    CredentialLoadError,
    DocumentReadError,
    PairingAborted,
    PreconditionError,
)
from rmcloud.storage import StorageClient
from rmcloud.transport import DEFAULT_TIMEOUT
from tokens.store import ENV_FERNET_KEY, ENV_TOKEN_PATH, DEFAULT_TOKEN_PATH, TokenStore


ENV_TIMEOUT = "RMUPLOAD_TIMEOUT"
ENV_GROUP = "RMUPLOAD_GROUP"
ENV_LOG_LEVEL = "RMUPLOAD_LOG_LEVEL"

logger = logging.getLogger(__name__)

# Returns the pairing code typed by the user, or None to abort.
PromptCode = Callable[[], Optional[str]]


@dataclass
class Settings:
    token_path: str = DEFAULT_TOKEN_PATH
    fernet_key: Optional[str] = None
    timeout: Optional[float] = DEFAULT_TIMEOUT
    group: str = DEFAULT_GROUP


@dataclass
class UploadResult:
    document_id: str
    metadata_id: str
    display_name: str


def _getenv(name: str, default: Optional[str] = None) -> Optional[str]:
    val = os.environ.get(name)
    return val if val not in (None, "") else default


def _parse_timeout(raw: Optional[str]) -> Optional[float]:
    if raw is None:
        return DEFAULT_TIMEOUT
    if raw.strip().lower() in ("0", "none", "off"):
        return None
    try:
        value = float(raw)
    except ValueError as exc:
        raise PreconditionError(f"{ENV_TIMEOUT} must be a number of seconds, got {raw!r}") from exc
    if value < 0:
        raise PreconditionError(f"{ENV_TIMEOUT} must not be negative, got {raw!r}")
    return value or None


def load_settings() -> Settings:
    return Settings(
        token_path=_getenv(ENV_TOKEN_PATH, DEFAULT_TOKEN_PATH) or DEFAULT_TOKEN_PATH,
        fernet_key=_getenv(ENV_FERNET_KEY),
        timeout=_parse_timeout(_getenv(ENV_TIMEOUT)),
        group=_getenv(ENV_GROUP, DEFAULT_GROUP) or DEFAULT_GROUP,
    )


def build_store(settings: Settings) -> TokenStore:
    try:
        return TokenStore(settings.token_path, fernet_key=settings.fernet_key)
    except (ValueError, TypeError) as exc:
        raise PreconditionError(f"{ENV_FERNET_KEY} is not a valid Fernet key") from exc


def obtain_session_token(auth: AuthClient, store: TokenStore, prompt_code: PromptCode) -> str:
    """
    Stored refresh token → session token; pair first when nothing is stored.

    A freshly paired token is saved and then refreshed like a stored one, so the
    storage calls always carry a session token. A failed refresh is fatal; it
    does not fall back to pairing.
    """
    try:
        refresh_token = store.load()
    except CredentialLoadError as exc:
        logger.info("No usable token (%s); pairing this device", exc)
        code = prompt_code()
        if not code:
            raise PairingAborted("Pairing aborted by user") from exc
        refresh_token = auth.pair(code.strip())
        store.save(refresh_token)
        logger.info("Saved new device token to %s", store.path)
    return auth.refresh(refresh_token)


def upload(
    display_name: str,
    document: bytes,
    *,
    store: TokenStore,
    prompt_code: PromptCode,
    group: str = DEFAULT_GROUP,
    timeout: Optional[float] = DEFAULT_TIMEOUT,
    client: Optional[httpx.Client] = None,
) -> UploadResult:
    """
    Upload `document` as a new entry called `display_name`.

    Stages run strictly in order and the first failure propagates unchanged;
    nothing is rolled back (an unused slot or an unregistered blob is left as is).
    """
    http = client or httpx.Client(timeout=timeout)
    try:
        auth = AuthClient(client=http)
        disc = DiscoveryClient(group=group, client=http)
        storage = StorageClient(client=http)

        session_token = obtain_session_token(auth, store, prompt_code)

        endpoint = resolve_base_url(disc.locate(session_token))
        logger.info("Document storage at %s", endpoint)

        directions = storage.request_slot(endpoint, session_token)
        archive = pack(document, directions.document_id)
        storage.transfer(archive, directions, session_token)
        metadata = storage.register(endpoint, session_token, directions, display_name)
    finally:
        if client is None:
            http.close()

    logger.info("Uploaded %r as %s", display_name, directions.document_id)
    return UploadResult(
        document_id=directions.document_id,
        metadata_id=metadata.id,
        display_name=display_name,
    )


def upload_file(
    path: os.PathLike[str] | str,
    display_name: Optional[str] = None,
    *,
    prompt_code: PromptCode,
    settings: Optional[Settings] = None,
    client: Optional[httpx.Client] = None,
) -> UploadResult:
    cfg = settings or load_settings()
    p = Path(path)
    try:
        document = p.read_bytes()
    except OSError as exc:
        raise DocumentReadError(f"Cannot read {p}") from exc

    return upload(
        display_name or p.stem,
        document,
        store=build_store(cfg),
        prompt_code=prompt_code,
        group=cfg.group,
        timeout=cfg.timeout,
        client=client,
    )


__all__ = [
    "Settings",
    "UploadResult",
    "load_settings",
    "build_store",
    "obtain_session_token",
    "upload",
    "upload_file",
]
