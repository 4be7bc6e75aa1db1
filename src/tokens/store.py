from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from rmcloud.errors import CredentialLoadError, CredentialStoreError


DEFAULT_TOKEN_PATH = "remarkable.token"

# Environment variable names for convenience configuration
ENV_TOKEN_PATH = "RMUPLOAD_TOKEN_PATH"
ENV_FERNET_KEY = "RMUPLOAD_FERNET_KEY"


def _to_fernet(key: str | bytes) -> Fernet:
    """Construct a Fernet instance from a user-provided key.

    The key must be a URL-safe base64-encoded 32-byte key (str or bytes),
    as returned by `cryptography.fernet.Fernet.generate_key()`.
    """
    if isinstance(key, str):
        key_bytes = key.encode("utf-8")
    else:
        key_bytes = key
    return Fernet(key_bytes)


class TokenStore:
    """
    Single-slot file store for the current token.

    Usage
    - `load()` returns the stored token or raises `CredentialLoadError`.
    - `save(token)` overwrites the slot; last writer wins, no atomic rename.
    - With a Fernet key the file is encrypted at rest, otherwise it holds the
      raw token text.

    The store does not know whether it holds a refresh or a session token.
    """

    def __init__(
        self,
        path: Optional[os.PathLike[str] | str] = None,
        *,
        fernet_key: Optional[str | bytes] = None,
    ) -> None:
        self._path = Path(path) if path else Path(DEFAULT_TOKEN_PATH)
        self._fernet = _to_fernet(fernet_key) if fernet_key else None

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> str:
        try:
            raw = self._path.read_bytes()
        except OSError as exc:
            raise CredentialLoadError(f"Cannot read token from {self._path}") from exc

        if self._fernet is not None:
            try:
                raw = self._fernet.decrypt(raw.strip())
            except InvalidToken as exc:
                raise CredentialLoadError(
                    f"Failed to decrypt token in {self._path}: invalid Fernet token"
                ) from exc

        try:
            token = raw.decode("utf-8").strip()
        except UnicodeDecodeError as exc:
            raise CredentialLoadError(f"Token in {self._path} is not text") from exc
        if not token:
            raise CredentialLoadError(f"Token file {self._path} is empty")
        return token

    def save(self, token: str) -> None:
        data = token.encode("utf-8")
        if self._fernet is not None:
            data = self._fernet.encrypt(data)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_bytes(data)
        except OSError as exc:
            raise CredentialStoreError(f"Cannot write token to {self._path}") from exc


__all__ = ["TokenStore", "DEFAULT_TOKEN_PATH", "ENV_TOKEN_PATH", "ENV_FERNET_KEY"]
