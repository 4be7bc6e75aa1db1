from __future__ import annotations

import logging
from typing import Optional
from uuid import uuid4

import httpx

from .errors import PreconditionError
from .models import PairingRequest
from .transport import ApiSession, DEFAULT_TIMEOUT


PAIRING_URL = "https://my.remarkable.com/token/json/2/device/new"
REFRESH_URL = "https://my.remarkable.com/token/json/2/user/new"
PAIRING_CODE_LENGTH = 8

logger = logging.getLogger(__name__)


class AuthClient(ApiSession):
    """
    Token endpoints of the reMarkable cloud.

    - `pair(code)` registers this installation with a one-time code shown on
      my.remarkable.com and returns the long-lived refresh token.
    - `refresh(token)` trades the refresh token for a short-lived session token.

    Both return the response body verbatim (the service answers in plain text).
    """

    def __init__(
        self,
        *,
        pairing_url: str = PAIRING_URL,
        refresh_url: str = REFRESH_URL,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
        client: Optional[httpx.Client] = None,
    ) -> None:
        super().__init__(timeout=timeout, client=client)
        self._pairing_url = pairing_url
        self._refresh_url = refresh_url

    def pair(self, pairing_code: str) -> str:
        if len(pairing_code) != PAIRING_CODE_LENGTH:
            raise PreconditionError(
                f"Pairing code must be exactly {PAIRING_CODE_LENGTH} characters, got {len(pairing_code)}"
            )
        payload = PairingRequest(code=pairing_code, device_id=str(uuid4()))
        logger.info("Pairing new device %s", payload.device_id)
        resp = self._request("POST", self._pairing_url, json_body=payload.to_wire())
        return resp.text

    def refresh(self, refresh_token: str) -> str:
        logger.info("Requesting session token")
        resp = self._request("POST", self._refresh_url, token=refresh_token)
        return resp.text


__all__ = ["AuthClient", "PAIRING_URL", "REFRESH_URL", "PAIRING_CODE_LENGTH"]
