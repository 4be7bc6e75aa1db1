from __future__ import annotations

import json
import logging
from typing import Dict, Optional

import httpx

from .errors import MalformedServiceResponse
from .transport import ApiSession, DEFAULT_TIMEOUT


DISCOVERY_URL = (
    "https://service-manager-production-dot-remarkable-production.appspot.com"
    "/service/json/1/document-storage"
)
DEFAULT_ENVIRONMENT = "production"
DEFAULT_GROUP = "auth0|5a68dc51cb30df3877a1d7c4"
API_VERSION = "2"

logger = logging.getLogger(__name__)


def resolve_base_url(descriptor: str) -> str:
    """
    Turn a discovery descriptor into a storage base URL.

    Accepts either the JSON envelope (`{"Status": "OK", "Host": "..."}`) or a
    bare host/URL. Hosts without a scheme get `https://`.
    """
    text = descriptor.strip()
    if not text:
        raise MalformedServiceResponse(descriptor, "empty storage descriptor")

    if text.startswith("{"):
        try:
            data = json.loads(text)
        except ValueError as exc:
            raise MalformedServiceResponse(descriptor, "invalid storage descriptor JSON") from exc
        host = data.get("Host") if isinstance(data, dict) else None
        if not isinstance(host, str) or not host.strip():
            raise MalformedServiceResponse(descriptor, "storage descriptor has no Host")
        text = host.strip()
    elif text.startswith('"') and text.endswith('"') and len(text) > 1:
        text = text[1:-1].strip()

    if "://" not in text:
        text = f"https://{text}"
    return text.rstrip("/")


class DiscoveryClient(ApiSession):
    """Resolves where the document-storage API lives for this account."""

    def __init__(
        self,
        *,
        discovery_url: str = DISCOVERY_URL,
        environment: str = DEFAULT_ENVIRONMENT,
        group: str = DEFAULT_GROUP,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
        client: Optional[httpx.Client] = None,
    ) -> None:
        super().__init__(timeout=timeout, client=client)
        self._discovery_url = discovery_url
        self._params: Dict[str, str] = {
            "environment": environment,
            "group": group,
            "apiVer": API_VERSION,
        }

    def locate(self, session_token: str) -> str:
        """Return the raw storage descriptor; see `resolve_base_url`."""
        resp = self._request(
            "POST", self._discovery_url, token=session_token, params=self._params
        )
        logger.debug("Storage descriptor: %s", resp.text[:200])
        return resp.text


__all__ = [
    "DiscoveryClient",
    "resolve_base_url",
    "DISCOVERY_URL",
    "DEFAULT_ENVIRONMENT",
    "DEFAULT_GROUP",
]
