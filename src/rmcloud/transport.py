from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Union

import httpx

from .errors import ServiceRejected, ServiceUnreachable


DEFAULT_TIMEOUT = 30.0

logger = logging.getLogger(__name__)


class ApiSession:
    """
    Shared plumbing for the cloud API clients.

    Notes
    - One attempt per call: no retries, no backoff.
    - Transport failures become `ServiceUnreachable`, any status other than 200
      becomes `ServiceRejected` carrying the exact status.
    - When no `client` is injected one is created (and owned) with `timeout`;
      `timeout=None` disables timeouts.
    """

    def __init__(
        self,
        *,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._timeout = timeout
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # --------------- Internal ---------------
    def _request(
        self,
        method: str,
        url: str,
        *,
        token: Optional[str] = None,
        json_body: Optional[Any] = None,
        content: Optional[Union[bytes, str]] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        headers: Dict[str, str] = {}
        if token is not None:
            headers["Authorization"] = f"Bearer {token}"
        if json_body is None and content is None:
            content = b""

        # signed blob URLs carry credentials in the query string
        where = url.split("?", 1)[0]
        logger.debug("%s %s", method, where)
        try:
            resp = self._client.request(
                method,
                url,
                headers=headers,
                json=json_body,
                content=content,
                params=params,
            )
        except (httpx.TimeoutException, httpx.TransportError) as exc:
            raise ServiceUnreachable(f"{method} {where} failed: {exc}") from exc

        if resp.status_code != 200:
            raise ServiceRejected(resp.status_code, resp.text, url=where)
        return resp


__all__ = ["ApiSession", "DEFAULT_TIMEOUT"]
