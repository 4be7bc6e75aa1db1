from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Optional
from uuid import uuid4

import httpx
from pydantic import ValidationError

from .errors import MalformedServiceResponse, PreconditionError
from .models import DocumentMetadata, UploadDirections, UploadRequest
from .transport import ApiSession, DEFAULT_TIMEOUT


UPLOAD_REQUEST_PATH = "/json/2/upload/request"

logger = logging.getLogger(__name__)


def upload_request_url(endpoint: str) -> str:
    return f"{endpoint.rstrip('/')}{UPLOAD_REQUEST_PATH}"


def parse_directions(raw_body: str) -> UploadDirections:
    """
    Decode an upload-request answer.

    The service may wrap the directions in a one-element array. Anything that
    is not valid JSON or does not carry `ID` and `BlobURLPut` is rejected with
    the raw body attached.
    """
    try:
        data: Any = json.loads(raw_body)
    except ValueError as exc:
        raise MalformedServiceResponse(raw_body, "upload directions are not JSON") from exc

    if isinstance(data, list):
        if len(data) != 1:
            raise MalformedServiceResponse(
                raw_body, f"expected one upload direction, got {len(data)}"
            )
        data = data[0]
    if not isinstance(data, dict):
        raise MalformedServiceResponse(raw_body, "upload directions are not an object")

    try:
        return UploadDirections.model_validate(data)
    except ValidationError as ve:
        raise MalformedServiceResponse(raw_body, f"invalid upload directions: {ve}") from ve


class StorageClient(ApiSession):
    """
    Document-storage calls that make up one upload.

    1. `request_slot` negotiates a new document id and a signed write URL.
    2. `transfer` PUTs the packaged archive to that URL.
    3. `register` attaches the display name, which makes the document visible.

    `request_slot` and `register` share the upload-request route and differ only
    in payload. A blob whose registration fails stays orphaned and invisible;
    nothing is cleaned up.
    """

    def __init__(
        self,
        *,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
        client: Optional[httpx.Client] = None,
    ) -> None:
        super().__init__(timeout=timeout, client=client)

    def request_slot(self, endpoint: str, session_token: str) -> UploadDirections:
        payload = UploadRequest(id=str(uuid4()))
        logger.info("Requesting upload slot for %s", payload.id)
        resp = self._request(
            "PUT",
            upload_request_url(endpoint),
            token=session_token,
            json_body=payload.to_wire(),
        )
        return parse_directions(resp.text)

    def transfer(
        self,
        archive: bytes,
        directions: UploadDirections,
        session_token: str,
        *,
        now: Optional[datetime] = None,
    ) -> None:
        if not directions.success:
            raise PreconditionError(
                f"Upload slot {directions.document_id} was not granted: "
                f"{directions.message or 'no reason given'}"
            )
        if directions.expires_at() is None and directions.write_url_expiry:
            logger.warning(
                "Cannot parse upload slot expiry %r; transferring anyway",
                directions.write_url_expiry,
            )
        if directions.is_expired(now):
            raise PreconditionError(
                f"Upload slot {directions.document_id} expired at {directions.write_url_expiry}"
            )

        logger.info("Uploading %d bytes for %s", len(archive), directions.document_id)
        self._request("PUT", directions.write_url, token=session_token, content=archive)

    def register(
        self,
        endpoint: str,
        session_token: str,
        directions: UploadDirections,
        display_name: str,
    ) -> DocumentMetadata:
        metadata = DocumentMetadata(
            id=str(uuid4()),
            parent=directions.document_id,
            display_name=display_name,
        )
        logger.info("Registering %r for %s", display_name, directions.document_id)
        self._request(
            "PUT",
            upload_request_url(endpoint),
            token=session_token,
            json_body=metadata.to_wire(),
        )
        return metadata


__all__ = [
    "StorageClient",
    "parse_directions",
    "upload_request_url",
    "UPLOAD_REQUEST_PATH",
]
