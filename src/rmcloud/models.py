from __future__ import annotations

import re
from datetime import datetime, UTC
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


DOCUMENT_TYPE = "DocumentType"
DEVICE_DESCRIPTION = "desktop-windows"

_RFC3339_RE = re.compile(
    r"^(?P<base>\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}:\d{2})"
    r"(?:\.(?P<frac>\d+))?"
    r"(?P<tz>Z|z|[+-]\d{2}:?\d{2})?$"
)


def parse_rfc3339(value: str) -> Optional[datetime]:
    """
    Parse an RFC3339 timestamp into an aware datetime.

    Fractional seconds of any precision are accepted (truncated to microseconds),
    a missing offset is read as UTC. Returns None when the value does not parse.
    """
    m = _RFC3339_RE.match(value.strip()) if value else None
    if not m:
        return None
    text = m.group("base").replace(" ", "T")
    frac = m.group("frac")
    if frac:
        text += "." + frac[:6].ljust(6, "0")
    tz = m.group("tz")
    if tz is None or tz in ("Z", "z"):
        text += "+00:00"
    else:
        text += tz if ":" in tz else f"{tz[:3]}:{tz[3:]}"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def utc_now_rfc3339() -> str:
    return datetime.now(UTC).isoformat()


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class PairingRequest(_WireModel):
    code: str
    device_description: str = Field(DEVICE_DESCRIPTION, alias="deviceDesc")
    device_id: str = Field(..., alias="deviceID")


class UploadRequest(_WireModel):
    id: str = Field(..., alias="ID")
    type: str = Field(DOCUMENT_TYPE, alias="Type")
    version: int = Field(1, alias="Version")


class UploadDirections(_WireModel):
    """
    Server-issued upload slot.

    Fields
    - document_id: permanent id of the new document; also the archive entry stem
      and the `parent` of the metadata record.
    - write_url: time-limited URL the archive is PUT to.
    - write_url_expiry: RFC3339 timestamp after which `write_url` is invalid.
    """

    document_id: str = Field(..., alias="ID", min_length=1)
    version: int = Field(1, alias="Version")
    message: str = Field("", alias="Message")
    success: bool = Field(True, alias="Success")
    write_url: str = Field(..., alias="BlobURLPut", min_length=1)
    write_url_expiry: str = Field("", alias="BlobURLPutExpires")

    def expires_at(self) -> Optional[datetime]:
        return parse_rfc3339(self.write_url_expiry)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """True only when the expiry parses and lies at or before `now`."""
        expiry = self.expires_at()
        if expiry is None:
            return False
        return expiry <= (now or datetime.now(UTC))


class DocumentMetadata(_WireModel):
    id: str = Field(..., alias="ID")
    parent: str
    display_name: str = Field(..., alias="VissibleName")
    modified: str = Field(default_factory=utc_now_rfc3339, alias="ModifiedClient")
    type: str = Field(DOCUMENT_TYPE, alias="Type")
    version: int = Field(1, alias="Version")


class ContentDescriptor(_WireModel):
    """
    File-type and rendering defaults stored as `<id>.content`.

    `extraMetadata` and `transform` are written as empty objects, not empty
    lists. The matching `<id>.pagedata` entry is `{}` rather than an empty file.
    """

    extra_metadata: Dict[str, Any] = Field(default_factory=dict, alias="extraMetadata")
    file_type: str = Field("pdf", alias="fileType")
    last_opened_page: int = Field(0, alias="lastOpenedPage")
    line_height: int = Field(-1, alias="lineHeight")
    margins: int = 100
    text_scale: float = Field(1.0, alias="textScale")
    transform: Dict[str, Any] = Field(default_factory=dict)


__all__ = [
    "DOCUMENT_TYPE",
    "DEVICE_DESCRIPTION",
    "PairingRequest",
    "UploadRequest",
    "UploadDirections",
    "DocumentMetadata",
    "ContentDescriptor",
    "parse_rfc3339",
    "utc_now_rfc3339",
]
