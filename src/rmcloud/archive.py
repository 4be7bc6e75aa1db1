from __future__ import annotations

import io
import json
import zipfile
from typing import Dict, Optional

from .errors import ArchiveError
from .models import ContentDescriptor


PDF_EXT = "pdf"
PAGEDATA_EXT = "pagedata"
CONTENT_EXT = "content"


def entry_names(document_id: str) -> list[str]:
    return [f"{document_id}.{ext}" for ext in (PDF_EXT, PAGEDATA_EXT, CONTENT_EXT)]


def pack(
    document: bytes,
    document_id: str,
    *,
    content: Optional[ContentDescriptor] = None,
) -> bytes:
    """
    Bundle a PDF into the zip the document storage expects.

    Entries, all named after `document_id`:
    - `.pdf`: the document bytes, untouched (no validation that it is a PDF)
    - `.pagedata`: empty view-state object
    - `.content`: file type and rendering defaults

    Zip timestamps vary between calls; decompressed entries do not.
    """
    descriptor = content or ContentDescriptor()
    pdf_name, pagedata_name, content_name = entry_names(document_id)

    buf = io.BytesIO()
    try:
        with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            zf.writestr(pdf_name, document)
            zf.writestr(pagedata_name, json.dumps({}))
            zf.writestr(content_name, json.dumps(descriptor.to_wire(), indent=4))
    except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError, ValueError) as exc:
        raise ArchiveError(f"Failed to build archive for {document_id}") from exc
    return buf.getvalue()


def archive_entries(archive: bytes) -> Dict[str, bytes]:
    """Read an archive back into `{name: bytes}` in stored order."""
    try:
        with zipfile.ZipFile(io.BytesIO(archive)) as zf:
            return {name: zf.read(name) for name in zf.namelist()}
    except (zipfile.BadZipFile, OSError) as exc:
        raise ArchiveError("Not a readable archive") from exc


__all__ = ["pack", "archive_entries", "entry_names"]
