"""
Clients for the reMarkable document-sync cloud.

Modules:
- auth: device pairing and session token refresh
- discovery: document-storage endpoint lookup
- storage: upload slot negotiation, blob transfer, metadata registration
- archive: zip packaging of a PDF with its page/content descriptors
- errors: error taxonomy shared by every stage
"""

__all__ = [
    "archive",
    "auth",
    "discovery",
    "errors",
    "models",
    "storage",
]
