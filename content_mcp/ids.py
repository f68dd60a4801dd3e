"""Document id helpers.

Ids may carry a draft (``drafts.<id>``) or release version
(``versions.<release>.<id>``) qualifier in front of the published id.
"""

from __future__ import annotations

import secrets
import string

DRAFTS_PREFIX = "drafts."
VERSIONS_PREFIX = "versions."
MAX_ID_LENGTH = 128

_ALLOWED_CHARS = string.ascii_letters + string.digits


def is_draft_id(document_id: str) -> bool:
    return document_id.startswith(DRAFTS_PREFIX)


def is_version_id(document_id: str) -> bool:
    return document_id.startswith(VERSIONS_PREFIX)


def published_id(document_id: str) -> str:
    """Strip any draft or version qualifier."""
    if is_draft_id(document_id):
        return document_id[len(DRAFTS_PREFIX) :]
    if is_version_id(document_id):
        _, _, rest = document_id[len(VERSIONS_PREFIX) :].partition(".")
        return rest or document_id
    return document_id


def draft_id(document_id: str) -> str:
    return f"{DRAFTS_PREFIX}{published_id(document_id)}"


def version_id(document_id: str, release_id: str) -> str:
    return f"{VERSIONS_PREFIX}{release_id}.{published_id(document_id)}"


def generate_document_id(length: int = 22, prefix: str = "") -> str:
    """Generate a random alphanumeric id, capped at the store's id length limit."""
    available = MAX_ID_LENGTH - len(prefix)
    final_length = min(max(1, length), available)
    return prefix + "".join(secrets.choice(_ALLOWED_CHARS) for _ in range(final_length))
