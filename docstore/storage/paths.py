"""Canonical path codec.

A document is addressed by ``tenant_id/category/file_name``. This module is
the only place that builds or splits that string.
"""

from __future__ import annotations

import re
from urllib.parse import unquote, urlsplit

from docstore.errors import InvalidReferenceError
from docstore.models.document import DocumentReference

SEPARATOR = "/"

_FORBIDDEN_SEGMENTS = {".", ".."}
_LOCAL_SPLIT = re.compile(r"[\\/]")


def _check_segment(name: str, value: str) -> None:
    if not value or not value.strip():
        raise InvalidReferenceError(f"{name} must not be empty")
    if "/" in value or "\\" in value:
        raise InvalidReferenceError(f"{name} must not contain path separators: {value!r}")
    if value in _FORBIDDEN_SEGMENTS:
        raise InvalidReferenceError(f"{name} must not be a relative path segment: {value!r}")


def validate_reference(ref: DocumentReference) -> None:
    _check_segment("tenant_id", ref.tenant_id)
    _check_segment("category", ref.category)
    _check_segment("file_name", ref.file_name)


def encode_path(ref: DocumentReference) -> str:
    validate_reference(ref)
    return SEPARATOR.join((ref.tenant_id, ref.category, ref.file_name))


def decode_path(path: str) -> DocumentReference:
    parts = path.split(SEPARATOR)
    if len(parts) != 3:
        raise InvalidReferenceError("Canonical path must have exactly three segments", key=path)
    ref = DocumentReference(tenant_id=parts[0], category=parts[1], file_name=parts[2])
    validate_reference(ref)
    return ref


def parse_stored_reference(value: str, tenant_id: str) -> DocumentReference:
    """Recover a reference from a stored URL or local path.

    Accepts a full backend URL (``https://host/<bucket>/<tenant>/<category>/<file>?sig``)
    or a bare local path (``uploads/<tenant>/<category>/<file>``, either separator).
    The ``tenant_id`` segment anchors the lookup; the two segments after it are
    the category and the file name.
    """
    if not value or not value.strip():
        raise InvalidReferenceError("Stored reference is empty")

    if value.startswith(("http://", "https://")):
        segments = [unquote(s) for s in urlsplit(value).path.split("/") if s]
    else:
        segments = [s for s in _LOCAL_SPLIT.split(value.split("?", 1)[0]) if s]

    try:
        index = segments.index(tenant_id)
    except ValueError:
        raise InvalidReferenceError(f"Reference is not filed under {tenant_id!r}", key=value) from None

    if len(segments) < index + 3:
        raise InvalidReferenceError("Reference is missing category or file name", key=value)

    ref = DocumentReference(
        tenant_id=tenant_id,
        category=segments[index + 1],
        file_name=segments[index + 2],
    )
    validate_reference(ref)
    return ref
