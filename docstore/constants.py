from datetime import timedelta
from pathlib import PurePath

MIB = 1024 * 1024

# Payloads at or above this size go through multipart upload.
CHUNK_THRESHOLD = 4 * MIB

DEFAULT_READ_TTL = timedelta(minutes=15)
DEFAULT_TOKEN_MAX_AGE = timedelta(minutes=30)

DEFAULT_CONTENT_TYPE = "application/octet-stream"

CONTENT_TYPES = {
    ".pdf": "application/pdf",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
}


def guess_content_type(file_name: str) -> str:
    return CONTENT_TYPES.get(PurePath(file_name).suffix.lower(), DEFAULT_CONTENT_TYPE)
