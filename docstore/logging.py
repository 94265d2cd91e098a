import logging
import sys

from docstore.settings import settings

TEXT_FORMAT = "%(levelname)s %(name)s: %(message)s"

NOISY_LOGGERS = ("botocore", "boto3", "s3transfer", "urllib3", "httpx", "httpcore")


def configure_logging() -> None:
    """Configure the root logger based on settings.

    Call once at startup, before building the storage service.
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stderr)

    if settings.log_json:
        from pythonjsonlogger.json import JsonFormatter

        handler.setFormatter(
            JsonFormatter(
                fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
                rename_fields={"asctime": "timestamp", "levelname": "level"},
            )
        )
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    # Client libraries log every request and retry at DEBUG/INFO.
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def redact_url(url: str) -> str:
    """Strip the query string (signature) from a URL before logging it."""
    head, sep, _ = url.partition("?")
    return f"{head}?..." if sep else head
