import logging

from cellarwatch.core.config import settings

_configured = False


def configure_logging() -> None:
    """Configure stdlib logging once per process; payloads are pre-encoded JSON strings."""
    global _configured
    if _configured:
        return

    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    logging.getLogger("cellarwatch").setLevel(level)
    _configured = True
