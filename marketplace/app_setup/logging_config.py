"""
Configuration centrale des logs.
- Format: horodatage, niveau, PID, logger, message (key=value)
- Niveau: LOG_LEVEL (info par défaut), sortie stdout (Docker/PaaS)
- Verbosité réduite pour les bibliothèques HTTP (httpx, hpack, stripe)
"""
import logging
import sys

from marketplace.config import LOG_LEVEL

LOG_FORMAT = "%(asctime)s - %(levelname)s - [PID:%(process)d] - %(name)s - %(message)s"

def configure_logging() -> None:
    level = getattr(logging, LOG_LEVEL.upper(), logging.INFO)
    root = logging.getLogger()
    # Idempotent: create_app peut être appelé plusieurs fois (tests)
    if not any(getattr(h, "_marketplace", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._marketplace = True
        root.addHandler(handler)
    root.setLevel(level)

    for noisy in ("httpx", "hpack", "stripe"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
