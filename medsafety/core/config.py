"""Environment-driven settings for the safety-check engine.

Values are read once at import time.  A local ``.env`` file is honoured so
that the same configuration works for scripts, tests and the host
application.
"""
from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "si", "sí", "on"}


def _env_list(name: str) -> tuple[str, ...]:
    raw = os.getenv(name, "")
    return tuple(item.strip().lower() for item in raw.split(",") if item.strip())


LOG_LEVEL: str = os.getenv("MEDSAFETY_LOG_LEVEL", "INFO").upper()

#: Default for ``check_allergies(dedupe=...)``.  Off: one finding per
#: (ingredient, allergy term) pair, repeated ingredients included.
DEDUPE_ALLERGY_MATCHES: bool = _env_bool("MEDSAFETY_DEDUPE_ALLERGY_MATCHES", False)

#: Extra "no data" markers appended to the built-in placeholder set.
EXTRA_PLACEHOLDERS: tuple[str, ...] = _env_list("MEDSAFETY_EXTRA_PLACEHOLDERS")

#: Characters that separate items in free-text list fields.
LIST_DELIMITERS: str = (
    os.getenv("MEDSAFETY_LIST_DELIMITERS", ",;\n").encode().decode("unicode_escape") or ","
)


def configure_logging(level: str | None = None) -> None:
    """Install the root handler used by scripts and the host application."""
    logging.basicConfig(
        level=getattr(logging, (level or LOG_LEVEL), logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
    )
