"""
Runtime settings for the remediation rules.

Values resolve from an explicit override, then the environment (a local
``.env`` file is loaded on import), then the built-in default.
"""

import logging
import os
from typing import Any, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

load_dotenv()

DEFAULT_PAGE_PARTS_MIN_PAGES = 5
PAGE_PARTS_MIN_PAGES_ENV = "STRUCTFIX_PAGE_PARTS_MIN_PAGES"

DEFAULT_LINK_MATCH_THRESHOLD = 0.3
LINK_MATCH_THRESHOLD_ENV = "STRUCTFIX_LINK_MATCH_THRESHOLD"

DEFAULT_BULLET_Y_TOLERANCE = 3.0
BULLET_Y_TOLERANCE_ENV = "STRUCTFIX_BULLET_Y_TOLERANCE"

DEFAULT_BULLET_MAX_ELEMENT_HEIGHT = 30.0
BULLET_MAX_ELEMENT_HEIGHT_ENV = "STRUCTFIX_BULLET_MAX_ELEMENT_HEIGHT"

DEFAULT_DOCUMENT_LANGUAGE = "en-US"
DOCUMENT_LANGUAGE_ENV = "STRUCTFIX_DEFAULT_LANGUAGE"

# Images at least this large (points) are treated as meaningful content
MEANINGFUL_IMAGE_MIN_WIDTH = 144.0
MEANINGFUL_IMAGE_MIN_HEIGHT = 72.0


def _parse_positive_int(value: Any) -> Optional[int]:
    """Return value as positive int if possible; otherwise None."""
    if value is None:
        return None

    try:
        number = int(value)
    except (TypeError, ValueError):
        return None

    return number if number > 0 else None


def _parse_positive_float(value: Any) -> Optional[float]:
    if value is None:
        return None

    try:
        number = float(value)
    except (TypeError, ValueError):
        return None

    return number if number > 0 else None


def _resolve(override: Any, env_name: str, default: Any, parser) -> Any:
    override_value = parser(override)
    if override_value is not None:
        return override_value

    raw = os.getenv(env_name)
    env_value = parser(raw)
    if env_value is not None:
        return env_value
    if raw is not None:
        logger.warning("[Config] Ignoring invalid %s=%r, using %s", env_name, raw, default)

    return default


def get_page_parts_min_pages(override: Optional[int] = None) -> int:
    """Minimum page count before content is partitioned into per-page Parts.

    Order of precedence:
    1. Explicit override argument (if valid positive int)
    2. STRUCTFIX_PAGE_PARTS_MIN_PAGES env var
    3. DEFAULT_PAGE_PARTS_MIN_PAGES fallback
    """
    return _resolve(override, PAGE_PARTS_MIN_PAGES_ENV, DEFAULT_PAGE_PARTS_MIN_PAGES, _parse_positive_int)


def get_link_match_threshold(override: Optional[float] = None) -> float:
    """Minimum overlap ratio for anchoring a new Link tag under an element."""
    return _resolve(override, LINK_MATCH_THRESHOLD_ENV, DEFAULT_LINK_MATCH_THRESHOLD, _parse_positive_float)


def get_bullet_y_tolerance(override: Optional[float] = None) -> float:
    return _resolve(override, BULLET_Y_TOLERANCE_ENV, DEFAULT_BULLET_Y_TOLERANCE, _parse_positive_float)


def get_bullet_max_element_height(override: Optional[float] = None) -> float:
    return _resolve(
        override, BULLET_MAX_ELEMENT_HEIGHT_ENV, DEFAULT_BULLET_MAX_ELEMENT_HEIGHT, _parse_positive_float
    )


def get_default_language(override: Optional[str] = None) -> str:
    """Language written to documents that declare none."""
    if override and str(override).strip():
        return str(override).strip()
    env_value = (os.getenv(DOCUMENT_LANGUAGE_ENV) or "").strip()
    return env_value or DEFAULT_DOCUMENT_LANGUAGE
