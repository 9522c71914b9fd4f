from __future__ import annotations

from typing import Optional

from .config import env_str


def http_timeout_seconds() -> Optional[float]:
    """Overall per-request timeout from PUPPETDB_TIMEOUT; unset, invalid or 0 means none."""
    raw = env_str("PUPPETDB_TIMEOUT", "")
    try:
        value = float(raw)
    except ValueError:
        return None
    return value if value > 0 else None
