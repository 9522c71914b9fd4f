from __future__ import annotations

import contextlib
import os
from pathlib import Path
from typing import Dict, Optional

_TRUE = {"1", "true", "yes", "on"}


def _parse_dotenv(dotenv_path: Path) -> Dict[str, str]:
    """Parse a simple .env file (KEY=VALUE per line, '#' comments, quotes stripped)."""
    env: Dict[str, str] = {}
    if dotenv_path.exists():
        with contextlib.suppress(OSError):
            for raw in dotenv_path.read_text(encoding="utf-8", errors="ignore").splitlines():
                s = raw.strip()
                if not s or s.startswith("#") or "=" not in s:
                    continue
                k, v = s.split("=", 1)
                k = k.strip()
                v = v.strip().strip('"').strip("'")
                if k:
                    env[k] = v
    return env


def env_get(key: str) -> Optional[str]:
    """Get environment value from process env, falling back to .env in CWD."""
    v = os.getenv(key)
    if v is not None and v.strip():
        return v.strip()
    v2 = _parse_dotenv(Path(".env")).get(key)
    return v2.strip() if v2 is not None and v2.strip() else None


def env_str(name: str, default: str) -> str:
    return env_get(name) or default


def env_flag(name: str, default: bool = False) -> bool:
    raw = env_get(name)
    if raw is None:
        return default
    return raw.lower() in _TRUE


def base_url(host: str, port: int, ssl: bool = False) -> str:
    scheme = "https" if ssl else "http"
    return f"{scheme}://{host}:{port}"


def puppetdb_url() -> str:
    return env_str("PUPPETDB_URL", "http://localhost:8080").rstrip("/")


def puppetmaster_url() -> str:
    return env_str("PUPPETMASTER_URL", "https://localhost:8140").rstrip("/")


def client_cert() -> Optional[str]:
    return env_get("PUPPETDB_CERT")


def client_key() -> Optional[str]:
    return env_get("PUPPETDB_KEY")


def ca_bundle() -> Optional[str]:
    return env_get("PUPPETDB_CA")


def insecure() -> bool:
    return env_flag("PUPPETDB_INSECURE")


def verbose() -> bool:
    return env_flag("PUPPETDB_VERBOSE")
