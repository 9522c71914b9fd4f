from __future__ import annotations

import json
from typing import Any, Dict, Mapping, Optional

from ..domain.errors import EncodeError


def encode(expr: Any) -> str:
    """Serialize a query expression to the compact wire form.

    ``["=", "certname", "node123"]`` becomes ``["=","certname","node123"]``.
    Sequences keep their order; scalars at the top level encode as bare JSON.

    Raises:
        EncodeError: Cyclic input, unsupported types or non-finite floats.
    """
    try:
        return json.dumps(expr, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError, RecursionError) as ex:
        raise EncodeError(f"Query is not serializable: {ex}") from ex


def query_param(query: Any) -> str:
    """Normalize a ``query`` argument: None -> "", str passes through, else encode()."""
    if query is None:
        return ""
    if isinstance(query, str):
        return query
    return encode(query)


def merge_params(name: str, value: str, extra: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """Build a fresh parameter dict from one named value plus optional extras.

    An empty ``value`` is dropped. Keys in ``extra`` overwrite ``name`` on collision.
    """
    params: Dict[str, str] = {}
    if value:
        params[name] = value
    if extra:
        for k, v in extra.items():
            params[k] = v
    return params
