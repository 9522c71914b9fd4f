"""
Polymorphic JSON values.

Some response fields (a fact's value, an event's old/new value, resource
parameters) carry any JSON type depending on what the service stored.
JsonValue keeps the decoded structure behind an explicit tag and makes the
caller ask for the kind it expects.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Tuple, Union

from .errors import TypeMismatch


class ValueKind(str, Enum):
    ABSENT = "absent"
    NULL = "null"
    BOOLEAN = "boolean"
    NUMBER = "number"
    STRING = "string"
    ARRAY = "array"
    OBJECT = "object"


@dataclass(frozen=True)
class JsonValue:
    """A decoded JSON value tagged with its kind.

    Fields:
        kind: Which JSON type was decoded (or ABSENT when the key was missing).
        data: The payload. Scalars are stored as-is, arrays as a tuple of
            JsonValue, objects as a read-only mapping of str -> JsonValue.
    """
    kind: ValueKind
    data: Any = None

    @classmethod
    def absent(cls) -> "JsonValue":
        return cls(ValueKind.ABSENT)

    @classmethod
    def decode(cls, raw: Any) -> "JsonValue":
        """Wrap a value produced by ``json.loads``. Never fails for JSON input.

        Anything that is not a JSON type (e.g. a set) is rejected with TypeMismatch.
        """
        if raw is None:
            return cls(ValueKind.NULL)
        # bool is a subclass of int; it has to be checked first
        if isinstance(raw, bool):
            return cls(ValueKind.BOOLEAN, raw)
        if isinstance(raw, (int, float)):
            return cls(ValueKind.NUMBER, raw)
        if isinstance(raw, str):
            return cls(ValueKind.STRING, raw)
        if isinstance(raw, (list, tuple)):
            return cls(ValueKind.ARRAY, tuple(cls.decode(item) for item in raw))
        if isinstance(raw, Mapping):
            return cls(
                ValueKind.OBJECT,
                MappingProxyType({str(k): cls.decode(v) for k, v in raw.items()}),
            )
        raise TypeMismatch("JSON value", type(raw).__name__)

    # --- predicates ---
    def is_absent(self) -> bool:
        return self.kind is ValueKind.ABSENT

    def is_null(self) -> bool:
        return self.kind is ValueKind.NULL

    # --- checked extraction ---
    def _expect(self, kind: ValueKind) -> Any:
        if self.kind is not kind:
            raise TypeMismatch(kind.value, self.kind.value)
        return self.data

    def as_string(self) -> str:
        return self._expect(ValueKind.STRING)

    def as_number(self) -> Union[int, float]:
        return self._expect(ValueKind.NUMBER)

    def as_bool(self) -> bool:
        return self._expect(ValueKind.BOOLEAN)

    def as_list(self) -> Tuple["JsonValue", ...]:
        return self._expect(ValueKind.ARRAY)

    def as_dict(self) -> Mapping[str, "JsonValue"]:
        return self._expect(ValueKind.OBJECT)

    # --- re-encoding ---
    def to_python(self) -> Any:
        """Return the plain JSON-compatible structure this value was decoded from.

        ABSENT re-encodes as ``None``; object key order is kept from decode.
        """
        if self.kind is ValueKind.ARRAY:
            return [item.to_python() for item in self.data]
        if self.kind is ValueKind.OBJECT:
            return {k: v.to_python() for k, v in self.data.items()}
        return self.data

    def to_json(self) -> str:
        """Compact JSON text for this value."""
        return json.dumps(self.to_python(), separators=(",", ":"), ensure_ascii=False)

    def __hash__(self) -> int:
        # Objects hold a mappingproxy, which has no hash of its own
        if self.kind is ValueKind.OBJECT:
            return hash((self.kind, frozenset(self.data.items())))
        return hash((self.kind, self.data))

    def __str__(self) -> str:
        if self.kind is ValueKind.STRING:
            return self.data
        return self.to_json()


def decode_value(raw: Any) -> JsonValue:
    return JsonValue.decode(raw)


def reencode(value: JsonValue) -> Any:
    return value.to_python()
