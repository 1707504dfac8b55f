"""Client configuration.

Defaults are declared once on RexProConfig and merged with caller options
by resolve_config(). Option names follow Python style; the camelCase names
used by other RexPro clients (graphObjName, inSession) are accepted too.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any

from .protocol.constants import SerializerKind
from .protocol.header import resolve_serializer

DEFAULT_PORT = 8184


@dataclass(frozen=True)
class RexProConfig:
    """Connection and request defaults for a RexProClient."""

    # Connection
    host: str = "localhost"
    port: int = DEFAULT_PORT
    read_size: int = 65536  # max bytes per transport read

    # Body encoding: "json" | "msgpack"
    serializer: str = SerializerKind.JSON.value

    # Script request meta
    graph: str = "tinkerpop"
    language: str = "groovy"
    graph_obj_name: str = "g"
    in_session: bool = False
    isolate: bool = True
    transaction: bool = True

    @property
    def serializer_kind(self) -> SerializerKind:
        return resolve_serializer(self.serializer)


_ALIASES = {
    "graphObjName": "graph_obj_name",
    "graphName": "graph",
    "inSession": "in_session",
    "readSize": "read_size",
}

_FIELD_NAMES = frozenset(f.name for f in fields(RexProConfig))


def resolve_config(base: RexProConfig | None = None, **overrides: Any) -> RexProConfig:
    """Merge options over a base configuration (defaults if none).

    Options set to None are ignored so callers can pass optional arguments
    straight through.

    Raises:
        TypeError: Unknown option name.
        UnsupportedSerializerError: Serializer is not "json" or "msgpack".
    """
    changes: dict[str, Any] = {}
    for key, value in overrides.items():
        name = _ALIASES.get(key, key)
        if name not in _FIELD_NAMES:
            raise TypeError(f"Unknown RexPro option: {key!r}")
        if value is not None:
            changes[name] = value

    if isinstance(changes.get("serializer"), SerializerKind):
        changes["serializer"] = changes["serializer"].value

    config = replace(base or RexProConfig(), **changes)
    # Validate eagerly so a bad name fails before any connection is made
    resolve_serializer(config.serializer)
    return config
