"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Shared JSON aliases used by cached payloads and persisted snapshots.
"""

from __future__ import annotations

from typing import TypeAlias

JsonPrimitive: TypeAlias = str | int | float | bool | None
JsonValue: TypeAlias = JsonPrimitive | list["JsonValue"] | dict[str, "JsonValue"]
JsonObject: TypeAlias = dict[str, JsonValue]
