"""Managed fields entries in their wire form and in the per-manager form used for merging."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

OPERATION_APPLY = "Apply"
OPERATION_UPDATE = "Update"
FIELDS_TYPE_V1 = "FieldsV1"

_TIME_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
_PATH_PREFIXES = ("f", "k", "v", "i")


def _parse_time(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"time: expected string, got {type(value).__name__}")
    text = value[:-1] + "+00:00" if value.endswith("Z") else value
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _format_time(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(_TIME_FORMAT)


def _compact_json(value: Any) -> str:
    text = json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    for char, escape in (("<", "\\u003c"), (">", "\\u003e"), ("&", "\\u0026"),
                         ("\u2028", "\\u2028"), ("\u2029", "\\u2029")):
        text = text.replace(char, escape)
    return text


def _string_field(data: dict, key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"{key}: expected string, got {type(value).__name__}")
    return value


def _check_field_set(trie: Any) -> None:
    """Raise ValueError unless ``trie`` is a well-formed set of field paths."""
    if not isinstance(trie, dict):
        raise ValueError(f"expected a JSON object, got {type(trie).__name__}")
    for key, child in trie.items():
        if key != ".":
            prefix, sep, rest = key.partition(":")
            if not sep or prefix not in _PATH_PREFIXES:
                raise ValueError(f"unexpected path element {key!r}")
            if prefix in ("k", "v"):
                try:
                    json.loads(rest)
                except ValueError as err:
                    raise ValueError(f"invalid value in path element {key!r}: {err}") from err
            elif prefix == "i":
                try:
                    int(rest)
                except ValueError as err:
                    raise ValueError(f"invalid index in path element {key!r}") from err
        _check_field_set(child)


@dataclass
class ManagedFieldsEntry:
    """One entry of ``metadata.managedFields``."""

    manager: str = ""
    operation: str = ""
    api_version: str = ""
    time: Optional[datetime] = None
    fields_type: str = ""
    fields_v1: Optional[dict] = None
    subresource: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ManagedFieldsEntry":
        """Build an entry from its wire form."""
        if not isinstance(data, dict):
            raise ValueError(f"managed fields entry: expected map, got {type(data).__name__}")
        fields_v1 = data.get("fieldsV1")
        if fields_v1 is not None and not isinstance(fields_v1, dict):
            raise ValueError("fieldsV1: expected map")
        return cls(
            manager=_string_field(data, "manager"),
            operation=_string_field(data, "operation"),
            api_version=_string_field(data, "apiVersion"),
            time=_parse_time(data.get("time")),
            fields_type=_string_field(data, "fieldsType"),
            fields_v1=fields_v1,
            subresource=_string_field(data, "subresource"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the wire form, leaving out empty fields."""
        result: dict[str, Any] = {}
        if self.manager:
            result["manager"] = self.manager
        if self.operation:
            result["operation"] = self.operation
        if self.api_version:
            result["apiVersion"] = self.api_version
        if self.time is not None:
            result["time"] = _format_time(self.time)
        if self.fields_type:
            result["fieldsType"] = self.fields_type
        if self.fields_v1 is not None:
            result["fieldsV1"] = self.fields_v1
        if self.subresource:
            result["subresource"] = self.subresource
        return result


@dataclass
class VersionedSet:
    """A set of owned field paths together with the API version it was recorded in."""

    fields: dict
    api_version: str
    applied: bool


@dataclass
class Managed:
    """Field sets and operation timestamps keyed by manager identifier."""

    fields: dict[str, VersionedSet] = field(default_factory=dict)
    times: dict[str, Optional[datetime]] = field(default_factory=dict)


def build_manager_identifier(entry: ManagedFieldsEntry) -> str:
    """Return the identifier of the manager that wrote ``entry``.

    Fields type, fields and time never take part; for appliers the API
    version does not either, so an applier keeps one identifier.
    """
    stripped = replace(entry, fields_type="", fields_v1=None, time=None)
    if entry.operation == OPERATION_APPLY:
        stripped.api_version = ""
    return _compact_json(stripped.to_dict())


def _decode_versioned_set(entry: ManagedFieldsEntry) -> VersionedSet:
    fields = {} if entry.fields_v1 is None else entry.fields_v1
    try:
        _check_field_set(fields)
    except ValueError as err:
        raise ValueError(f"error decoding set: {err}") from err
    return VersionedSet(
        fields=json.loads(json.dumps(fields)),
        api_version=entry.api_version,
        applied=entry.operation == OPERATION_APPLY,
    )


def decode_managed_fields(entries: Iterable[ManagedFieldsEntry]) -> Managed:
    """Convert wire-form entries into per-manager field sets."""
    managed = Managed()
    for index, entry in enumerate(entries):
        if entry.operation not in (OPERATION_APPLY, OPERATION_UPDATE):
            raise ValueError("operation must be `Apply` or `Update`")
        if not entry.api_version:
            raise ValueError("apiVersion must not be empty")
        if entry.fields_type == "":
            raise ValueError(f"missing fieldsType in managed fields entry {index}")
        if entry.fields_type != FIELDS_TYPE_V1:
            raise ValueError(
                f"invalid fieldsType {json.dumps(entry.fields_type)} in managed fields entry {index}"
            )
        manager = build_manager_identifier(entry)
        try:
            managed.fields[manager] = _decode_versioned_set(entry)
        except ValueError as err:
            raise ValueError(f"error decoding versioned set from {entry}: {err}") from err
        managed.times[manager] = entry.time
    return managed


def _encode_versioned_set(manager: str, versioned: VersionedSet) -> ManagedFieldsEntry:
    try:
        entry = ManagedFieldsEntry.from_dict(json.loads(manager))
    except ValueError as err:
        raise ValueError(f"error unmarshalling manager identifier {manager}: {err}") from err
    entry.api_version = versioned.api_version
    if versioned.applied:
        entry.operation = OPERATION_APPLY
    entry.fields_type = FIELDS_TYPE_V1
    entry.fields_v1 = json.loads(json.dumps(versioned.fields))
    return entry


def encode_managed_fields(managed: Managed) -> list[ManagedFieldsEntry]:
    """Convert per-manager field sets back into sorted wire-form entries."""
    entries = []
    for manager, versioned in managed.fields.items():
        try:
            entry = _encode_versioned_set(manager, versioned)
        except ValueError as err:
            raise ValueError(f"error encoding versioned set for {manager}: {err}") from err
        if manager in managed.times:
            entry.time = managed.times[manager]
        entries.append(entry)
    return sort_managed_fields(entries)


def _sort_key(entry: ManagedFieldsEntry) -> tuple:
    seconds = int(entry.time.timestamp()) if entry.time is not None else 0
    return (entry.operation, seconds, entry.manager, entry.api_version, entry.subresource)


def sort_managed_fields(entries: Iterable[ManagedFieldsEntry]) -> list[ManagedFieldsEntry]:
    """Order entries by operation, time, manager, API version and subresource."""
    return sorted(entries, key=_sort_key)