"""JSON merge patches: creating two- and three-way patches and applying them."""

from __future__ import annotations

import copy
from typing import Any


class MergePatchConflict(ValueError):
    """Raised when the changes and the deletions of a three-way patch collide."""


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _same(left: Any, right: Any) -> bool:
    """Compare two JSON values; numbers compare by value, booleans only with booleans."""
    if isinstance(left, dict):
        return (
            isinstance(right, dict)
            and left.keys() == right.keys()
            and all(_same(left[key], right[key]) for key in left)
        )
    if isinstance(left, list):
        return (
            isinstance(right, list)
            and len(left) == len(right)
            and all(_same(a, b) for a, b in zip(left, right))
        )
    if _is_number(left):
        return _is_number(right) and left == right
    return type(left) is type(right) and left == right


def _require_objects(**documents: Any) -> None:
    for name, document in documents.items():
        if not isinstance(document, dict):
            raise ValueError(f"{name} must be a JSON object, got {type(document).__name__}")


def _diff(original: dict, modified: dict) -> dict:
    patch: dict[str, Any] = {}
    for key, new in modified.items():
        if key in original:
            old = original[key]
            if _same(old, new):
                continue
            if isinstance(old, dict) and isinstance(new, dict):
                nested = _diff(old, new)
                if nested:
                    patch[key] = nested
                continue
        patch[key] = copy.deepcopy(new)
    for key in original:
        if key not in modified:
            patch[key] = None
    return patch


def create_two_way_merge_patch(original: dict[str, Any], modified: dict[str, Any]) -> dict[str, Any]:
    """Return the merge patch that turns ``original`` into ``modified``."""
    _require_objects(original=original, modified=modified)
    return _diff(original, modified)


def _merge(document: Any, patch: Any) -> Any:
    if not isinstance(patch, dict):
        return copy.deepcopy(patch)
    result = copy.deepcopy(document) if isinstance(document, dict) else {}
    for key, value in patch.items():
        if value is None:
            result.pop(key, None)
        else:
            result[key] = _merge(result.get(key), value)
    return result


def merge_patch(document: Any, patch: Any) -> Any:
    """Apply a JSON merge patch to ``document`` and return the result; inputs stay untouched."""
    return _merge(document, patch)


def _filter_nulls(patch: dict, keep_null: bool) -> dict:
    """Keep only deletions (``keep_null``) or only additions and changes."""
    filtered: dict[str, Any] = {}
    for key, value in patch.items():
        if value is None:
            if keep_null:
                filtered[key] = None
        elif isinstance(value, dict):
            # An explicitly set empty map is a value, not an empty patch.
            if not value:
                if not keep_null:
                    filtered[key] = value
                continue
            nested = _filter_nulls(value, keep_null)
            if nested:
                filtered[key] = nested
        elif isinstance(value, (list, str, int, float, bool)):
            # Lists are always replaced whole.
            if not keep_null:
                filtered[key] = value
        else:
            raise ValueError(f"unknown type: {type(value).__name__}")
    return filtered


def _has_conflicts(left: Any, right: Any) -> bool:
    if isinstance(left, dict):
        if not isinstance(right, dict):
            return True
        return any(_has_conflicts(value, right[key]) for key, value in left.items() if key in right)
    if isinstance(left, list):
        if not isinstance(right, list) or len(left) != len(right):
            return True
        return any(_has_conflicts(a, b) for a, b in zip(left, right))
    if left is None or isinstance(left, (str, int, float, bool)):
        return not _same(left, right)
    raise ValueError(f"unknown type: {type(left).__name__}")


def create_three_way_merge_patch(
    original: dict[str, Any], modified: dict[str, Any], current: dict[str, Any]
) -> dict[str, Any]:
    """Return the patch that brings ``current`` to ``modified``.

    Additions and changes come from comparing ``current`` with ``modified``;
    deletions only from comparing ``original`` with ``modified``, so fields
    that appeared in ``current`` by other means are left alone.
    """
    _require_objects(original=original, modified=modified, current=current)
    changes = _filter_nulls(_diff(current, modified), keep_null=False)
    deletions = _filter_nulls(_diff(original, modified), keep_null=True)
    if _has_conflicts(changes, deletions):
        raise MergePatchConflict(
            f"precondition failed for: changes {changes} conflict with deletions {deletions}"
        )
    return _merge(deletions, changes)