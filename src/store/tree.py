"""Helpers for JSON trees with set-to-null deletion.

Objects never hold ``None`` values or empty objects: writing ``None`` removes
the key, and parents left empty by a removal are pruned.
"""

import copy
from typing import Any, Mapping, Optional


def normalize(value: Any) -> Any:
    """Drop ``None`` members and empty objects, recursively."""
    if isinstance(value, Mapping):
        cleaned = {}
        for key, child in value.items():
            child = normalize(child)
            if child is not None:
                cleaned[str(key)] = child
        return cleaned or None
    return value


def get_at(tree: Any, parts: list[str]) -> Any:
    node = tree
    for part in parts:
        if not isinstance(node, Mapping) or part not in node:
            return None
        node = node[part]
    return copy.deepcopy(node)


def set_at(tree: Optional[dict], parts: list[str], value: Any) -> Any:
    """
    Return ``tree`` with ``value`` written at ``parts`` (``None`` deletes).

    Mutates ``tree`` in place where possible; callers that need the old value
    must copy first.
    """
    value = normalize(value)
    if not parts:
        return value

    root = tree if isinstance(tree, dict) else {}
    node = root
    trail: list[tuple[dict, str]] = []
    for part in parts[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            if value is None:
                # Nothing to delete below a missing or scalar node
                return root or None
            child = {}
            node[part] = child
        trail.append((node, part))
        node = child

    last = parts[-1]
    if value is None:
        node.pop(last, None)
    else:
        node[last] = value

    for parent, key in reversed(trail):
        if parent[key]:
            break
        del parent[key]

    return root or None


def apply_batch(tree: Optional[dict], updates: list[tuple[list[str], Any]]) -> Any:
    """Apply a batch to a deep copy of ``tree`` and return the new tree."""
    result = copy.deepcopy(tree)
    for parts, value in updates:
        result = set_at(result, parts, value)
    return result
