"""Operations that modify the metadata and type fields of a resource manifest."""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable

Resource = Dict[str, Any]
MetaOp = Callable[[Resource], None]


def label(key: str, value: str) -> MetaOp:
    """Return an operation that sets a single label."""

    def op(resource: Resource) -> None:
        resource.setdefault("metadata", {}).setdefault("labels", {})[key] = value

    return op


def annotation(key: str, value: str) -> MetaOp:
    """Return an operation that sets a single annotation."""

    def op(resource: Resource) -> None:
        resource.setdefault("metadata", {}).setdefault("annotations", {})[key] = value

    return op


def type_meta(kind: str, api_version: str) -> MetaOp:
    """Return an operation that sets the kind and API version."""

    def op(resource: Resource) -> None:
        resource["kind"] = kind
        resource["apiVersion"] = api_version

    return op


def apply_meta(resource: Resource, ops: Iterable[MetaOp]) -> Resource:
    """Apply the operations to the resource in order and return it."""
    for op in ops:
        op(resource)
    return resource