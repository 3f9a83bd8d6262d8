"""Namespaced collections of Tekton resources, held as manifest dictionaries."""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

Resource = Dict[str, Any]


class ResourceNotFoundError(LookupError):
    """No resource of the kind exists with the given name."""

    def __init__(self, kind: str, name: str) -> None:
        self.kind = kind
        self.name = name
        super().__init__(f'{kind} "{name}" not found')


class ResourceExistsError(Exception):
    """A resource of the kind already exists with the given name."""

    def __init__(self, kind: str, name: str) -> None:
        self.kind = kind
        self.name = name
        super().__init__(f'{kind} "{name}" already exists')


def _name_of(resource: Resource) -> str:
    return resource.get("metadata", {}).get("name", "")


def _matches(labels: Dict[str, str], selector: Optional[str]) -> bool:
    if not selector:
        return True
    for requirement in selector.split(","):
        requirement = requirement.strip()
        if not requirement:
            continue
        if "!=" in requirement:
            key, value = (part.strip() for part in requirement.split("!=", 1))
            if labels.get(key) == value:
                return False
        elif "=" in requirement:
            key, value = requirement.split("=", 1)
            key, value = key.strip(), value.lstrip("=").strip()
            if labels.get(key) != value:
                return False
        elif requirement.startswith("!"):
            if requirement[1:].strip() in labels:
                return False
        elif requirement not in labels:
            return False
    return True


class ResourceClient:
    """Create, read, update and delete resources of one kind in one namespace.

    Resources are keyed by ``metadata.name``. Stored resources are copies, so
    changes to a returned resource only take effect through ``update``.
    """

    def __init__(self, kind: str, namespace: str) -> None:
        self.kind = kind
        self.namespace = namespace
        self._items: Dict[str, Resource] = {}

    def _stored(self, name: str) -> Resource:
        try:
            return self._items[name]
        except KeyError:
            raise ResourceNotFoundError(self.kind, name) from None

    def create(self, resource: Resource) -> Resource:
        """Store a new resource and return a copy of what was stored."""
        name = _name_of(resource)
        if name in self._items:
            raise ResourceExistsError(self.kind, name)
        stored = copy.deepcopy(resource)
        stored.setdefault("metadata", {}).setdefault("namespace", self.namespace)
        self._items[name] = stored
        return copy.deepcopy(stored)

    def get(self, name: str) -> Resource:
        """Return a copy of the resource with the given name."""
        return copy.deepcopy(self._stored(name))

    def list(self, label_selector: Optional[str] = None) -> List[Resource]:
        """Return copies of the resources whose labels match the selector."""
        return [
            copy.deepcopy(resource)
            for resource in self._items.values()
            if _matches(resource.get("metadata", {}).get("labels", {}), label_selector)
        ]

    def update(self, resource: Resource) -> Resource:
        """Replace an existing resource."""
        name = _name_of(resource)
        self._stored(name)
        stored = copy.deepcopy(resource)
        stored.setdefault("metadata", {}).setdefault("namespace", self.namespace)
        self._items[name] = stored
        return copy.deepcopy(stored)

    def update_status(self, resource: Resource) -> Resource:
        """Replace only the status of an existing resource."""
        stored = self._stored(_name_of(resource))
        stored["status"] = copy.deepcopy(resource.get("status", {}))
        return copy.deepcopy(stored)

    def delete(self, name: str) -> None:
        """Remove the resource with the given name."""
        self._stored(name)
        del self._items[name]


@dataclass
class TektonClients:
    """Clients for every Tekton resource kind used by the workflow backend."""

    pipeline_client: ResourceClient
    pipeline_run_client: ResourceClient
    task_client: ResourceClient
    trigger_template_client: ResourceClient
    trigger_binding_client: ResourceClient
    event_listener_client: ResourceClient


def new_clients(namespace: str) -> TektonClients:
    """Return a set of clients scoped to the given namespace."""
    return TektonClients(
        pipeline_client=ResourceClient("Pipeline", namespace),
        pipeline_run_client=ResourceClient("PipelineRun", namespace),
        task_client=ResourceClient("Task", namespace),
        trigger_template_client=ResourceClient("TriggerTemplate", namespace),
        trigger_binding_client=ResourceClient("TriggerBinding", namespace),
        event_listener_client=ResourceClient("EventListener", namespace),
    )