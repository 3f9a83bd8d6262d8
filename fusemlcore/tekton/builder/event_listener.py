"""Builder for Tekton EventListener manifests."""

from __future__ import annotations

from typing import Any, Dict


class EventListenerBuilder:
    """Builds an EventListener, available as ``event_listener``."""

    def __init__(self, name: str, namespace: str) -> None:
        self.event_listener: Dict[str, Any] = {
            "metadata": {"name": name, "namespace": namespace},
            "spec": {},
        }

    def service_account(self, name: str) -> None:
        """Set the service account the listener runs as."""
        self.event_listener["spec"]["serviceAccountName"] = name

    def trigger_binding(self, template_name: str, *args: str) -> None:
        """Add a trigger that uses the template and the named bindings."""
        self.event_listener["spec"].setdefault("triggers", []).append(
            {
                "template": {"ref": template_name},
                "bindings": [{"ref": binding} for binding in args],
            }
        )