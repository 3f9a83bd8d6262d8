"""Builder for Tekton TriggerBinding manifests."""

from __future__ import annotations

from typing import Any, Dict


class TriggerBindingBuilder:
    """Builds a TriggerBinding, available as ``trigger_binding``."""

    def __init__(self, name: str, namespace: str) -> None:
        self.trigger_binding: Dict[str, Any] = {
            "metadata": {"name": name, "namespace": namespace},
            "spec": {},
        }

    def param(self, name: str, value: str) -> None:
        """Add a parameter bound to the given value."""
        self.trigger_binding["spec"].setdefault("params", []).append(
            {"name": name, "value": value}
        )