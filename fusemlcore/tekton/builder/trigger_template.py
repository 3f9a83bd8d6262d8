"""Builder for Tekton TriggerTemplate manifests."""

from __future__ import annotations

import copy
from typing import Any, Dict

from fusemlcore.tekton.builder.meta import MetaOp, apply_meta


class TriggerTemplateBuilder:
    """Builds a TriggerTemplate, available as ``trigger_template``."""

    def __init__(self, name: str, namespace: str) -> None:
        self.trigger_template: Dict[str, Any] = {
            "metadata": {"name": name, "namespace": namespace},
            "spec": {},
        }

    def meta(self, *args: MetaOp) -> None:
        """Apply metadata operations to the template."""
        apply_meta(self.trigger_template, args)

    def param(self, name: str, description: str) -> None:
        """Add a parameter without a default value."""
        self.trigger_template["spec"].setdefault("params", []).append(
            {"name": name, "description": description}
        )

    def param_with_default_value(
        self, name: str, description: str, default_value: str
    ) -> None:
        """Add a parameter with a default value."""
        self.trigger_template["spec"].setdefault("params", []).append(
            {"name": name, "description": description, "default": default_value}
        )

    def resource_template(self, resource_template: Dict[str, Any]) -> None:
        """Add a snapshot of a resource manifest created on each trigger."""
        self.trigger_template["spec"].setdefault("resourcetemplates", []).append(
            copy.deepcopy(resource_template)
        )