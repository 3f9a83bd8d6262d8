"""Builder for Tekton PipelineRun manifests."""

from __future__ import annotations

import re
from typing import Any, Dict

from fusemlcore.tekton.builder.meta import MetaOp, apply_meta

_QUANTITY = re.compile(
    r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+|[KMGTPE]i|[numkMGTPE])?$"
)


class PipelineRunBuilder:
    """Builds a PipelineRun, available as ``pipeline_run``."""

    def __init__(self, generate_name: str) -> None:
        self.pipeline_run: Dict[str, Any] = {
            "kind": "PipelineRun",
            "apiVersion": "tekton.dev/v1beta1",
            "metadata": {"generateName": generate_name},
            "spec": {},
        }

    @property
    def _spec(self) -> Dict[str, Any]:
        return self.pipeline_run["spec"]

    def meta(self, *args: MetaOp) -> None:
        """Apply metadata operations to the run."""
        apply_meta(self.pipeline_run, args)

    def generate_name(self, generate_name: str) -> None:
        """Set the prefix used to generate the run's name."""
        self.pipeline_run["metadata"]["generateName"] = generate_name

    def service_account(self, name: str) -> None:
        """Set the service account the run uses."""
        self._spec["serviceAccountName"] = name

    def pipeline_ref(self, name: str) -> None:
        """Set the pipeline the run executes."""
        self._spec["pipelineRef"] = {"name": name}

    def workspace(self, name: str, access_mode: str, size: str) -> None:
        """Bind a workspace to a volume claim of the given access mode and size."""
        if not _QUANTITY.match(size):
            raise ValueError(f"invalid storage quantity: {size!r}")
        self._spec.setdefault("workspaces", []).append(
            {
                "name": name,
                "volumeClaimTemplate": {
                    "spec": {
                        "accessModes": [access_mode],
                        "resources": {"requests": {"storage": size}},
                    }
                },
            }
        )

    def param(self, name: str, value: str) -> None:
        """Add a parameter value."""
        self._spec.setdefault("params", []).append({"name": name, "value": value})

    def resource_git(self, name: str, url: str, revision: str) -> None:
        """Add a git resource at the given URL and revision."""
        self._spec.setdefault("resources", []).append(
            {
                "name": name,
                "resourceSpec": {
                    "type": "git",
                    "params": [
                        {"name": "url", "value": url},
                        {"name": "revision", "value": revision},
                    ],
                },
            }
        )