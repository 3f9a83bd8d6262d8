"""Builder for Tekton Pipeline manifests."""

from __future__ import annotations

import copy
from typing import Any, Dict, Mapping, Optional, Union

from fusemlcore.tekton.builder.meta import MetaOp, apply_meta


class PipelineBuilder:
    """Builds a Pipeline, available as ``pipeline``."""

    def __init__(self, name: str, namespace: str) -> None:
        self.pipeline: Dict[str, Any] = {
            "metadata": {"name": name, "namespace": namespace},
            "spec": {},
        }

    @property
    def _spec(self) -> Dict[str, Any]:
        return self.pipeline["spec"]

    def meta(self, *args: MetaOp) -> None:
        """Apply metadata operations to the pipeline."""
        apply_meta(self.pipeline, args)

    def description(self, description: str) -> None:
        """Set the pipeline description."""
        self._spec["description"] = description

    def param(self, name: str, description: str) -> None:
        """Add a parameter without a default value."""
        self._spec.setdefault("params", []).append(
            {"name": name, "description": description}
        )

    def param_with_default_value(
        self, name: str, description: str, default_value: str
    ) -> None:
        """Add a parameter with a default value."""
        self._spec.setdefault("params", []).append(
            {"name": name, "description": description, "default": default_value}
        )

    def workspace(self, name: str, optional: bool = False) -> None:
        """Declare a workspace."""
        declaration: Dict[str, Any] = {"name": name}
        if optional:
            declaration["optional"] = True
        self._spec.setdefault("workspaces", []).append(declaration)

    def resource(self, name: str, resource_type: str, optional: bool = False) -> None:
        """Declare a pipeline resource."""
        declaration: Dict[str, Any] = {"name": name, "type": resource_type}
        if optional:
            declaration["optional"] = True
        self._spec.setdefault("resources", []).append(declaration)

    def task(
        self,
        name: str,
        task: Union[str, Mapping[str, Any]],
        params: Optional[Mapping[str, str]] = None,
        workspaces: Optional[Mapping[str, str]] = None,
        resources: Optional[Mapping[str, str]] = None,
    ) -> None:
        """Add a task, referenced by name or embedded as a task spec.

        Tasks run one after another: each new task runs after the previous one.
        """
        pipeline_task: Dict[str, Any] = {"name": name}
        if isinstance(task, str):
            pipeline_task["taskRef"] = {"name": task}
        elif isinstance(task, Mapping):
            pipeline_task["taskSpec"] = copy.deepcopy(dict(task))
        else:
            raise TypeError(f"task must be a name or a task spec, not {type(task).__name__}")
        if params:
            pipeline_task["params"] = [
                {"name": key, "value": value} for key, value in params.items()
            ]
        if workspaces:
            pipeline_task["workspaces"] = [
                {"name": key, "workspace": value} for key, value in workspaces.items()
            ]
        if resources is not None:
            pipeline_task["resources"] = {
                "inputs": [
                    {"name": key, "resource": value} for key, value in resources.items()
                ]
            }
        tasks = self._spec.setdefault("tasks", [])
        if tasks:
            pipeline_task["runAfter"] = [tasks[-1]["name"]]
        tasks.append(pipeline_task)

    def result(self, name: str, description: str, value: str) -> None:
        """Add a pipeline result."""
        self._spec.setdefault("results", []).append(
            {"name": name, "description": description, "value": value}
        )