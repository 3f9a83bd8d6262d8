"""Workflow backend that runs workflows as Tekton pipelines."""

from __future__ import annotations

import logging
import os
import secrets
import time
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple, Union

from fusemlcore.domain.models import Codeset
from fusemlcore.domain.workflow import (
    Workflow,
    WorkflowExistsError,
    WorkflowInput,
    WorkflowIOType,
    WorkflowListener,
    WorkflowRun,
    WorkflowRunFilter,
    WorkflowRunInput,
    WorkflowRunOutput,
)
from fusemlcore.tekton.clients import (
    ResourceClient,
    ResourceExistsError,
    ResourceNotFoundError,
    TektonClients,
    new_clients,
)
from fusemlcore.tekton.constants import (
    LABEL_CODESET_NAME,
    LABEL_CODESET_PROJECT,
    LABEL_WORKFLOW_REF,
)
from fusemlcore.tekton.generate import (
    generate_event_listener,
    generate_pipeline,
    generate_pipeline_run,
    generate_trigger_binding,
    generate_trigger_template,
    pipeline_reason_to_workflow_status,
)

Resource = Dict[str, Any]

_NAME_SUFFIX_ALPHABET = "bcdfghjklmnpqrstvwxz2456789"
_NAME_SUFFIX_LENGTH = 5
_POLL_INTERVAL = 1.0
_AVAILABLE_CONDITION = "Available"


class WorkflowBackendError(Exception):
    """An error raised by the workflow backend."""


class DashboardURLMissingError(WorkflowBackendError):
    """The Tekton dashboard URL was not configured."""

    def __init__(self) -> None:
        super().__init__(
            "value for Tekton Dashboard URL (TEKTON_DASHBOARD_URL) was not provided."
        )


class ListenerTimeoutError(WorkflowBackendError):
    """The event listener did not become ready in time."""

    def __init__(self) -> None:
        super().__init__("time out waiting for listener to become ready")


def listener_is_available(status: Optional[Resource]) -> bool:
    """Tell whether an event listener status reports a ready, addressable listener."""
    if not status:
        return False
    conditions = status.get("conditions") or []
    if not conditions:
        return False
    if not any(cond.get("type") == _AVAILABLE_CONDITION for cond in conditions):
        return False
    if any(cond.get("status") != "True" for cond in conditions):
        return False
    return bool((status.get("address") or {}).get("url"))


def _parse_time(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def _resource_param(resource: Resource, name: str) -> Optional[str]:
    params = (resource.get("resourceSpec") or {}).get("params", [])
    return next((p["value"] for p in params if p.get("name") == name), None)


class WorkflowBackend:
    """Creates and inspects the Tekton resources behind workflows."""

    def __init__(
        self,
        dashboard_url: str,
        namespace: str,
        clients: TektonClients,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.dashboard_url = dashboard_url
        self.namespace = namespace
        self.clients = clients
        self.logger = logger or logging.getLogger(__name__)

    @classmethod
    def from_environment(
        cls,
        namespace: str,
        clients: Optional[TektonClients] = None,
        logger: Optional[logging.Logger] = None,
    ) -> "WorkflowBackend":
        """Build a backend using the dashboard URL from ``TEKTON_DASHBOARD_URL``."""
        dashboard_url = os.environ.get("TEKTON_DASHBOARD_URL")
        if dashboard_url is None:
            raise DashboardURLMissingError()
        if clients is None:
            clients = new_clients(namespace)
        return cls(dashboard_url.removesuffix("/"), namespace, clients, logger)

    def _log(self, message: str) -> None:
        self.logger.info(message)

    def _listener_dashboard_url(self, name: str) -> str:
        return f"{self.dashboard_url}/#/namespaces/{self.namespace}/eventlisteners/{name}"

    def create_workflow(self, workflow: Workflow) -> None:
        """Create the Tekton pipeline for a workflow."""
        pipeline = generate_pipeline(workflow, self.namespace)
        self._log(f"Creating tekton pipeline for workflow: {workflow.name}...")
        try:
            self.clients.pipeline_client.create(pipeline)
        except ResourceExistsError:
            raise WorkflowExistsError() from None

    def delete_workflow(self, name: str) -> None:
        """Delete the Tekton pipeline with the given name, if it exists."""
        self._log(f"Deleting tekton pipeline: {name}...")
        try:
            self.clients.pipeline_client.delete(name)
        except ResourceNotFoundError:
            self._log(f'Tekton pipeline "{name}" not found, skipping delete...')

    def create_workflow_run(self, workflow_name: str, codeset: Codeset) -> None:
        """Start a run of the workflow's pipeline on a codeset."""
        try:
            pipeline = self.clients.pipeline_client.get(workflow_name)
        except ResourceNotFoundError as exc:
            raise WorkflowBackendError(
                f'error getting tekton pipeline "{workflow_name}": {exc}'
            ) from exc
        try:
            pipeline_run = generate_pipeline_run(pipeline, codeset)
        except ValueError as exc:
            raise WorkflowBackendError(
                f'error generating tekton pipeline run for workflow "{workflow_name}": {exc}'
            ) from exc

        metadata = pipeline_run["metadata"]
        if not metadata.get("name"):
            suffix = "".join(
                secrets.choice(_NAME_SUFFIX_ALPHABET) for _ in range(_NAME_SUFFIX_LENGTH)
            )
            metadata["name"] = metadata.get("generateName", "") + suffix

        self._log(f"Creating tekton pipeline run for workflow: {workflow_name}...")
        try:
            self.clients.pipeline_run_client.create(pipeline_run)
        except ResourceExistsError as exc:
            raise WorkflowBackendError(
                f'error creating tekton pipeline run "{metadata["name"]}": {exc}'
            ) from exc

    def get_workflow_runs(
        self, workflow: Workflow, run_filter: Optional[WorkflowRunFilter] = None
    ) -> List[WorkflowRun]:
        """Return the runs of a workflow, narrowed by codeset and status."""
        selector = f"{LABEL_WORKFLOW_REF}={workflow.name}"
        codeset_name = run_filter.codeset_name if run_filter else ""
        codeset_project = run_filter.codeset_project if run_filter else ""
        statuses = run_filter.status if run_filter else None
        if codeset_name:
            selector += f",{LABEL_CODESET_NAME}={codeset_name}"
        if codeset_project:
            selector += f",{LABEL_CODESET_PROJECT}={codeset_project}"
        runs = self.clients.pipeline_run_client.list(selector)

        if statuses:
            runs = [
                run
                for run in runs
                if (conditions := (run.get("status") or {}).get("conditions"))
                and pipeline_reason_to_workflow_status(conditions[0].get("reason", ""))
                in statuses
            ]
        return [self._to_workflow_run(workflow, run) for run in runs]

    def _input_value(self, wf_input: WorkflowInput, run: Resource) -> str:
        spec = run.get("spec", {})
        run_name = run.get("metadata", {}).get("name", "")
        if wf_input.type == WorkflowIOType.CODESET:
            resources = spec.get("resources") or []
            if resources:
                url = _resource_param(resources[0], "url")
                revision = _resource_param(resources[0], "revision")
                if url is not None and revision is not None:
                    return f"{url}:{revision}"
        else:
            for param in spec.get("params", []):
                if param.get("name") == wf_input.name:
                    return param.get("value", "")
        raise WorkflowBackendError(
            f'pipeline run "{run_name}" has no value for input "{wf_input.name}"'
        )

    def _to_workflow_run(self, workflow: Workflow, run: Resource) -> WorkflowRun:
        name = run.get("metadata", {}).get("name", "")
        status = run.get("status") or {}
        results = {
            result.get("name"): result.get("value", "")
            for result in status.get("pipelineResults", [])
        }
        conditions = status.get("conditions") or []
        run_status = (
            pipeline_reason_to_workflow_status(conditions[0].get("reason", ""))
            if conditions
            else "Unknown"
        )
        return WorkflowRun(
            name=name,
            workflow_ref=workflow.name,
            inputs=[
                WorkflowRunInput(input=wf_input, value=self._input_value(wf_input, run))
                for wf_input in workflow.inputs
            ],
            outputs=[
                WorkflowRunOutput(output=output, value=results.get(output.name, ""))
                for output in workflow.outputs
            ],
            start_time=_parse_time(status.get("startTime")),
            completion_time=_parse_time(status.get("completionTime")),
            status=run_status,
            url=f"{self.dashboard_url}/#/namespaces/{self.namespace}/pipelineruns/{name}",
        )

    def _ensure(
        self,
        client: ResourceClient,
        name: str,
        resource: Resource,
        description: str,
        workflow_name: str,
        created: List[Tuple[str, ResourceClient, str]],
        kind: str,
    ) -> Resource:
        try:
            return client.get(name)
        except ResourceNotFoundError:
            pass
        self._log(f"Creating tekton {description} for workflow: {workflow_name}...")
        stored = client.create(resource)
        created.append((kind, client, stored["metadata"]["name"]))
        return stored

    def _event_listener_ready(self, name: str) -> bool:
        try:
            listener = self.clients.event_listener_client.get(name)
        except ResourceNotFoundError:
            return False
        return listener_is_available(listener.get("status"))

    def _wait_for_listener(self, name: str, timeout: float) -> None:
        deadline = time.monotonic() + timeout
        while True:
            if self._event_listener_ready(name):
                return
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise ListenerTimeoutError()
            time.sleep(min(_POLL_INTERVAL, remaining))

    def create_workflow_listener(
        self, workflow_name: str, timeout: Union[float, timedelta] = 0
    ) -> WorkflowListener:
        """Create the trigger resources for a workflow and return its listener.

        With a positive timeout (seconds), wait for the listener to become ready.
        Resources created by this call are removed again if it fails.
        """
        if isinstance(timeout, timedelta):
            timeout = timeout.total_seconds()
        try:
            pipeline = self.clients.pipeline_client.get(workflow_name)
        except ResourceNotFoundError as exc:
            raise WorkflowBackendError(
                f'error getting tekton pipeline "{workflow_name}": {exc}'
            ) from exc

        created: List[Tuple[str, ResourceClient, str]] = []
        try:
            trigger_template = generate_trigger_template(pipeline)
            self._ensure(
                self.clients.trigger_template_client,
                workflow_name,
                trigger_template,
                "trigger template",
                workflow_name,
                created,
                "TriggerTemplate",
            )
            trigger_binding = generate_trigger_binding(trigger_template)
            self._ensure(
                self.clients.trigger_binding_client,
                workflow_name,
                trigger_binding,
                "trigger binding",
                workflow_name,
                created,
                "TriggerBinding",
            )
            event_listener = self._ensure(
                self.clients.event_listener_client,
                workflow_name,
                generate_event_listener(trigger_template, trigger_binding),
                "event listener",
                workflow_name,
                created,
                "EventListener",
            )

            listener_name = event_listener["metadata"]["name"]
            listener_url = (
                f"http://el-{workflow_name}.{self.namespace}.svc.cluster.local:8080"
            )
            if timeout > 0:
                self._wait_for_listener(listener_name, timeout)
                event_listener = self.clients.event_listener_client.get(workflow_name)
                listener_url = event_listener["status"]["address"]["url"]
        except BaseException:
            for kind, client, name in reversed(created):
                self._log(f"Deleting {kind}: {name}... (creating listener failed)")
                try:
                    client.delete(name)
                except ResourceNotFoundError:
                    pass
            raise

        return WorkflowListener(
            name=listener_name,
            url=listener_url,
            available=listener_is_available(event_listener.get("status")),
            dashboard_url=self._listener_dashboard_url(listener_name),
        )

    def delete_workflow_listener(self, name: str) -> None:
        """Delete the event listener, trigger binding and trigger template of a listener."""
        steps = (
            ("event listener", self.clients.event_listener_client),
            ("trigger binding", self.clients.trigger_binding_client),
            ("trigger template", self.clients.trigger_template_client),
        )
        for description, client in steps:
            self._log(f"Deleting tekton {description}: {name}...")
            try:
                client.delete(name)
            except ResourceNotFoundError:
                self._log(f'Tekton {description} "{name}" not found, skipping delete...')

    def get_workflow_listener(self, workflow_name: str) -> WorkflowListener:
        """Return the listener of a workflow."""
        try:
            event_listener = self.clients.event_listener_client.get(workflow_name)
        except ResourceNotFoundError as exc:
            raise WorkflowBackendError(
                f'error getting tekton event listener "{workflow_name}": {exc}'
            ) from exc
        name = event_listener["metadata"]["name"]
        status = event_listener.get("status")
        available = listener_is_available(status)
        return WorkflowListener(
            name=name,
            url=status["address"]["url"] if available else "",
            available=available,
            dashboard_url=self._listener_dashboard_url(name),
        )