"""Generation of Tekton manifests from workflows."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from fusemlcore.domain.models import Codeset
from fusemlcore.domain.workflow import (
    Workflow,
    WorkflowIOType,
    WorkflowOutput,
    WorkflowStep,
    WorkflowStepInput,
    WorkflowStepOutput,
)
from fusemlcore.tekton.builder.event_listener import EventListenerBuilder
from fusemlcore.tekton.builder.meta import label
from fusemlcore.tekton.builder.pipeline import PipelineBuilder
from fusemlcore.tekton.builder.pipeline_run import PipelineRunBuilder
from fusemlcore.tekton.builder.task_spec import TaskSpecBuilder
from fusemlcore.tekton.builder.trigger_binding import TriggerBindingBuilder
from fusemlcore.tekton.builder.trigger_template import TriggerTemplateBuilder
from fusemlcore.tekton.constants import (
    BUILDER_PREP_TASK_NAME,
    BUILDER_TASK_NAME,
    CLONE_TASK_NAME,
    CODESET_NAME_PARAM,
    CODESET_PROJECT_PARAM,
    CODESET_URL_PARAM,
    CODESET_VERSION_PARAM,
    CODESET_WORKSPACE_NAME,
    ENV_VAR_PREFIX,
    FUSEML_REGISTRY,
    FUSEML_REGISTRY_LOCAL,
    IMAGE_PARAM_NAME,
    INPUTS_VAR_PREFIX,
    LABEL_CODESET_NAME,
    LABEL_CODESET_PROJECT,
    LABEL_CODESET_VERSION,
    LABEL_WORKFLOW_REF,
    PIPELINE_RUN_PREFIX,
    PIPELINE_RUN_SERVICE_ACCOUNT,
    STEP_DEFAULT_CMD,
    STEP_OUTPUT_VAR_NAME,
    TRIGGERS_SERVICE_ACCOUNT,
    WORKSPACE_ACCESS_MODE,
    WORKSPACE_SIZE,
)
from fusemlcore.tekton.variables import VariablesResolver

Resource = Dict[str, Any]

_DEFAULT_CODESET_VERSION = "main"
_SOURCE_REPO = "source-repo"
_EXPECTED_STATUSES = (
    "Succeeded",
    "Running",
    "Cancelled",
    "Completed",
    "Pending",
    "Started",
    "Failed",
    "Unknown",
)
_WEBHOOK_PARAMS = {
    CODESET_NAME_PARAM: "$(body.repository.name)",
    CODESET_VERSION_PARAM: "$(body.commits[0].id)",
    CODESET_PROJECT_PARAM: "$(body.repository.owner.username)",
    CODESET_URL_PARAM: "$(body.repository.clone_url)",
}


@dataclass(frozen=True)
class EnvVar:
    """An environment variable passed to a Tekton task step."""

    name: str
    value: str


def _input_codeset_path(inputs: Sequence[WorkflowStepInput]) -> str:
    for step_input in inputs:
        if step_input.codeset is not None:
            return step_input.codeset.path
    return ""


def _workflow_output_for(
    output: WorkflowStepOutput, workflow_outputs: Sequence[WorkflowOutput]
) -> Optional[WorkflowOutput]:
    return next((wo for wo in workflow_outputs if wo.name == output.name), None)


def _add_codeset_input(pb: PipelineBuilder, resolver: VariablesResolver, name: str) -> None:
    pb.workspace(CODESET_WORKSPACE_NAME, False)
    pb.resource(_SOURCE_REPO, "git", False)
    pb.task(
        "clone",
        CLONE_TASK_NAME,
        None,
        {CODESET_WORKSPACE_NAME: CODESET_WORKSPACE_NAME},
        {_SOURCE_REPO: _SOURCE_REPO},
    )
    pb.param(CODESET_NAME_PARAM, "Reference to the codeset (git project)")
    resolver.add_reference(f"inputs.{name}.name", f"$(params.{CODESET_NAME_PARAM})")
    pb.param_with_default_value(
        CODESET_VERSION_PARAM, "Codeset version (git revision)", _DEFAULT_CODESET_VERSION
    )
    resolver.add_reference(f"inputs.{name}.version", f"$(params.{CODESET_VERSION_PARAM})")
    pb.param(CODESET_PROJECT_PARAM, "Reference to the codeset project (git organization)")
    resolver.add_reference(f"inputs.{name}.project", f"$(params.{CODESET_PROJECT_PARAM})")


def _process_step_outputs(
    pb: PipelineBuilder,
    resolver: VariablesResolver,
    step: WorkflowStep,
    workflow_outputs: Sequence[WorkflowOutput],
) -> bool:
    """Add results and builder tasks for the step's outputs.

    Returns True when the step builds an image, in which case the builder
    tasks replace the step itself.
    """
    for output in step.outputs:
        if output.image is not None:
            dockerfile = ""
            if output.image.dockerfile:
                dockerfile = resolver.resolve(output.image.dockerfile)
                codeset_path = _input_codeset_path(step.inputs)
                # the builder mounts the codeset as its working directory
                if codeset_path:
                    dockerfile = dockerfile.replace(f"{codeset_path}/", "", 1)
            prep_task_name = f"{step.name}-prep"
            workspaces = {CODESET_WORKSPACE_NAME: CODESET_WORKSPACE_NAME}
            pb.task(
                prep_task_name,
                BUILDER_PREP_TASK_NAME,
                {"IMAGE": resolver.resolve(step.image), "DOCKERFILE": dockerfile},
                workspaces,
                None,
            )
            pb.task(
                step.name,
                BUILDER_TASK_NAME,
                {
                    "IMAGE": resolver.resolve(output.image.name),
                    "DOCKERFILE": f"$(tasks.{prep_task_name}.results.DOCKERFILE-PATH)",
                },
                workspaces,
                None,
            )
            resolver.add_reference(
                f"steps.{step.name}.outputs.{output.name}", output.image.name
            )
            return True
        workflow_output = _workflow_output_for(output, workflow_outputs)
        if workflow_output is not None:
            pb.result(
                workflow_output.name,
                workflow_output.description,
                f"$(tasks.{step.name}.results.{output.name})",
            )
    return False


def _step_extensions(
    step: WorkflowStep, step_resolver: VariablesResolver, env_vars: List[EnvVar]
) -> None:
    for extension in step.extensions:
        access = extension.extension_access
        if access is None:
            raise ValueError(
                f"extension requirement {extension.name!r} of step {step.name!r} is not resolved"
            )
        prefix = f"extensions.{extension.name}"
        step_resolver.add_reference(f"{prefix}.product", access.extension.product)
        step_resolver.add_reference(f"{prefix}.zone", access.extension.zone)
        step_resolver.add_reference(f"{prefix}.version", access.extension.version)
        step_resolver.add_reference(f"{prefix}.service_resource", access.service.resource)
        step_resolver.add_reference(f"{prefix}.service_category", access.service.category)
        step_resolver.add_reference(f"{prefix}.url", access.endpoint.url)
        configurations = [
            access.extension.configuration,
            access.service.configuration,
            access.endpoint.configuration,
        ]
        if access.credentials is not None:
            configurations.append(access.credentials.configuration)
        for configuration in configurations:
            for key, value in configuration.items():
                env_vars.append(EnvVar(key, value))
                step_resolver.add_reference(f"{prefix}.cfg.{key}", value)


def generate_pipeline(workflow: Workflow, namespace: str) -> Resource:
    """Return the Pipeline manifest that runs the workflow."""
    resolver = VariablesResolver()
    pb = PipelineBuilder(workflow.name, namespace)
    pb.meta(label(LABEL_WORKFLOW_REF, workflow.name))
    pb.description(workflow.description)

    for wf_input in workflow.inputs:
        if wf_input.type == WorkflowIOType.CODESET:
            _add_codeset_input(pb, resolver, wf_input.name)
        else:
            pb.param_with_default_value(wf_input.name, wf_input.description, wf_input.default)
            resolver.add_reference(f"inputs.{wf_input.name}", f"$(params.{wf_input.name})")

    for step in workflow.steps:
        if _process_step_outputs(pb, resolver, step, workflow.outputs):
            continue

        env_vars = [
            EnvVar(ENV_VAR_PREFIX + "WORKFLOW_NAMESPACE", namespace),
            EnvVar(ENV_VAR_PREFIX + "WORKFLOW_NAME", workflow.name),
        ]
        step_resolver = resolver.clone()
        _step_extensions(step, step_resolver, env_vars)

        task_spec = to_task_spec(step, step_resolver, env_vars)
        task_workspaces: Dict[str, str] = {}
        task_params: Dict[str, str] = {}
        for step_input in step.inputs:
            if step_input.codeset is not None:
                task_workspaces[task_spec["workspaces"][0]["name"]] = CODESET_WORKSPACE_NAME
            else:
                task_params[step_input.name] = resolver.resolve(step_input.value)
        if "{{" in step.image:
            # cluster nodes cannot resolve the registry service name
            image = resolver.resolve(step.image)
            if image.startswith(FUSEML_REGISTRY):
                image = image.replace(FUSEML_REGISTRY, FUSEML_REGISTRY_LOCAL, 1)
            task_params[IMAGE_PARAM_NAME] = image
        pb.task(step.name, task_spec, task_params, task_workspaces, None)
    return pb.pipeline


def generate_pipeline_run(pipeline: Resource, codeset: Codeset) -> Resource:
    """Return a PipelineRun manifest running the pipeline on the codeset."""
    codeset_version = _DEFAULT_CODESET_VERSION
    prb = PipelineRunBuilder(f"{PIPELINE_RUN_PREFIX}{codeset.project}-{codeset.name}-")
    spec = pipeline.get("spec", {})
    codeset_values = {
        CODESET_NAME_PARAM: codeset.name,
        CODESET_VERSION_PARAM: codeset_version,
        CODESET_PROJECT_PARAM: codeset.project,
    }
    for param in spec.get("params", []):
        if "default" in param:
            prb.param(param["name"], param["default"])
        elif param["name"] in codeset_values:
            prb.param(param["name"], codeset_values[param["name"]])
        else:
            raise ValueError(
                f"pipeline run failed: could not set parameter value for {param['name']!r}"
            )

    metadata = pipeline.get("metadata", {})
    prb.meta(
        label(LABEL_CODESET_NAME, codeset.name),
        label(LABEL_CODESET_PROJECT, codeset.project),
        label(LABEL_CODESET_VERSION, codeset_version),
        label(LABEL_WORKFLOW_REF, metadata.get("labels", {}).get(LABEL_WORKFLOW_REF, "")),
    )
    prb.service_account(PIPELINE_RUN_SERVICE_ACCOUNT)
    prb.pipeline_ref(metadata.get("name", ""))
    for workspace in spec.get("workspaces", []):
        prb.workspace(workspace["name"], WORKSPACE_ACCESS_MODE, WORKSPACE_SIZE)
    for resource in spec.get("resources", []):
        if resource.get("type") == "git":
            prb.resource_git(resource["name"], codeset.url, codeset_version)
    return prb.pipeline_run


def generate_trigger_template(pipeline: Resource) -> Resource:
    """Return a TriggerTemplate that creates runs of the pipeline."""
    metadata = pipeline.get("metadata", {})
    spec = pipeline.get("spec", {})
    name = metadata.get("name", "")
    ttb = TriggerTemplateBuilder(name, metadata.get("namespace", ""))
    prb = PipelineRunBuilder(PIPELINE_RUN_PREFIX)
    resolver = VariablesResolver()
    codeset_project = ""
    codeset_name = ""
    for param in spec.get("params", []):
        param_name = param["name"]
        if "default" in param:
            ttb.param_with_default_value(param_name, param.get("description", ""), param["default"])
        else:
            ttb.param(param_name, param.get("description", ""))
        resolver.add_reference(param_name, f"$(tt.params.{param_name})")
        if param_name == CODESET_NAME_PARAM:
            ttb.param(CODESET_URL_PARAM, "The codeset URL (git repository URL)")
            resolver.add_reference(CODESET_URL_PARAM, f"$(tt.params.{CODESET_URL_PARAM})")
            codeset_name = resolver.resolve(param_name)
            prb.meta(label(LABEL_CODESET_NAME, codeset_name))
        elif param_name == CODESET_PROJECT_PARAM:
            codeset_project = resolver.resolve(param_name)
            prb.meta(label(LABEL_CODESET_PROJECT, codeset_project))
        elif param_name == CODESET_VERSION_PARAM:
            prb.meta(label(LABEL_CODESET_VERSION, resolver.resolve(param_name)))
        prb.param(param_name, resolver.resolve(param_name))
    prb.generate_name(f"{PIPELINE_RUN_PREFIX}{codeset_project}-{codeset_name}-")

    for workspace in spec.get("workspaces", []):
        prb.workspace(workspace["name"], WORKSPACE_ACCESS_MODE, WORKSPACE_SIZE)
    for resource in spec.get("resources", []):
        if resource.get("type") == "git":
            prb.resource_git(
                resource["name"],
                resolver.resolve(CODESET_URL_PARAM),
                resolver.resolve(CODESET_VERSION_PARAM),
            )

    prb.service_account(PIPELINE_RUN_SERVICE_ACCOUNT)
    prb.pipeline_ref(name)
    ttb.resource_template(prb.pipeline_run)
    return ttb.trigger_template


def generate_trigger_binding(template: Resource) -> Resource:
    """Return a TriggerBinding mapping webhook payload fields to the template's codeset params."""
    metadata = template.get("metadata", {})
    tbb = TriggerBindingBuilder(metadata.get("name", ""), metadata.get("namespace", ""))
    for param in template.get("spec", {}).get("params", []):
        value = _WEBHOOK_PARAMS.get(param["name"])
        if value is not None:
            tbb.param(param["name"], value)
    return tbb.trigger_binding


def generate_event_listener(template: Resource, binding: Resource) -> Resource:
    """Return an EventListener that fires the template through the binding."""
    metadata = template.get("metadata", {})
    elb = EventListenerBuilder(metadata.get("name", ""), metadata.get("namespace", ""))
    elb.service_account(TRIGGERS_SERVICE_ACCOUNT)
    elb.trigger_binding(metadata.get("name", ""), binding.get("metadata", {}).get("name", ""))
    return elb.event_listener


def to_task_spec(
    step: WorkflowStep, resolver: VariablesResolver, env_vars: Sequence[EnvVar]
) -> Resource:
    """Return the embedded task spec that runs a workflow step."""
    tb = TaskSpecBuilder(step.name, step.image, STEP_DEFAULT_CMD)
    for step_input in step.inputs:
        if step_input.codeset is not None:
            tb.workspace_with_mount_path(CODESET_WORKSPACE_NAME, step_input.codeset.path)
            tb.working_dir(step_input.codeset.path)
        else:
            tb.param(step_input.name)
            tb.env(
                f"{INPUTS_VAR_PREFIX}{step_input.name.upper()}",
                f"$(params.{step_input.name})",
            )

    if "{{" in step.image:
        tb.param_with_description(IMAGE_PARAM_NAME, "Name (reference) of the image to run")
        tb.image(f"$(params.{IMAGE_PARAM_NAME})")

    for output in step.outputs:
        if output.image is None:
            tb.result(output.name)
            tb.env(STEP_OUTPUT_VAR_NAME, output.name)

    for step_env in step.env:
        tb.env(step_env.name, resolver.resolve(step_env.value))
    for env_var in env_vars:
        tb.env(env_var.name, env_var.value)
    return tb.task_spec


def pipeline_reason_to_workflow_status(reason: str) -> str:
    """Translate a PipelineRun condition reason into a workflow run status."""
    status = reason[len("PipelineRun"):] if reason.startswith("PipelineRun") else reason
    if status not in _EXPECTED_STATUSES:
        status = f"Failed ({status})"
    return status