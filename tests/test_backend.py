import logging
from datetime import datetime, timedelta, timezone

import pytest

from fusemlcore.domain.models import Codeset
from fusemlcore.domain.workflow import (
    Workflow,
    WorkflowExistsError,
    WorkflowInput,
    WorkflowIOType,
    WorkflowListener,
    WorkflowOutput,
    WorkflowRun,
    WorkflowRunFilter,
    WorkflowRunInput,
    WorkflowRunOutput,
    WorkflowStep,
    WorkflowStepInput,
    WorkflowStepInputCodeset,
    WorkflowStepOutput,
    WorkflowStepOutputImage,
)
from fusemlcore.tekton.backend import (
    DashboardURLMissingError,
    ListenerTimeoutError,
    WorkflowBackend,
    WorkflowBackendError,
    listener_is_available,
)
from fusemlcore.tekton.clients import new_clients
from fusemlcore.tekton.constants import LABEL_CODESET_NAME, LABEL_WORKFLOW_REF

WF_NAME = "mlflow-sklearn-e2e"
NAMESPACE = "test-namespace"
DASHBOARD = "http://tekton.test"
START = datetime(2021, 7, 1, 12, 0, tzinfo=timezone.utc)


class _Recorder(logging.Handler):
    def __init__(self):
        super().__init__()
        self.lines = []

    def emit(self, record):
        self.lines.append(record.getMessage())

    def text(self):
        return "".join(line + "\n" for line in self.lines)

    def reset(self):
        self.lines.clear()


def make_backend():
    recorder = _Recorder()
    logger = logging.getLogger(f"test-backend-{id(recorder)}")
    logger.setLevel(logging.INFO)
    logger.propagate = False
    logger.addHandler(recorder)
    backend = WorkflowBackend(DASHBOARD, NAMESPACE, new_clients(NAMESPACE), logger)
    return backend, recorder


def make_workflow(name=WF_NAME):
    string_type = WorkflowIOType("string")

    def codeset_input():
        return WorkflowStepInput(
            name="mlflow-codeset",
            codeset=WorkflowStepInputCodeset(
                name="{{ inputs.mlflow-codeset }}", path="/project"
            ),
        )

    return Workflow(
        name=name,
        description="End-to-end MLFlow workflow",
        inputs=[
            WorkflowInput(
                name="mlflow-codeset",
                description="an MLFlow compatible codeset",
                type=WorkflowIOType.CODESET,
            ),
            WorkflowInput(
                name="predictor",
                description="type of predictor engine",
                type=string_type,
                default="auto",
            ),
        ],
        outputs=[
            WorkflowOutput(
                name="prediction-url",
                description="URL of the prediction service",
                type=string_type,
            )
        ],
        steps=[
            WorkflowStep(
                name="builder",
                image="ghcr.io/fuseml/mlflow-builder:latest",
                inputs=[codeset_input()],
                outputs=[
                    WorkflowStepOutput(
                        name="mlflow-env",
                        image=WorkflowStepOutputImage(
                            name="registry.fuseml-registry/mlflow-builder/"
                            "{{ inputs.mlflow-codeset.name }}:{{ inputs.mlflow-codeset.version }}"
                        ),
                    )
                ],
            ),
            WorkflowStep(
                name="trainer",
                image="{{ steps.builder.outputs.mlflow-env }}",
                inputs=[codeset_input()],
                outputs=[WorkflowStepOutput(name="mlflow-model-url")],
            ),
            WorkflowStep(
                name="predictor",
                image="ghcr.io/fuseml/kfserving-predictor:1.0",
                inputs=[
                    WorkflowStepInput(
                        name="model", value="{{ steps.trainer.outputs.mlflow-model-url }}"
                    ),
                    WorkflowStepInput(name="predictor", value="{{ inputs.predictor }}"),
                ],
                outputs=[WorkflowStepOutput(name="prediction-url")],
            ),
        ],
    )


def make_codeset(index):
    name = f"mlflow-app-{index}"
    project = f"workspace-{index}"
    return Codeset(
        name=name, project=project, url=f"http://gitea.example.com/{name}/{project}.git"
    )


def add_run(backend, workflow, codeset, reason, start, completion):
    backend.create_workflow_run(workflow.name, codeset)
    [run] = backend.clients.pipeline_run_client.list(f"{LABEL_CODESET_NAME}={codeset.name}")
    run["status"] = {"conditions": [{"reason": reason}], "startTime": start}
    if completion is not None:
        run["status"]["completionTime"] = completion
    backend.clients.pipeline_run_client.update_status(run)
    return run["metadata"]["name"]


def expected_run(workflow, codeset, name, status, start, completion):
    return WorkflowRun(
        name=name,
        workflow_ref=workflow.name,
        inputs=[
            WorkflowRunInput(input=workflow.inputs[0], value=f"{codeset.url}:main"),
            WorkflowRunInput(input=workflow.inputs[1], value=workflow.inputs[1].default),
        ],
        outputs=[WorkflowRunOutput(output=workflow.outputs[0], value="")],
        start_time=start,
        completion_time=completion,
        status=status,
        url=f"{DASHBOARD}/#/namespaces/{NAMESPACE}/pipelineruns/{name}",
    )


def test_create_workflow_new():
    backend, logs = make_backend()
    workflow = make_workflow()
    backend.create_workflow(workflow)
    assert logs.text() == f"Creating tekton pipeline for workflow: {WF_NAME}...\n"
    pipeline = backend.clients.pipeline_client.get(WF_NAME)
    assert pipeline["metadata"]["labels"][LABEL_WORKFLOW_REF] == WF_NAME
    assert pipeline["metadata"]["namespace"] == NAMESPACE
    tasks = pipeline["spec"]["tasks"]
    assert [t["name"] for t in tasks] == [
        "clone",
        "builder-prep",
        "builder",
        "trainer",
        "predictor",
    ]
    trainer_params = {p["name"]: p["value"] for p in tasks[3]["params"]}
    assert trainer_params["IMAGE"] == (
        "127.0.0.1:30500/mlflow-builder/$(params.codeset-name):$(params.codeset-version)"
    )


def test_create_workflow_existing():
    backend, _ = make_backend()
    workflow = make_workflow()
    backend.create_workflow(workflow)
    with pytest.raises(WorkflowExistsError):
        backend.create_workflow(workflow)


def test_delete_workflow():
    backend, logs = make_backend()
    backend.create_workflow(make_workflow())
    logs.reset()
    backend.delete_workflow(WF_NAME)
    assert backend.clients.pipeline_client.list() == []
    assert logs.text() == f"Deleting tekton pipeline: {WF_NAME}...\n"


def test_delete_workflow_skip_not_found():
    backend, logs = make_backend()
    backend.delete_workflow("TestWorkflow")
    assert logs.text() == (
        "Deleting tekton pipeline: TestWorkflow...\n"
        'Tekton pipeline "TestWorkflow" not found, skipping delete...\n'
    )


def test_create_workflow_run():
    backend, logs = make_backend()
    workflow = make_workflow()
    backend.create_workflow(workflow)
    logs.reset()
    codeset = Codeset(
        name="mlflow-app-01",
        project="workspace",
        url="http://gitea.example.com/workspace/mlflow-app-01.git",
    )
    backend.create_workflow_run(WF_NAME, codeset)
    runs = backend.clients.pipeline_run_client.list()
    assert len(runs) == 1
    run = runs[0]
    assert run["metadata"]["generateName"] == "fuseml-workspace-mlflow-app-01-"
    assert run["metadata"]["name"].startswith("fuseml-workspace-mlflow-app-01-")
    assert run["metadata"]["labels"] == {
        "fuseml/codeset-name": "mlflow-app-01",
        "fuseml/codeset-project": "workspace",
        "fuseml/codeset-version": "main",
        "fuseml/workflow-ref": WF_NAME,
    }
    params = {p["name"]: p["value"] for p in run["spec"]["params"]}
    assert params == {
        "codeset-name": "mlflow-app-01",
        "codeset-version": "main",
        "codeset-project": "workspace",
        "predictor": "auto",
    }
    assert run["spec"]["serviceAccountName"] == "fuseml-workloads"
    assert run["spec"]["pipelineRef"] == {"name": WF_NAME}
    git_params = run["spec"]["resources"][0]["resourceSpec"]["params"]
    assert git_params == [
        {"name": "url", "value": codeset.url},
        {"name": "revision", "value": "main"},
    ]
    assert logs.text() == f"Creating tekton pipeline run for workflow: {WF_NAME}...\n"


def test_create_workflow_run_missing_pipeline():
    backend, _ = make_backend()
    with pytest.raises(WorkflowBackendError):
        backend.create_workflow_run("missing", make_codeset(1))


def test_get_workflow_runs_all():
    backend, _ = make_backend()
    workflow = make_workflow()
    backend.create_workflow(workflow)
    want = []
    for i in (1, 2):
        cs = make_codeset(i)
        start = START + timedelta(hours=i)
        completion = start + timedelta(minutes=1)
        name = add_run(backend, workflow, cs, "Unknown", start, completion)
        want.append(expected_run(workflow, cs, name, "Unknown", start, completion))
    assert backend.get_workflow_runs(workflow, WorkflowRunFilter()) == want


def test_get_workflow_runs_parses_timestamps():
    backend, _ = make_backend()
    workflow = make_workflow()
    backend.create_workflow(workflow)
    cs = make_codeset(0)
    add_run(backend, workflow, cs, "Succeeded", "2021-07-01T12:00:00Z", None)
    [run] = backend.get_workflow_runs(workflow, WorkflowRunFilter())
    assert run.start_time == START
    assert run.completion_time is None
    assert run.status == "Succeeded"


def test_get_workflow_runs_filter_by_codeset():
    backend, _ = make_backend()
    workflow = make_workflow()
    backend.create_workflow(workflow)
    codesets, wants = [], []
    for i in (0, 1):
        cs = make_codeset(i)
        start = START + timedelta(hours=i)
        completion = start + timedelta(minutes=1)
        name = add_run(backend, workflow, cs, "Unknown", start, completion)
        wants.append(expected_run(workflow, cs, name, "Unknown", start, completion))
        codesets.append(cs)

    assert backend.get_workflow_runs(workflow, WorkflowRunFilter()) == wants
    assert backend.get_workflow_runs(workflow, WorkflowRunFilter(codeset_name="")) == wants
    assert backend.get_workflow_runs(workflow, WorkflowRunFilter(codeset_project="")) == wants
    assert backend.get_workflow_runs(
        workflow, WorkflowRunFilter(codeset_name="do-no-exist")
    ) == []
    for cs, want in zip(codesets, wants):
        assert backend.get_workflow_runs(
            workflow, WorkflowRunFilter(codeset_name=cs.name)
        ) == [want]
        assert backend.get_workflow_runs(
            workflow, WorkflowRunFilter(codeset_project=cs.project)
        ) == [want]
        assert backend.get_workflow_runs(
            workflow, WorkflowRunFilter(codeset_name=cs.name, codeset_project=cs.project)
        ) == [want]


def test_get_workflow_runs_filter_by_status():
    backend, _ = make_backend()
    workflow = make_workflow()
    backend.create_workflow(workflow)
    reasons = ["Unknown", "PipelineRunCancelled", "Succeeded", "Running"]
    statuses = ["Unknown", "Cancelled", "Succeeded", "Running"]
    wants = []
    for i, (reason, status) in enumerate(zip(reasons, statuses)):
        cs = make_codeset(i)
        start = START + timedelta(hours=i)
        completion = None if reason == "Running" else start + timedelta(minutes=1)
        name = add_run(backend, workflow, cs, reason, start, completion)
        wants.append(expected_run(workflow, cs, name, status, start, completion))

    assert backend.get_workflow_runs(workflow, WorkflowRunFilter(status=None)) == wants
    assert backend.get_workflow_runs(workflow, WorkflowRunFilter(status=[])) == wants
    assert backend.get_workflow_runs(workflow, WorkflowRunFilter(status=["Timeout"])) == []
    for status, want in zip(statuses, wants):
        assert backend.get_workflow_runs(
            workflow, WorkflowRunFilter(status=[status])
        ) == [want]
    assert backend.get_workflow_runs(workflow, WorkflowRunFilter(status=statuses)) == wants


def test_create_workflow_listener_new():
    backend, logs = make_backend()
    backend.create_workflow(make_workflow())
    logs.reset()
    listener = backend.create_workflow_listener(WF_NAME, 0)
    assert listener == WorkflowListener(
        name=WF_NAME,
        url=f"http://el-{WF_NAME}.{NAMESPACE}.svc.cluster.local:8080",
        available=False,
        dashboard_url=f"{DASHBOARD}/#/namespaces/{NAMESPACE}/eventlisteners/{WF_NAME}",
    )
    assert logs.text() == (
        f"Creating tekton trigger template for workflow: {WF_NAME}...\n"
        f"Creating tekton trigger binding for workflow: {WF_NAME}...\n"
        f"Creating tekton event listener for workflow: {WF_NAME}...\n"
    )

    template = backend.clients.trigger_template_client.get(WF_NAME)
    assert [p["name"] for p in template["spec"]["params"]] == [
        "codeset-name",
        "codeset-url",
        "codeset-version",
        "codeset-project",
        "predictor",
    ]
    run_template = template["spec"]["resourcetemplates"][0]
    assert run_template["metadata"]["generateName"] == (
        "fuseml-$(tt.params.codeset-project)-$(tt.params.codeset-name)-"
    )

    binding = backend.clients.trigger_binding_client.get(WF_NAME)
    assert binding["spec"]["params"] == [
        {"name": "codeset-name", "value": "$(body.repository.name)"},
        {"name": "codeset-url", "value": "$(body.repository.clone_url)"},
        {"name": "codeset-version", "value": "$(body.commits[0].id)"},
        {"name": "codeset-project", "value": "$(body.repository.owner.username)"},
    ]

    event_listener = backend.clients.event_listener_client.get(WF_NAME)
    assert event_listener["spec"] == {
        "serviceAccountName": "tekton-triggers",
        "triggers": [{"template": {"ref": WF_NAME}, "bindings": [{"ref": WF_NAME}]}],
    }


def test_create_workflow_listener_existing():
    backend, logs = make_backend()
    backend.create_workflow(make_workflow())
    backend.create_workflow_listener(WF_NAME, 0)
    logs.reset()
    listener = backend.create_workflow_listener(WF_NAME, 0)
    assert listener.name == WF_NAME
    assert listener.url == f"http://el-{WF_NAME}.{NAMESPACE}.svc.cluster.local:8080"
    assert listener.available is False
    assert logs.text() == ""


def test_create_workflow_listener_cleans_up_on_failure():
    backend, logs = make_backend()
    backend.create_workflow(make_workflow())
    logs.reset()
    with pytest.raises(ListenerTimeoutError):
        backend.create_workflow_listener(WF_NAME, 1e-9)
    assert backend.clients.trigger_template_client.list() == []
    assert backend.clients.trigger_binding_client.list() == []
    assert backend.clients.event_listener_client.list() == []
    assert logs.text() == (
        f"Creating tekton trigger template for workflow: {WF_NAME}...\n"
        f"Creating tekton trigger binding for workflow: {WF_NAME}...\n"
        f"Creating tekton event listener for workflow: {WF_NAME}...\n"
        f"Deleting EventListener: {WF_NAME}... (creating listener failed)\n"
        f"Deleting TriggerBinding: {WF_NAME}... (creating listener failed)\n"
        f"Deleting TriggerTemplate: {WF_NAME}... (creating listener failed)\n"
    )


def test_delete_workflow_listener():
    backend, logs = make_backend()
    backend.create_workflow(make_workflow())
    listener = backend.create_workflow_listener(WF_NAME, 0)
    logs.reset()
    backend.delete_workflow_listener(listener.name)
    assert backend.clients.event_listener_client.list() == []
    assert backend.clients.trigger_binding_client.list() == []
    assert backend.clients.trigger_template_client.list() == []
    assert logs.text() == (
        f"Deleting tekton event listener: {WF_NAME}...\n"
        f"Deleting tekton trigger binding: {WF_NAME}...\n"
        f"Deleting tekton trigger template: {WF_NAME}...\n"
    )


def test_delete_workflow_listener_skip_not_found():
    backend, logs = make_backend()
    name = "TestListener"
    backend.delete_workflow_listener(name)
    assert logs.text() == (
        f"Deleting tekton event listener: {name}...\n"
        f'Tekton event listener "{name}" not found, skipping delete...\n'
        f"Deleting tekton trigger binding: {name}...\n"
        f'Tekton trigger binding "{name}" not found, skipping delete...\n'
        f"Deleting tekton trigger template: {name}...\n"
        f'Tekton trigger template "{name}" not found, skipping delete...\n'
    )


def test_get_workflow_listener():
    backend, _ = make_backend()
    pending = f"{WF_NAME}-0"
    ready = f"{WF_NAME}-1"
    backend.create_workflow(make_workflow(pending))
    backend.create_workflow_listener(pending, 0)
    backend.create_workflow(make_workflow(ready))
    backend.create_workflow_listener(ready, 0)

    ready_url = f"http://el-{ready}.{NAMESPACE}.svc.cluster.local:8080"
    el = backend.clients.event_listener_client.get(ready)
    el["status"] = {
        "address": {"url": ready_url},
        "conditions": [
            {
                "reason": "MinimumReplicasAvailable",
                "status": "True",
                "type": "Available",
            }
        ],
    }
    backend.clients.event_listener_client.update_status(el)

    assert backend.get_workflow_listener(pending) == WorkflowListener(
        name=pending,
        url="",
        available=False,
        dashboard_url=f"{DASHBOARD}/#/namespaces/{NAMESPACE}/eventlisteners/{pending}",
    )
    assert backend.get_workflow_listener(ready) == WorkflowListener(
        name=ready,
        url=ready_url,
        available=True,
        dashboard_url=f"{DASHBOARD}/#/namespaces/{NAMESPACE}/eventlisteners/{ready}",
    )


def test_get_workflow_listener_missing():
    backend, _ = make_backend()
    with pytest.raises(WorkflowBackendError):
        backend.get_workflow_listener("missing")


def test_create_workflow_listener_waits_for_ready_listener():
    backend, _ = make_backend()
    backend.create_workflow(make_workflow())
    backend.create_workflow_listener(WF_NAME, 0)
    url = "http://el-ready.example.com:8080"
    el = backend.clients.event_listener_client.get(WF_NAME)
    el["status"] = {
        "address": {"url": url},
        "conditions": [{"status": "True", "type": "Available"}],
    }
    backend.clients.event_listener_client.update_status(el)
    listener = backend.create_workflow_listener(WF_NAME, 5)
    assert listener.url == url
    assert listener.available is True


@pytest.mark.parametrize(
    "status, expected",
    [
        (None, False),
        ({}, False),
        ({"conditions": [{"type": "Ready", "status": "True"}], "address": {"url": "u"}}, False),
        (
            {
                "conditions": [
                    {"type": "Available", "status": "True"},
                    {"type": "Ready", "status": "False"},
                ],
                "address": {"url": "u"},
            },
            False,
        ),
        ({"conditions": [{"type": "Available", "status": "True"}]}, False),
        ({"conditions": [{"type": "Available", "status": "True"}], "address": {"url": "u"}}, True),
    ],
)
def test_listener_is_available(status, expected):
    assert listener_is_available(status) is expected


def test_from_environment_requires_dashboard_url(monkeypatch):
    monkeypatch.delenv("TEKTON_DASHBOARD_URL", raising=False)
    with pytest.raises(DashboardURLMissingError):
        WorkflowBackend.from_environment(NAMESPACE)


def test_from_environment_trims_trailing_slash(monkeypatch):
    monkeypatch.setenv("TEKTON_DASHBOARD_URL", "http://tekton.example.com/")
    backend = WorkflowBackend.from_environment(NAMESPACE)
    assert backend.dashboard_url == "http://tekton.example.com"
    assert backend.namespace == NAMESPACE
    assert backend.clients.pipeline_client.namespace == NAMESPACE