# fusemlcore

Building blocks for an MLOps workflow service:

- **Domain model** (`fusemlcore.domain`)
  - `fusemlcore.domain.workflow`: `Workflow` with its inputs, outputs and
    steps, codeset assignments (`assign_to_codeset`, `unassign_from_codeset`,
    `assigned_codesets`, `find_codeset_assignment`), workflow runs, run
    filters, listeners, and the `WorkflowError` family of exceptions.
  - `fusemlcore.domain.models`: `Application`, `KubernetesResource`,
    `Codeset`, `Project`, `User` and `ProjectExistsError`.
  - `fusemlcore.domain.runnable`: runnable descriptors and their typed
    input/output artifacts.
  - `fusemlcore.domain.extension`: extension registry records (extensions,
    services, endpoints, credentials, access descriptors, queries) and their
    errors.
- **Stores** (`fusemlcore.store`)
  - `fusemlcore.store.memory.InMemoryWorkflowStore`: workflows in a dictionary.
  - `fusemlcore.store.persistent`: `KeyValueStore`, an SQLite file of pickled
    values ordered by key, and on top of it `PersistentWorkflowStore` and
    `ApplicationStore`.
- **Tekton** (`fusemlcore.tekton`)
  - `fusemlcore.tekton.variables.VariablesResolver`: expands `{{ ... }}`
    placeholders.
  - `fusemlcore.tekton.builder`: builders for `Pipeline`, `PipelineRun`,
    embedded task specs, `TriggerTemplate`, `TriggerBinding` and
    `EventListener` manifests.
  - `fusemlcore.tekton.generate`: turns a workflow into those manifests.
  - `fusemlcore.tekton.clients`: `ResourceClient` collections of manifests and
    the `TektonClients` bundle.
  - `fusemlcore.tekton.backend.WorkflowBackend`: creates, lists and deletes
    pipelines, runs and listeners through the clients.

The package has no dependencies outside the standard library.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Workflows and assignments

```python
from fusemlcore.domain.models import Codeset
from fusemlcore.domain.workflow import Workflow
from fusemlcore.store.memory import InMemoryWorkflowStore

store = InMemoryWorkflowStore()
store.add_workflow(Workflow(name="mlflow-e2e"))

codeset = Codeset(name="mlflow-app-01", project="workspace")
store.add_codeset_assignment("mlflow-e2e", codeset, 10)

print(store.get_all_codeset_assignments(None))
# {'mlflow-e2e': [CodesetAssignment(codeset=Codeset(...), webhook_id=10)]}
```

Assigning a workflow to a codeset it is already assigned to (same name and
project) keeps the existing assignment. Adding a workflow whose name is taken
raises `WorkflowExistsError`; looking up or assigning a missing workflow raises
`WorkflowNotFoundError`; `get_codeset_assignment` for a codeset the workflow is
not assigned to raises `WorkflowNotAssignedToCodesetError`. `delete_workflow`
ignores a missing workflow and raises `CannotDeleteAssignedWorkflowError` when
codesets are still assigned.

## Persistent stores

```python
from fusemlcore.domain.models import Application
from fusemlcore.store.persistent import ApplicationStore, KeyValueStore, PersistentWorkflowStore

with KeyValueStore("fuseml.db", bucket="applications") as kv:
    apps = ApplicationStore(kv)
    apps.add(Application(name="app-1", type="predictor", workflow="mlflow-e2e"))
    apps.get_all("predictor", None)

with KeyValueStore("fuseml.db", bucket="workflows") as kv:
    workflows = PersistentWorkflowStore(kv)
```

`KeyValueStore` defaults to an in-memory database (`":memory:"`). Stores in
the same file are kept apart by bucket. `ApplicationStore.add` replaces an
application with the same name; `ApplicationStore.find` returns `None` for an
unknown name. `KeyValueStore.insert` raises `KeyExistsError` for a taken key,
and `get`, `update` and `delete` raise `KeyNotFoundError` for a missing one.

## Resolving workflow variables

```python
from fusemlcore.tekton.variables import VariablesResolver

resolver = VariablesResolver()
resolver.add_reference("inputs.codeset.name", "$(params.codeset-name)")
resolver.resolve("registry/{{ inputs.codeset.name }}:latest")
# 'registry/$(params.codeset-name):latest'
resolver.resolve("{{ steps.train.outputs.model }}")
# '$(tasks.train.results.model)'
```

A value with no placeholder that is itself a reference name resolves to that
reference. Known `steps.` references are resolved again; unknown ones become
Tekton task result expressions; any other unknown reference expands to an
empty string.

## Generating Tekton manifests

```python
from fusemlcore.domain.models import Codeset
from fusemlcore.domain.workflow import (
    Workflow, WorkflowInput, WorkflowIOType, WorkflowStep,
    WorkflowStepInput, WorkflowStepInputCodeset,
)
from fusemlcore.tekton.generate import generate_pipeline, generate_pipeline_run

workflow = Workflow(
    name="mlflow-e2e",
    inputs=[WorkflowInput(name="mlflow-codeset", type=WorkflowIOType.CODESET)],
    steps=[
        WorkflowStep(
            name="trainer",
            image="ghcr.io/example/trainer:latest",
            inputs=[WorkflowStepInput(
                name="mlflow-codeset",
                codeset=WorkflowStepInputCodeset(name="{{ inputs.mlflow-codeset }}",
                                                 path="/project"),
            )],
        )
    ],
)

pipeline = generate_pipeline(workflow, "fuseml-workloads")
run = generate_pipeline_run(
    pipeline,
    Codeset(name="mlflow-app-01", project="workspace",
            url="http://git.example.com/workspace/mlflow-app-01.git"),
)
```

Manifests are plain dictionaries laid out like the Kubernetes objects they
describe, ready to be serialised to YAML or JSON. `generate_trigger_template`,
`generate_trigger_binding` and `generate_event_listener` build the trigger
resources; `pipeline_reason_to_workflow_status` maps a run condition reason to
a status such as `"Succeeded"` or `"Failed (<reason>)"`.
`generate_pipeline_run` raises `ValueError` when a pipeline parameter has no
default and is not a codeset parameter.

## Workflow backend

```python
from fusemlcore.tekton.backend import WorkflowBackend
from fusemlcore.tekton.clients import new_clients

backend = WorkflowBackend("http://tekton.example.com", "fuseml-workloads",
                          new_clients("fuseml-workloads"))
backend.create_workflow(workflow)
backend.create_workflow_run(workflow.name, codeset)
runs = backend.get_workflow_runs(workflow)
listener = backend.create_workflow_listener(workflow.name, 0)
```

`WorkflowBackend.from_environment(namespace)` reads the dashboard URL from
`TEKTON_DASHBOARD_URL` (trailing `/` removed) and raises
`DashboardURLMissingError` when it is unset. Creating a pipeline that exists
raises `WorkflowExistsError`. With a positive timeout in seconds (or a
`timedelta`), `create_workflow_listener` polls once a second until the
listener is available and raises `ListenerTimeoutError` if it is not; any
resources it created are then deleted again. Deleting missing pipelines or
listener resources is logged and skipped. Progress is logged at `INFO` level
through the logger given to the backend.

## What this package does not do

- It does not talk to a Kubernetes cluster. `ResourceClient` keeps manifests
  in memory, keyed by name, so nothing runs pipelines or fills in run and
  listener status: that has to be written into the stored resources (for
  example with `ResourceClient.update_status`).
- It provides no command-line tool and no API server.
- The extension registry and runnable modules hold records and errors only;
  there is no registry or runnable store that queries them.