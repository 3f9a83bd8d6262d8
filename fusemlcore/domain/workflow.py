"""Workflow model, its runs, listeners and codeset assignments."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from fusemlcore.domain.extension import ExtensionAccessDescriptor
from fusemlcore.domain.models import Codeset


class WorkflowError(Exception):
    """Base class for expected errors raised by workflow operations."""

    message = "workflow error"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message if message is not None else self.message)


class WorkflowExistsError(WorkflowError):
    """A workflow with the same name already exists."""

    message = "workflow already exists"


class WorkflowNotFoundError(WorkflowError):
    """No workflow with the given name exists."""

    message = "could not find a workflow with the specified name"


class WorkflowNotAssignedToCodesetError(WorkflowError):
    """The workflow is not assigned to the given codeset."""

    message = "workflow not assigned to codeset"


class CannotDeleteAssignedWorkflowError(WorkflowError):
    """The workflow still has codesets assigned to it."""

    message = "cannot delete workflow, there are codesets assigned to it"


class WorkflowIOType(str, Enum):
    """Type of a workflow input or output."""

    STRING = "string"
    CODESET = "codeset"

    def __str__(self) -> str:
        return self.value


@dataclass
class WorkflowInput:
    """An input accepted by a workflow."""

    name: str = ""
    description: str = ""
    type: WorkflowIOType = WorkflowIOType.STRING
    default: str = ""
    labels: List[str] = field(default_factory=list)


@dataclass
class WorkflowOutput:
    """An output produced by a workflow."""

    name: str = ""
    description: str = ""
    type: WorkflowIOType = WorkflowIOType.STRING


@dataclass
class WorkflowStepInputCodeset:
    """A codeset used as a step input and where it is mounted."""

    name: str = ""
    path: str = ""


@dataclass
class WorkflowStepInput:
    """An input of a workflow step."""

    name: str = ""
    value: str = ""
    codeset: Optional[WorkflowStepInputCodeset] = None


@dataclass
class WorkflowStepOutputImage:
    """A container image built by a workflow step."""

    dockerfile: str = ""
    name: str = ""


@dataclass
class WorkflowStepOutput:
    """An output of a workflow step."""

    name: str = ""
    image: Optional[WorkflowStepOutputImage] = None


@dataclass
class WorkflowStepExtension:
    """Extension requirements of a workflow step."""

    name: str = ""
    extension_id: str = ""
    product: str = ""
    version_constraints: str = ""
    zone: str = ""
    service_id: str = ""
    service_resource: str = ""
    service_category: str = ""
    extension_access: Optional[ExtensionAccessDescriptor] = None


@dataclass
class WorkflowStepEnv:
    """An environment variable set for a workflow step."""

    name: str = ""
    value: str = ""


@dataclass
class WorkflowStep:
    """A single step of a workflow."""

    name: str = ""
    image: str = ""
    inputs: List[WorkflowStepInput] = field(default_factory=list)
    outputs: List[WorkflowStepOutput] = field(default_factory=list)
    extensions: List[WorkflowStepExtension] = field(default_factory=list)
    env: List[WorkflowStepEnv] = field(default_factory=list)


@dataclass
class CodesetAssignment:
    """A codeset the workflow is assigned to, through a webhook."""

    codeset: Codeset
    webhook_id: Optional[int] = None


@dataclass
class WorkflowAssignment:
    """The codesets a workflow is assigned to."""

    codesets: List[CodesetAssignment] = field(default_factory=list)


def _same_codeset(a: Codeset, b: Codeset) -> bool:
    return a.name == b.name and a.project == b.project


@dataclass
class Workflow:
    """A workflow: inputs, outputs, steps and its codeset assignments."""

    name: str = ""
    created: Optional[datetime] = None
    description: str = ""
    inputs: List[WorkflowInput] = field(default_factory=list)
    outputs: List[WorkflowOutput] = field(default_factory=list)
    steps: List[WorkflowStep] = field(default_factory=list)
    assigned_to: Optional[WorkflowAssignment] = None

    def assign_to_codeset(self, codeset: Codeset, webhook_id: Optional[int]) -> None:
        """Assign the workflow to a codeset; an existing assignment is kept as is."""
        if codeset is None:
            raise ValueError("codeset is None")
        if self.assigned_to is None:
            self.assigned_to = WorkflowAssignment()
        if any(_same_codeset(a.codeset, codeset) for a in self.assigned_to.codesets):
            return
        self.assigned_to.codesets.append(
            CodesetAssignment(codeset=codeset, webhook_id=webhook_id)
        )

    def unassign_from_codeset(self, codeset: Codeset) -> None:
        """Remove the assignment to a codeset, if there is one."""
        if codeset is None:
            raise ValueError("codeset is None")
        if self.assigned_to is None:
            return
        codesets = self.assigned_to.codesets
        for index, assignment in enumerate(codesets):
            if _same_codeset(assignment.codeset, codeset):
                del codesets[index]
                break

    def assigned_codesets(self) -> List[CodesetAssignment]:
        """Return the codeset assignments of the workflow."""
        if self.assigned_to is None:
            return []
        return list(self.assigned_to.codesets)

    def find_codeset_assignment(self, codeset: Codeset) -> CodesetAssignment:
        """Return the assignment to the given codeset."""
        if self.assigned_to is not None:
            for assignment in self.assigned_to.codesets:
                if _same_codeset(assignment.codeset, codeset):
                    return assignment
        raise WorkflowNotAssignedToCodesetError()


@dataclass
class WorkflowRunInput:
    """The value a workflow input took in a run."""

    input: WorkflowInput
    value: str = ""


@dataclass
class WorkflowRunOutput:
    """The value a workflow output took in a run."""

    output: WorkflowOutput
    value: str = ""


@dataclass
class WorkflowRun:
    """A single run of a workflow."""

    name: str = ""
    workflow_ref: str = ""
    inputs: List[WorkflowRunInput] = field(default_factory=list)
    outputs: List[WorkflowRunOutput] = field(default_factory=list)
    start_time: Optional[datetime] = None
    completion_time: Optional[datetime] = None
    status: str = ""
    url: str = ""


@dataclass
class WorkflowAssignmentStatus:
    """Status of a workflow assignment."""

    available: bool = False
    url: str = ""


@dataclass
class WorkflowRunFilter:
    """Criteria for listing workflow runs."""

    workflow_name: Optional[str] = None
    codeset_name: str = ""
    codeset_project: str = ""
    status: List[str] = field(default_factory=list)


@dataclass
class WorkflowListener:
    """A listener that triggers workflow runs."""

    name: str = ""
    available: bool = False
    url: str = ""
    dashboard_url: str = ""