"""Workflow store that keeps everything in memory."""

from __future__ import annotations

from typing import Dict, List, Optional

from fusemlcore.domain.models import Codeset
from fusemlcore.domain.workflow import (
    CannotDeleteAssignedWorkflowError,
    CodesetAssignment,
    Workflow,
    WorkflowExistsError,
    WorkflowNotFoundError,
)


class InMemoryWorkflowStore:
    """Workflows indexed by name, held in a dictionary."""

    def __init__(self) -> None:
        self._items: Dict[str, Workflow] = {}

    def _lookup(self, name: str) -> Workflow:
        try:
            return self._items[name]
        except KeyError:
            raise WorkflowNotFoundError() from None

    def get_workflow(self, name: str) -> Workflow:
        """Return the workflow with the given name."""
        return self._lookup(name)

    def get_workflows(self, name: Optional[str] = None) -> List[Workflow]:
        """Return all workflows, or only the one with the given name."""
        if name is not None:
            workflow = self._items.get(name)
            return [workflow] if workflow is not None else []
        return list(self._items.values())

    def add_workflow(self, workflow: Workflow) -> Workflow:
        """Store a new workflow; its name must not be taken."""
        if workflow.name in self._items:
            raise WorkflowExistsError()
        self._items[workflow.name] = workflow
        return workflow

    def delete_workflow(self, name: str) -> None:
        """Remove a workflow; a missing one is ignored, an assigned one is refused."""
        workflow = self._items.get(name)
        if workflow is None:
            return
        if workflow.assigned_codesets():
            raise CannotDeleteAssignedWorkflowError()
        del self._items[name]

    def get_codeset_assignments(self, workflow_name: str) -> List[CodesetAssignment]:
        """Return the codesets assigned to a workflow, empty if it does not exist."""
        workflow = self._items.get(workflow_name)
        if workflow is None:
            return []
        return workflow.assigned_codesets()

    def get_all_codeset_assignments(
        self, workflow_name: Optional[str] = None
    ) -> Dict[str, List[CodesetAssignment]]:
        """Map workflow names to their assignments, leaving out unassigned workflows."""
        if workflow_name is not None:
            workflow = self._items.get(workflow_name)
            if workflow is not None:
                assignments = workflow.assigned_codesets()
                if assignments:
                    return {workflow_name: assignments}
            return {}
        result: Dict[str, List[CodesetAssignment]] = {}
        for workflow in self._items.values():
            assignments = workflow.assigned_codesets()
            if assignments:
                result[workflow.name] = assignments
        return result

    def add_codeset_assignment(
        self, workflow_name: str, codeset: Codeset, webhook_id: Optional[int]
    ) -> List[CodesetAssignment]:
        """Assign a workflow to a codeset and return its assignments."""
        workflow = self._lookup(workflow_name)
        workflow.assign_to_codeset(codeset, webhook_id)
        return workflow.assigned_codesets()

    def delete_codeset_assignment(
        self, workflow_name: str, codeset: Codeset
    ) -> List[CodesetAssignment]:
        """Unassign a workflow from a codeset and return the remaining assignments."""
        workflow = self._lookup(workflow_name)
        workflow.unassign_from_codeset(codeset)
        return workflow.assigned_codesets()

    def get_codeset_assignment(
        self, workflow_name: str, codeset: Codeset
    ) -> CodesetAssignment:
        """Return the assignment of a workflow to the given codeset."""
        return self._lookup(workflow_name).find_codeset_assignment(codeset)