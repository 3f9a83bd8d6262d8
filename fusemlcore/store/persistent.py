"""Workflow and application stores kept in a persistent key-value file."""

from __future__ import annotations

import os
import pickle
import sqlite3
from typing import Any, Dict, List, Optional, Union

from fusemlcore.domain.models import Application, Codeset
from fusemlcore.domain.workflow import (
    CannotDeleteAssignedWorkflowError,
    CodesetAssignment,
    Workflow,
    WorkflowExistsError,
    WorkflowNotFoundError,
)


class KeyExistsError(Exception):
    """A value is already stored under the key."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"a value is already stored under key {key!r}")


class KeyNotFoundError(LookupError):
    """No value is stored under the key."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"no value stored under key {key!r}")


class KeyValueStore:
    """A persistent map from string keys to Python objects, ordered by key.

    Several stores may share one file by using different buckets. Values are
    copied on the way in and out, so callers never share state with the store.
    """

    def __init__(
        self, path: Union[str, os.PathLike] = ":memory:", bucket: str = "default"
    ) -> None:
        self.path = os.fspath(path)
        self.bucket = bucket
        self._conn = sqlite3.connect(self.path)
        with self._conn:
            self._conn.execute(
                "CREATE TABLE IF NOT EXISTS entries ("
                " bucket TEXT NOT NULL,"
                " key TEXT NOT NULL,"
                " value BLOB NOT NULL,"
                " PRIMARY KEY (bucket, key))"
            )

    def __enter__(self) -> "KeyValueStore":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def get(self, key: str) -> Any:
        """Return the value stored under the key."""
        row = self._conn.execute(
            "SELECT value FROM entries WHERE bucket = ? AND key = ?",
            (self.bucket, key),
        ).fetchone()
        if row is None:
            raise KeyNotFoundError(key)
        return pickle.loads(row[0])

    def insert(self, key: str, value: Any) -> None:
        """Store a value under a key that is not yet taken."""
        try:
            with self._conn:
                self._conn.execute(
                    "INSERT INTO entries (bucket, key, value) VALUES (?, ?, ?)",
                    (self.bucket, key, pickle.dumps(value)),
                )
        except sqlite3.IntegrityError:
            raise KeyExistsError(key) from None

    def update(self, key: str, value: Any) -> None:
        """Replace the value stored under an existing key."""
        with self._conn:
            cursor = self._conn.execute(
                "UPDATE entries SET value = ? WHERE bucket = ? AND key = ?",
                (pickle.dumps(value), self.bucket, key),
            )
        if cursor.rowcount == 0:
            raise KeyNotFoundError(key)

    def delete(self, key: str) -> None:
        """Remove the value stored under an existing key."""
        with self._conn:
            cursor = self._conn.execute(
                "DELETE FROM entries WHERE bucket = ? AND key = ?",
                (self.bucket, key),
            )
        if cursor.rowcount == 0:
            raise KeyNotFoundError(key)

    def values(self) -> List[Any]:
        """Return all stored values, ordered by key."""
        rows = self._conn.execute(
            "SELECT value FROM entries WHERE bucket = ? ORDER BY key",
            (self.bucket,),
        ).fetchall()
        return [pickle.loads(row[0]) for row in rows]

    def close(self) -> None:
        """Close the underlying file."""
        self._conn.close()


class ApplicationStore:
    """Applications kept in a key-value store, indexed by name."""

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    def find(self, name: str) -> Optional[Application]:
        """Return the application with the given name, or None."""
        try:
            return self.store.get(name)
        except KeyNotFoundError:
            return None

    def get_all(
        self,
        application_type: Optional[str] = None,
        application_workflow: Optional[str] = None,
    ) -> List[Application]:
        """Return all applications, filtered by type and workflow when given."""
        return [
            app
            for app in self.store.values()
            if (application_type is None or app.type == application_type)
            and (application_workflow is None or app.workflow == application_workflow)
        ]

    def add(self, application: Application) -> Application:
        """Store an application, replacing one with the same name."""
        try:
            self.store.insert(application.name, application)
        except KeyExistsError:
            self.store.delete(application.name)
            self.store.insert(application.name, application)
        return application

    def delete(self, name: str) -> None:
        """Remove the application with the given name."""
        self.store.delete(name)


class PersistentWorkflowStore:
    """Workflows kept in a key-value store, indexed by name."""

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    def _load(self, name: str) -> Workflow:
        try:
            return self.store.get(name)
        except KeyNotFoundError:
            raise WorkflowNotFoundError() from None

    def get_workflow(self, name: str) -> Workflow:
        """Return the workflow with the given name."""
        return self._load(name)

    def get_workflows(self, name: Optional[str] = None) -> List[Workflow]:
        """Return all workflows, or only the one with the given name."""
        if name is not None:
            try:
                return [self.store.get(name)]
            except KeyNotFoundError:
                return []
        return self.store.values()

    def add_workflow(self, workflow: Workflow) -> Workflow:
        """Store a new workflow; its name must not be taken."""
        try:
            self.store.insert(workflow.name, workflow)
        except KeyExistsError:
            raise WorkflowExistsError() from None
        return workflow

    def delete_workflow(self, name: str) -> None:
        """Remove a workflow; a missing one is ignored, an assigned one is refused."""
        try:
            workflow = self.store.get(name)
        except KeyNotFoundError:
            return
        if workflow.assigned_codesets():
            raise CannotDeleteAssignedWorkflowError()
        self.store.delete(name)

    def get_codeset_assignment(
        self, workflow_name: str, codeset: Codeset
    ) -> CodesetAssignment:
        """Return the assignment of a workflow to the given codeset."""
        return self._load(workflow_name).find_codeset_assignment(codeset)

    def get_codeset_assignments(self, workflow_name: str) -> List[CodesetAssignment]:
        """Return the codesets assigned to a workflow, empty if it does not exist."""
        try:
            return self.store.get(workflow_name).assigned_codesets()
        except KeyNotFoundError:
            return []

    def get_all_codeset_assignments(
        self, workflow_name: Optional[str] = None
    ) -> Dict[str, List[CodesetAssignment]]:
        """Map workflow names to their assignments, leaving out unassigned workflows."""
        if workflow_name is not None:
            try:
                assignments = self.store.get(workflow_name).assigned_codesets()
            except KeyNotFoundError:
                return {}
            return {workflow_name: assignments} if assignments else {}
        result: Dict[str, List[CodesetAssignment]] = {}
        for workflow in self.store.values():
            assignments = workflow.assigned_codesets()
            if assignments:
                result[workflow.name] = assignments
        return result

    def add_codeset_assignment(
        self, workflow_name: str, codeset: Codeset, webhook_id: Optional[int]
    ) -> List[CodesetAssignment]:
        """Assign a workflow to a codeset and return its assignments."""
        workflow = self._load(workflow_name)
        workflow.assign_to_codeset(codeset, webhook_id)
        self.store.update(workflow_name, workflow)
        return workflow.assigned_codesets()

    def delete_codeset_assignment(
        self, workflow_name: str, codeset: Codeset
    ) -> List[CodesetAssignment]:
        """Unassign a workflow from a codeset and return the remaining assignments."""
        workflow = self._load(workflow_name)
        workflow.unassign_from_codeset(codeset)
        self.store.update(workflow_name, workflow)
        return workflow.assigned_codesets()