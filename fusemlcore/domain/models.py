"""Core domain records: applications, codesets, projects and users."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List


@dataclass
class KubernetesResource:
    """A Kubernetes resource that forms part of an application."""

    name: str = ""
    kind: str = ""


@dataclass
class Application:
    """An application produced by a workflow."""

    name: str = ""
    type: str = ""
    description: str = ""
    url: str = ""
    workflow: str = ""
    k8s_resources: List[KubernetesResource] = field(default_factory=list)
    k8s_namespace: str = ""


@dataclass
class Codeset:
    """A codeset artifact: a versioned collection of code held in a project."""

    name: str = ""
    project: str = ""
    description: str = ""
    labels: List[str] = field(default_factory=list)
    url: str = ""


@dataclass
class User:
    """A user assigned to a project."""

    name: str = ""
    email: str = ""


@dataclass
class Project:
    """A project grouping codesets and the users assigned to it."""

    name: str = ""
    description: str = ""
    users: List[User] = field(default_factory=list)


class ProjectExistsError(Exception):
    """A project with the requested name already exists."""

    def __init__(self) -> None:
        super().__init__("Project with that name already exists")