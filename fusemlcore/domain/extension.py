"""Extension registry model: extensions, services, endpoints, credentials and queries."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional


class ExtensionEndpointType(str, Enum):
    """Whether an endpoint is reachable only from its own zone or from anywhere."""

    INTERNAL = "internal"
    EXTERNAL = "external"

    def __str__(self) -> str:
        return self.value


class ExtensionCredentialScope(str, Enum):
    """Who may use a set of extension credentials."""

    GLOBAL = "global"
    PROJECT = "project"
    USER = "user"

    def __str__(self) -> str:
        return self.value


@dataclass
class Extension:
    """A registered installation of a framework, platform, service or product."""

    id: str = ""
    product: str = ""
    version: str = ""
    description: str = ""
    zone: str = ""
    configuration: Dict[str, str] = field(default_factory=dict)
    registered: Optional[datetime] = None
    updated: Optional[datetime] = None


@dataclass
class ExtensionServiceID:
    """Identifies a service within the scope of an extension."""

    extension_id: str = ""
    id: str = ""


@dataclass
class ExtensionService(ExtensionServiceID):
    """A single API or UI provided by an extension."""

    resource: str = ""
    category: str = ""
    description: str = ""
    auth_required: bool = False
    configuration: Dict[str, str] = field(default_factory=dict)
    registered: Optional[datetime] = None
    updated: Optional[datetime] = None


@dataclass
class ExtensionEndpointID:
    """Identifies an endpoint within the scope of an extension service."""

    extension_id: str = ""
    service_id: str = ""
    url: str = ""


@dataclass
class ExtensionEndpoint(ExtensionEndpointID):
    """An address through which an extension service can be reached."""

    type: Optional[ExtensionEndpointType] = None
    configuration: Dict[str, str] = field(default_factory=dict)


@dataclass
class ExtensionCredentialsID:
    """Identifies a set of credentials within the scope of an extension service."""

    extension_id: str = ""
    service_id: str = ""
    id: str = ""


@dataclass
class ExtensionCredentials(ExtensionCredentialsID):
    """Sensitive configuration used to authenticate against a service."""

    scope: Optional[ExtensionCredentialScope] = None
    default: bool = False
    projects: List[str] = field(default_factory=list)
    users: List[str] = field(default_factory=list)
    configuration: Dict[str, str] = field(default_factory=dict)
    created: Optional[datetime] = None
    updated: Optional[datetime] = None


@dataclass
class ExtensionServiceRecord(ExtensionService):
    """A service together with its endpoints and credentials."""

    endpoints: List[ExtensionEndpoint] = field(default_factory=list)
    credentials: List[ExtensionCredentials] = field(default_factory=list)


@dataclass
class ExtensionRecord(Extension):
    """An extension together with all the services it provides."""

    services: List[ExtensionServiceRecord] = field(default_factory=list)


@dataclass
class ExtensionAccessDescriptor:
    """Everything needed to access an extension: service, endpoint and credentials."""

    extension: Extension = field(default_factory=Extension)
    service: ExtensionService = field(default_factory=ExtensionService)
    endpoint: ExtensionEndpoint = field(default_factory=ExtensionEndpoint)
    credentials: Optional[ExtensionCredentials] = None


@dataclass
class ExtensionQuery:
    """Criteria for looking up extensions, endpoints and credentials in the registry."""

    extension_id: str = ""
    product: str = ""
    version_constraints: str = ""
    zone: str = ""
    strict_zone_match: bool = False
    service_id: str = ""
    service_resource: str = ""
    service_category: str = ""
    endpoint_url: str = ""
    type: Optional[ExtensionEndpointType] = None
    credentials_id: str = ""
    credentials_scope: Optional[ExtensionCredentialScope] = None
    user: str = ""
    project: str = ""


class ExtensionError(Exception):
    """Base class for extension registry errors."""


class ExtensionExistsError(ExtensionError):
    """An extension with the same ID is already registered."""

    def __init__(self, extension_id: str) -> None:
        self.extension_id = extension_id
        super().__init__(f"an extension with the same ID already exists: {extension_id}")


class ExtensionNotFoundError(ExtensionError):
    """No extension with the given ID is registered."""

    def __init__(self, extension_id: str) -> None:
        self.extension_id = extension_id
        super().__init__(
            f"an extension with the given ID could not be found: {extension_id}"
        )


class MissingFieldError(ExtensionError):
    """A required field was left empty in a supplied object."""

    def __init__(self, element: str, field_name: str) -> None:
        self.element = element
        self.field = field_name
        super().__init__(
            f"required field is missing from '{element}' structure: {field_name}"
        )


class ExtensionServiceExistsError(ExtensionError):
    """A service with the same ID already exists under the extension."""

    def __init__(self, extension_id: str, service_id: str) -> None:
        self.extension_id = extension_id
        self.service_id = service_id
        super().__init__(
            f"a service with the same ID already exists under the "
            f"'{extension_id}' extension: {service_id}"
        )


class ExtensionServiceNotFoundError(ExtensionError):
    """No service with the given ID exists under the extension."""

    def __init__(self, extension_id: str, service_id: str) -> None:
        self.extension_id = extension_id
        self.service_id = service_id
        super().__init__(
            f"a service with the given ID could not be found under the "
            f"'{extension_id}' extension: {service_id}"
        )


class ExtensionEndpointExistsError(ExtensionError):
    """An endpoint with the same URL already exists under the service."""

    def __init__(self, extension_id: str, service_id: str, url: str) -> None:
        self.extension_id = extension_id
        self.service_id = service_id
        self.url = url
        super().__init__(
            f"an endpoint with the same URL already exists under the "
            f"'{extension_id}/{service_id}' extension service: {url}"
        )


class ExtensionEndpointNotFoundError(ExtensionError):
    """No endpoint with the given URL exists under the service."""

    def __init__(self, extension_id: str, service_id: str, url: str) -> None:
        self.extension_id = extension_id
        self.service_id = service_id
        self.url = url
        super().__init__(
            f"an endpoint with the given URL could not be found under the "
            f"'{extension_id}/{service_id}' extension service: {url}"
        )


class ExtensionCredentialsExistsError(ExtensionError):
    """A set of credentials with the same ID already exists under the service."""

    def __init__(self, extension_id: str, service_id: str, credentials_id: str) -> None:
        self.extension_id = extension_id
        self.service_id = service_id
        self.credentials_id = credentials_id
        super().__init__(
            f"a set of credentials with the same ID already exists under the "
            f"'{extension_id}/{service_id}' extension service: {credentials_id}"
        )


class ExtensionCredentialsNotFoundError(ExtensionError):
    """No set of credentials with the given ID exists under the service."""

    def __init__(self, extension_id: str, service_id: str, credentials_id: str) -> None:
        self.extension_id = extension_id
        self.service_id = service_id
        self.credentials_id = credentials_id
        super().__init__(
            f"a set of credentials with the given ID could not be found under the "
            f"'{extension_id}/{service_id}' extension service: {credentials_id}"
        )