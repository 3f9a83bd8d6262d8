"""Runnable descriptors: container implementations with typed inputs and outputs."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

LOCAL_REGISTRY_HOSTNAME = "fuseml.local"
"""Hostname marking container images kept in the built-in OCI registry."""


class RunnableKind(str, Enum):
    """The kind of a runnable."""

    CUSTOM = "custom"
    BUILDER = "builder"
    TRAINER = "trainer"
    PREDICTOR = "predictor"

    def __str__(self) -> str:
        return self.value


class ArtifactProvider(str, Enum):
    """Mechanism used to hand an artifact's contents to a container."""

    LOCAL = "local"
    INLINE = "inline"
    FUSEML = "fuseml"
    S3 = "s3"
    GCS = "gcs"
    AZURE = "azure"
    GIT = "git"
    NFS = "nfs"
    FTP = "ftp"
    SFTP = "sftp"
    HTTP = "http"
    HTTPS = "https"
    HDFS = "hdfs"
    OCI = "oci"

    def __str__(self) -> str:
        return self.value


class RunnableArtifactArgDimension(str, Enum):
    """Whether an artifact argument holds one artifact or several."""

    SINGLE = "single"
    ARRAY = "array"

    def __str__(self) -> str:
        return self.value


@dataclass
class RunnableContainer:
    """Container implementation of a runnable."""

    image: str = ""
    local_image: bool = False
    env: Dict[str, str] = field(default_factory=dict)
    entrypoint: str = ""
    args: List[str] = field(default_factory=list)


@dataclass
class Runnable:
    """A runnable: a container image with declared inputs, outputs and labels."""

    id: str = ""
    created: Optional[datetime] = None
    description: str = ""
    author: str = ""
    source: str = ""
    kind: str = ""
    container: RunnableContainer = field(default_factory=RunnableContainer)
    inputs: Dict[str, Any] = field(default_factory=dict)
    outputs: Dict[str, Any] = field(default_factory=dict)
    default_input_path: str = ""
    default_output_path: str = ""
    labels: Dict[str, str] = field(default_factory=dict)


@dataclass
class RunnableArgDesc:
    """Fields shared by all runnable inputs and outputs."""

    name: str = ""
    description: str = ""
    labels: Dict[str, str] = field(default_factory=dict)


@dataclass
class RunnableInputParameter(RunnableArgDesc):
    """An input parameter of a runnable."""

    optional: bool = False
    default_value: str = ""
    path: str = ""


@dataclass
class RunnableOutputParameter(RunnableArgDesc):
    """An output parameter of a runnable."""

    optional: bool = False
    default_value: str = ""
    path: str = ""


@dataclass
class RunnableArtifactArgDesc(RunnableArgDesc):
    """Fields shared by all artifact inputs and outputs."""

    provider: List[ArtifactProvider] = field(default_factory=list)
    dimension: RunnableArtifactArgDimension = RunnableArtifactArgDimension.SINGLE


@dataclass
class RunnableInputArtifact(RunnableArtifactArgDesc):
    """A generic input artifact of a runnable."""

    optional: bool = False
    path: str = ""


@dataclass
class RunnableOutputArtifact(RunnableArtifactArgDesc):
    """A generic output artifact of a runnable."""

    optional: bool = False
    path: str = ""


@dataclass
class RunnableCodesetArtifact:
    """Properties of a codeset artifact."""

    type: List[str] = field(default_factory=list)
    function: List[str] = field(default_factory=list)
    format: List[str] = field(default_factory=list)
    requirements: Dict[str, str] = field(default_factory=dict)


@dataclass
class RunnableModelArtifact:
    """Properties of a model artifact."""

    format: List[str] = field(default_factory=list)
    pretrained: bool = False
    method: str = ""
    class_: str = ""
    function: str = ""
    requirements: Dict[str, str] = field(default_factory=dict)


@dataclass
class RunnableDatasetArtifact:
    """Properties of a dataset artifact."""

    type: List[str] = field(default_factory=list)
    format: List[str] = field(default_factory=list)
    compression: List[str] = field(default_factory=list)


@dataclass
class RunnableRunnableArtifact:
    """Properties of a runnable used as an artifact."""

    kind: str = ""


@dataclass
class RunnableInputCodeset(RunnableInputArtifact, RunnableCodesetArtifact):
    """A codeset input artifact."""


@dataclass
class RunnableOutputCodeset(RunnableOutputArtifact, RunnableCodesetArtifact):
    """A codeset output artifact."""


@dataclass
class RunnableInputModel(RunnableInputArtifact, RunnableModelArtifact):
    """A model input artifact."""


@dataclass
class RunnableOutputModel(RunnableOutputArtifact, RunnableModelArtifact):
    """A model output artifact."""


@dataclass
class RunnableInputDataset(RunnableInputArtifact, RunnableDatasetArtifact):
    """A dataset input artifact."""


@dataclass
class RunnableOutputDataset(RunnableOutputArtifact, RunnableDatasetArtifact):
    """A dataset output artifact."""


@dataclass
class RunnableInputRunnable(RunnableInputArtifact, RunnableRunnableArtifact):
    """A runnable input artifact."""


@dataclass
class RunnableOutputRunnable(RunnableOutputArtifact, RunnableRunnableArtifact):
    """A runnable output artifact."""