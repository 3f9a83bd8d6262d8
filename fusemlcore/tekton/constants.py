"""Names and values shared by the Tekton resources generated for workflows."""

PIPELINE_RUN_PREFIX = "fuseml-"
PIPELINE_RUN_SERVICE_ACCOUNT = "fuseml-workloads"
TRIGGERS_SERVICE_ACCOUNT = "tekton-triggers"
WORKSPACE_ACCESS_MODE = "ReadWriteOnce"
WORKSPACE_SIZE = "2Gi"
CODESET_WORKSPACE_NAME = "source"
BUILDER_TASK_NAME = "kaniko"
BUILDER_PREP_TASK_NAME = "builder-prep"
CLONE_TASK_NAME = "clone"
CODESET_NAME_PARAM = "codeset-name"
CODESET_VERSION_PARAM = "codeset-version"
CODESET_PROJECT_PARAM = "codeset-project"
CODESET_URL_PARAM = "codeset-url"
FUSEML_REGISTRY = "registry.fuseml-registry"
FUSEML_REGISTRY_LOCAL = "127.0.0.1:30500"
IMAGE_PARAM_NAME = "IMAGE"
STEP_OUTPUT_VAR_NAME = "TASK_RESULT"
INPUTS_VAR_PREFIX = "FUSEML_"
ENV_VAR_PREFIX = "FUSEML_ENV_"
STEP_DEFAULT_CMD = "run"

LABEL_CODESET_NAME = "fuseml/codeset-name"
LABEL_CODESET_PROJECT = "fuseml/codeset-project"
LABEL_CODESET_VERSION = "fuseml/codeset-version"
LABEL_WORKFLOW_REF = "fuseml/workflow-ref"