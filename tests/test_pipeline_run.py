import pytest

from fusemlcore.tekton.builder.meta import label
from fusemlcore.tekton.builder.pipeline_run import PipelineRunBuilder
from fusemlcore.tekton.constants import WORKSPACE_ACCESS_MODE, WORKSPACE_SIZE


def test_new_builder_type_and_generate_name():
    run = PipelineRunBuilder("prefix-").pipeline_run
    assert run["kind"] == "PipelineRun"
    assert run["apiVersion"] == "tekton.dev/v1beta1"
    assert run["metadata"]["generateName"] == "prefix-"


def test_generate_name_replaces_prefix():
    builder = PipelineRunBuilder("a-")
    builder.generate_name("b-")
    assert builder.pipeline_run["metadata"]["generateName"] == "b-"


def test_meta_service_account_and_pipeline_ref():
    builder = PipelineRunBuilder("p-")
    builder.meta(label("k", "v"))
    builder.service_account("sa")
    builder.pipeline_ref("pipe")
    run = builder.pipeline_run
    assert run["metadata"]["labels"] == {"k": "v"}
    assert run["spec"]["serviceAccountName"] == "sa"
    assert run["spec"]["pipelineRef"] == {"name": "pipe"}


def test_params_keep_order():
    builder = PipelineRunBuilder("p-")
    builder.param("a", "1")
    builder.param("b", "2")
    assert builder.pipeline_run["spec"]["params"] == [
        {"name": "a", "value": "1"},
        {"name": "b", "value": "2"},
    ]


def test_workspace_volume_claim():
    builder = PipelineRunBuilder("p-")
    builder.workspace("source", WORKSPACE_ACCESS_MODE, WORKSPACE_SIZE)
    (ws,) = builder.pipeline_run["spec"]["workspaces"]
    assert ws["name"] == "source"
    claim = ws["volumeClaimTemplate"]["spec"]
    assert claim["accessModes"] == [WORKSPACE_ACCESS_MODE]
    assert claim["resources"]["requests"]["storage"] == WORKSPACE_SIZE


@pytest.mark.parametrize("size", ["two gigs", "", "Gi", "1.5.3"])
def test_workspace_rejects_invalid_size(size):
    builder = PipelineRunBuilder("p-")
    with pytest.raises(ValueError):
        builder.workspace("source", WORKSPACE_ACCESS_MODE, size)


def test_resource_git():
    builder = PipelineRunBuilder("p-")
    builder.resource_git("repo", "http://git.example.com/r.git", "main")
    (res,) = builder.pipeline_run["spec"]["resources"]
    assert res["name"] == "repo"
    assert res["resourceSpec"]["type"] == "git"
    assert res["resourceSpec"]["params"] == [
        {"name": "url", "value": "http://git.example.com/r.git"},
        {"name": "revision", "value": "main"},
    ]