import pytest

from effective_workflow.core.aggregator import aggregate_references
from effective_workflow.core.errors import UnexpectedNodeType, WorkflowParseFailed
from effective_workflow.core.models import Reference, ReferencedWorkflowDeclaration, Workflow

SHARED = "octocat/shared/.github/workflows/lint.yml@v2"
DEPLOY = "octocat/Hello-World/.github/workflows/deploy.yml@v1"


def make_workflow(filename, yaml_text, ref_path=""):
    return Workflow(name=filename, ref_path=ref_path, filename=filename, ref="main", sha="", yaml=yaml_text)


CI = make_workflow("ci.yml", (
    "on: push\n"
    "jobs:\n"
    "  lint:\n"
    f"    uses: {SHARED}\n"
    "  deploy:\n"
    "    needs: lint\n"
    f"    uses: {DEPLOY}\n"
))

DEPLOY_WF = make_workflow("deploy.yml", (
    "on:\n"
    "  workflow_call:\n"
    "jobs:\n"
    "  pre-flight:\n"
    f"    uses: {SHARED}\n"
), ref_path=DEPLOY)

LINT_WF = make_workflow("lint.yml", (
    "on: workflow_call\n"
    "jobs:\n"
    "  lint:\n"
    "    runs-on: ubuntu-latest\n"
    "    steps:\n"
    "      - run: make lint\n"
), ref_path=SHARED)


def test_same_call_from_two_workflows_is_one_key_two_references():
    index = aggregate_references([CI, DEPLOY_WF, LINT_WF])

    assert index[SHARED] == [
        Reference("ci.yml", f"    uses: {SHARED}", 4),
        Reference("deploy.yml", f"    uses: {SHARED}", 5),
    ]
    assert index[DEPLOY] == [Reference("ci.yml", f"    uses: {DEPLOY}", 7)]


def test_index_order_follows_scan_order():
    index = aggregate_references([CI, DEPLOY_WF, LINT_WF])

    assert list(index) == [SHARED, DEPLOY]
    assert [ref.source_filename for ref in index[SHARED]] == ["ci.yml", "deploy.yml"]


def test_top_level_workflow_is_never_a_value():
    index = aggregate_references([CI, DEPLOY_WF, LINT_WF])

    # only invocation strings are keys; the top-level workflow has none
    assert set(index) == {SHARED, DEPLOY}
    assert CI.ref_path == ""


def test_declarations_without_call_sites_do_not_fail():
    declarations = [
        ReferencedWorkflowDeclaration(path=DEPLOY, sha="abc", ref="refs/tags/v1"),
        ReferencedWorkflowDeclaration(path="octocat/other/.github/workflows/x.yml@main"),
    ]

    index = aggregate_references([CI], declarations)

    assert "octocat/other/.github/workflows/x.yml@main" not in index
    assert DEPLOY in index


def test_empty_workflow_set():
    assert aggregate_references([]) == {}


@pytest.mark.parametrize("bad_yaml, error", [
    ("jobs:\n  call:\n    uses: {workflow: x}\n", UnexpectedNodeType),
    ("jobs: [\n", WorkflowParseFailed),
])
def test_first_extractor_error_aborts(bad_yaml, error):
    broken = make_workflow("broken.yml", bad_yaml, ref_path=DEPLOY)

    with pytest.raises(error) as exc:
        aggregate_references([CI, broken, LINT_WF])
    assert exc.value.filename == "broken.yml"
