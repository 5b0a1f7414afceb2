import base64
from typing import Any, Dict, Optional, Tuple

import httpx
import pytest

from effective_workflow.api.client import GitHubClient


def b64(text: str, wrap: int = 60) -> str:
    """Encodes like the contents API does: base64, wrapped with newlines."""
    encoded = base64.b64encode(text.encode("utf-8")).decode("ascii")
    return "\n".join(encoded[i:i + wrap] for i in range(0, len(encoded), wrap)) + "\n"


class FakeGitHub:
    """In-memory stand-in for the three REST endpoints, served through httpx.MockTransport."""

    def __init__(self):
        self.json_routes: Dict[str, Tuple[int, Any]] = {}
        self.contents: Dict[Tuple[str, Optional[str]], str] = {}
        self.requests = []

    def add_run(self, repo: str, run_id: int, workflow_id: int, head_branch: str = "main",
                head_sha: str = "", referenced_workflows=()):
        self.json_routes[f"/repos/{repo}/actions/runs/{run_id}"] = (200, {
            "id": run_id,
            "workflow_id": workflow_id,
            "head_branch": head_branch,
            "head_sha": head_sha,
            "referenced_workflows": list(referenced_workflows),
        })

    def add_workflow(self, repo: str, id_or_path, name: str, path: str, workflow_id: int = 1):
        self.json_routes[f"/repos/{repo}/actions/workflows/{id_or_path}"] = (200, {
            "id": workflow_id, "name": name, "path": path, "state": "active",
        })

    def add_content(self, repo: str, path: str, ref: Optional[str], text: str):
        self.contents[(f"/repos/{repo}/contents/{path}", ref)] = b64(text)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if "/contents/" in path:
            key = (path, request.url.params.get("ref"))
            if key in self.contents:
                return httpx.Response(200, json={"type": "file", "encoding": "base64", "content": self.contents[key]})
            return httpx.Response(404, json={"message": "Not Found"})

        if path in self.json_routes:
            status, payload = self.json_routes[path]
            return httpx.Response(status, json=payload)
        return httpx.Response(404, json={"message": "Not Found"})

    def client(self, **kwargs) -> GitHubClient:
        return GitHubClient(transport=httpx.MockTransport(self.handler), **kwargs)


@pytest.fixture
def fake_github():
    return FakeGitHub()


CI_YAML = (
    "name: CI\n"
    "on: push\n"
    "jobs:\n"
    "  deploy:\n"
    "    uses: octocat/Hello-World/.github/workflows/deploy.yml@v1\n"
)

DEPLOY_YAML = (
    "name: Deploy\n"
    "on:\n"
    "  workflow_call:\n"
    "jobs:\n"
    "  release:\n"
    "    runs-on: ubuntu-latest\n"
    "    steps:\n"
    "      - run: ./release.sh\n"
)

DEPLOY_REF = "octocat/Hello-World/.github/workflows/deploy.yml@v1"


@pytest.fixture
def hello_world_run(fake_github):
    """
    Run 30433642 of octocat/Hello-World: ci.yml at main calls deploy.yml@v1
    on line 5.
    """
    repo = "octocat/Hello-World"
    fake_github.add_run(repo, 30433642, 161335, head_branch="main", head_sha="acb5820ced9479c074f688cc328bf03f341a511d",
                        referenced_workflows=[{
                            "path": DEPLOY_REF,
                            "sha": "d0b2a9c6e1f00d5e2b5f6a1f1c1e0f6b7a8c9d0e",
                            "ref": "refs/tags/v1",
                        }])
    fake_github.add_workflow(repo, 161335, "CI", ".github/workflows/ci.yml", workflow_id=161335)
    fake_github.add_workflow(repo, ".github/workflows/deploy.yml", "Deploy", ".github/workflows/deploy.yml",
                             workflow_id=161336)
    fake_github.add_content(repo, ".github/workflows/ci.yml", "main", CI_YAML)
    fake_github.add_content(repo, ".github/workflows/deploy.yml", "v1", DEPLOY_YAML)
    return fake_github
