#!/usr/bin/env python3
"""
EFFECTIVE WORKFLOW API CLIENT
-----------------------------
Thin synchronous wrapper over the GitHub REST endpoints the resolver needs:
workflow runs, workflow metadata and repository contents.
"""

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from effective_workflow.core.errors import EffectiveWorkflowError
from effective_workflow.core.models import Repository, WorkflowMetadata, WorkflowRun

logger = logging.getLogger("effective_workflow.api")

API_VERSION = "2022-11-28"
USER_AGENT = "effective-workflow/1.0.0"


class ApiError(EffectiveWorkflowError):
    """A request failed at the transport level or returned a non-2xx status."""

    def __init__(self, message: str, status: Optional[int] = None, url: str = ""):
        self.status = status
        self.url = url
        self.message = message
        prefix = f"HTTP {status}: " if status else ""
        super().__init__(f"{prefix}{message}" + (f" ({url})" if url else ""))


class NotFound(ApiError):
    """HTTP 404."""


def api_base_url(host: str) -> str:
    if host in ("github.com", "api.github.com"):
        return "https://api.github.com"
    return f"https://{host}/api/v3"


class GitHubClient:
    """
    REST client bound to one API host. Use as a context manager so the
    underlying httpx connection pool is closed when the command finishes.
    """

    def __init__(self, host: str = "github.com", token: Optional[str] = None,
                 timeout: float = 30.0, transport: Optional[httpx.BaseTransport] = None):
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": API_VERSION,
            "User-Agent": USER_AGENT,
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self.host = host
        self._http = httpx.Client(
            base_url=api_base_url(host),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    def __enter__(self) -> "GitHubClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._http.close()

    def get(self, path: str, params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """GETs a JSON object, mapping failures onto ApiError/NotFound."""
        logger.debug(f"GET {path} {params or ''}")
        try:
            response = self._http.get(path, params=params)
        except httpx.HTTPError as e:
            raise ApiError(f"request failed: {e}", url=path) from e

        if response.status_code == 404:
            raise NotFound(self._error_message(response), status=404, url=str(response.url))
        if response.is_error:
            raise ApiError(self._error_message(response), status=response.status_code, url=str(response.url))

        try:
            return response.json()
        except ValueError as e:
            raise ApiError(f"invalid JSON in response: {e}", status=response.status_code,
                           url=str(response.url)) from e

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            payload = response.json()
        except ValueError:
            return response.reason_phrase or "request failed"
        if isinstance(payload, dict) and payload.get("message"):
            return str(payload["message"])
        return response.reason_phrase or "request failed"

    def fetch_run(self, repository: Repository, run_id: str) -> WorkflowRun:
        path = f"repos/{repository.owner}/{repository.name}/actions/runs/{quote(str(run_id), safe='')}"
        payload = self.get(path, params={"exclude_pull_requests": "true"})
        return WorkflowRun.from_api(payload)

    def fetch_workflow(self, repository: Repository, id_or_path: str) -> WorkflowMetadata:
        """Looks up a workflow by numeric id or by in-repo path; both are valid ids."""
        path = f"repos/{repository.owner}/{repository.name}/actions/workflows/{quote(str(id_or_path), safe='')}"
        return WorkflowMetadata.from_api(self.get(path))

    def fetch_file_content(self, repository: Repository, file_path: str, ref: Optional[str] = None) -> str:
        """Returns the base64 payload of a file at ``ref`` (default branch when empty)."""
        path = f"repos/{repository.owner}/{repository.name}/contents/{quote(file_path.lstrip('/'))}"
        params = {"ref": ref} if ref else None
        payload = self.get(path, params=params)
        if not isinstance(payload, dict) or "content" not in payload:
            raise ApiError(f"{file_path} is not a file", url=path)
        return payload["content"] or ""
