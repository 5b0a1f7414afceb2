#!/usr/bin/env python3
"""
EFFECTIVE WORKFLOW CORE MODELS
------------------------------
Defines the fundamental data structures shared by the resolver, the
reference extractor and the presentation layer. Every record here is
built once per resolution pass and never mutated afterwards.
"""

import posixpath
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class Repository:
    """Coordinates of a hosted repository (``owner/name`` on ``host``)."""
    owner: str
    name: str
    host: str = "github.com"

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    def __str__(self) -> str:
        return self.full_name


@dataclass(frozen=True)
class ReferencePath:
    """
    A parsed invocation string such as
    ``octocat/Hello-World/.github/workflows/deploy.yml@main``.
    """
    repository: Repository
    path: str               # In-repo path of the workflow file
    ref: str                # Branch, tag or commit after the '@'

    @property
    def filename(self) -> str:
        return posixpath.basename(self.path)


@dataclass(frozen=True)
class Workflow:
    """
    A resolved workflow document.

    ``yaml`` is the content exactly as retrieved at ``ref``/``sha``.
    ``ref_path`` is empty for the run's top-level workflow.
    """
    name: str
    ref_path: str
    filename: str
    ref: str
    sha: str
    yaml: str


@dataclass(frozen=True)
class Reference:
    """A single call site of a reusable workflow."""
    source_filename: str    # Filename of the workflow containing the call
    source_line: str        # Verbatim text of the line holding the 'uses' value
    source_line_number: int  # 1-based line number within that workflow


@dataclass(frozen=True)
class ReferencedWorkflowDeclaration:
    """One entry of a run's ``referenced_workflows`` list."""
    path: str
    sha: str = ""
    ref: str = ""

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "ReferencedWorkflowDeclaration":
        return cls(
            path=payload.get("path") or "",
            sha=payload.get("sha") or "",
            ref=payload.get("ref") or "",
        )


@dataclass(frozen=True)
class WorkflowRun:
    """The subset of a workflow run the resolver and the CLI care about."""
    id: int
    workflow_id: int
    head_branch: str
    head_sha: str
    referenced_workflows: List[ReferencedWorkflowDeclaration] = field(default_factory=list)
    name: str = ""
    display_title: str = ""
    event: str = ""
    status: str = ""
    conclusion: str = ""
    html_url: str = ""

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "WorkflowRun":
        return cls(
            id=payload.get("id") or 0,
            workflow_id=payload.get("workflow_id") or 0,
            head_branch=payload.get("head_branch") or "",
            head_sha=payload.get("head_sha") or "",
            referenced_workflows=[
                ReferencedWorkflowDeclaration.from_api(item)
                for item in payload.get("referenced_workflows") or []
            ],
            name=payload.get("name") or "",
            display_title=payload.get("display_title") or "",
            event=payload.get("event") or "",
            status=payload.get("status") or "",
            conclusion=payload.get("conclusion") or "",
            html_url=payload.get("html_url") or "",
        )


@dataclass(frozen=True)
class WorkflowMetadata:
    """Workflow metadata as returned by the workflows endpoint."""
    id: int
    name: str
    path: str
    state: str = ""

    @property
    def base(self) -> str:
        return posixpath.basename(self.path)

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "WorkflowMetadata":
        return cls(
            id=payload.get("id") or 0,
            name=payload.get("name") or "",
            path=payload.get("path") or "",
            state=payload.get("state") or "",
        )


class UsesKind(Enum):
    ABSENT = "absent"
    SCALAR = "scalar"
    OTHER = "other"


@dataclass(frozen=True)
class UsesDeclaration:
    """
    The classified ``uses`` field of one job.

    ABSENT covers both a missing key and an explicit null. SCALAR carries the
    string value and the 1-based line the scalar starts on. OTHER records the
    node kind (mapping, sequence, or a scalar resolved to a non-string tag).
    """
    kind: UsesKind
    value: Optional[str] = None
    line_number: Optional[int] = None
    node_kind: Optional[str] = None


ReferenceIndex = Dict[str, List[Reference]]


@dataclass(frozen=True)
class EffectiveWorkflow:
    """Everything a single run resolution produces."""
    run: WorkflowRun
    top_level: Workflow
    reusable: List[Workflow]
    references: ReferenceIndex

    def references_for(self, workflow: Workflow) -> List[Reference]:
        if not workflow.ref_path:
            return []
        return list(self.references.get(workflow.ref_path, []))
