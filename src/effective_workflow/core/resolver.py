#!/usr/bin/env python3
"""
EFFECTIVE WORKFLOW RESOLVER - The Orchestrator
----------------------------------------------
Reconstructs what a run actually executed:
1. Looks up the run and its top-level workflow at the run's head branch.
2. Resolves every reusable workflow the run declares, pinned to its ref.
3. Aggregates the call sites of each reusable workflow.

Resolution is sequential and all-or-nothing; the first failure aborts.
Only the run's flat referenced-workflow list is followed, no deeper.
"""

import base64
import binascii
import logging
from typing import Optional

from effective_workflow.api.client import ApiError, GitHubClient, NotFound
from effective_workflow.core.aggregator import aggregate_references
from effective_workflow.core.errors import ContentDecodeFailed, WorkflowResolutionFailed
from effective_workflow.core.extractor import ReferenceExtractor
from effective_workflow.core.models import EffectiveWorkflow, Repository, Workflow
from effective_workflow.core.refpath import parse_reference_path

logger = logging.getLogger("effective_workflow.resolver")


def decode_content(encoded: str, path: str, repository: str = "", ref: Optional[str] = None) -> str:
    """
    Decodes a (possibly line-wrapped) base64 payload into UTF-8 text.
    ``repository`` and ``ref`` only add context to ContentDecodeFailed.
    """
    compact = "".join(encoded.split())
    try:
        raw = base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ContentDecodeFailed(path, f"invalid base64 payload: {e}", repository, ref) from e
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ContentDecodeFailed(path, f"content is not UTF-8 text: {e}", repository, ref) from e


def missing_file_hint(filename: str, ref: Optional[str]) -> str:
    if ref:
        return f"{filename} may not exist at {ref}; try a different ref with --ref"
    return f"{filename} may not exist on the default branch; try specifying a ref with --ref"


class WorkflowResolver:
    """Turns run and workflow coordinates into resolved Workflow records."""

    def __init__(self, client: GitHubClient, extractor: Optional[ReferenceExtractor] = None):
        self.client = client
        self.extractor = extractor or ReferenceExtractor()

    def resolve_workflow(self, repository: Repository, workflow_id: str, ref: Optional[str],
                         sha: str = "", ref_path: str = "") -> Workflow:
        """
        Fetches metadata and content for one workflow at ``ref``.
        ``workflow_id`` may be a numeric id or an in-repo path.
        """
        identifier = str(workflow_id)
        try:
            metadata = self.client.fetch_workflow(repository, identifier)
        except ApiError as e:
            raise WorkflowResolutionFailed(repository.full_name, identifier, ref,
                                           f"workflow lookup failed: {e}") from e

        try:
            encoded = self.client.fetch_file_content(repository, metadata.path, ref)
        except NotFound as e:
            raise WorkflowResolutionFailed(
                repository.full_name, identifier, ref,
                f"could not find workflow file {metadata.base}",
                hint=missing_file_hint(metadata.base, ref),
            ) from e
        except ApiError as e:
            raise WorkflowResolutionFailed(repository.full_name, identifier, ref,
                                           f"content fetch failed: {e}") from e

        workflow = Workflow(
            name=metadata.name,
            ref_path=ref_path,
            filename=metadata.base,
            ref=ref or "",
            sha=sha,
            yaml=decode_content(encoded, metadata.path, repository.full_name, ref),
        )
        logger.info(f"Resolved {repository.full_name}/{metadata.path}@{workflow.ref}")
        return workflow

    def resolve_effective_workflow(self, repository: Repository, run_id: str,
                                   ref: Optional[str] = None) -> EffectiveWorkflow:
        """
        The single entry point: run id -> top-level workflow, reusable
        workflows (in declaration order) and the reference index.
        ``ref`` overrides the revision used for the top-level workflow.
        """
        try:
            run = self.client.fetch_run(repository, run_id)
        except ApiError as e:
            hint = f"check that run {run_id} belongs to {repository.full_name}" if isinstance(e, NotFound) else None
            raise WorkflowResolutionFailed(repository.full_name, f"run {run_id}", None,
                                           f"run lookup failed: {e}", hint=hint) from e

        top_level = self.resolve_workflow(
            repository,
            str(run.workflow_id),
            ref or run.head_branch,
            sha=run.head_sha,
        )

        reusable = []
        for declaration in run.referenced_workflows:
            target = parse_reference_path(declaration.path, host=repository.host)
            reusable.append(self.resolve_workflow(
                target.repository,
                target.path,
                target.ref,
                sha=declaration.sha,
                ref_path=declaration.path,
            ))

        references = aggregate_references([top_level, *reusable], run.referenced_workflows,
                                          extractor=self.extractor)
        return EffectiveWorkflow(run=run, top_level=top_level, reusable=reusable, references=references)


def resolve_effective_workflow(client: GitHubClient, repository: Repository, run_id: str,
                               ref: Optional[str] = None) -> EffectiveWorkflow:
    return WorkflowResolver(client).resolve_effective_workflow(repository, run_id, ref=ref)
