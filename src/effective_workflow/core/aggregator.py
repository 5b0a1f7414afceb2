#!/usr/bin/env python3
"""
EFFECTIVE WORKFLOW AGGREGATOR
-----------------------------
Builds the reference index: invocation string -> every call site that used
it, across the top-level workflow and all reusable workflows of a run.
"""

import logging
from typing import Iterable, Optional, Sequence

from effective_workflow.core.extractor import ReferenceExtractor
from effective_workflow.core.models import (
    ReferencedWorkflowDeclaration,
    ReferenceIndex,
    Workflow,
)

logger = logging.getLogger("effective_workflow.aggregator")


def aggregate_references(workflows: Sequence[Workflow],
                         declarations: Iterable[ReferencedWorkflowDeclaration] = (),
                         extractor: Optional[ReferenceExtractor] = None) -> ReferenceIndex:
    """
    Scans every workflow in order and groups the call sites by invocation string.

    Keys keep first-seen order and values keep scan order: top-level workflow
    first, then the reusable workflows as listed, jobs in document order.
    Identical invocation strings are never merged into one call site. The
    first extractor error aborts the whole aggregation.
    """
    extractor = extractor or ReferenceExtractor()
    index: ReferenceIndex = {}

    for workflow in workflows:
        for invocation, reference in extractor.extract(workflow.yaml, workflow.filename):
            index.setdefault(invocation, []).append(reference)

    # A declared path with no call site means the run metadata and the fetched
    # content disagree; the index is still complete for what was scanned.
    for declaration in declarations:
        if declaration.path not in index:
            logger.debug(f"Declared workflow {declaration.path} has no call site in the scanned files")

    return index

