#!/usr/bin/env python3
"""
EFFECTIVE WORKFLOW ERRORS
-------------------------
Every failure the resolver can raise. All of them abort the whole
resolution: the effective view is only meaningful when complete.
"""

from typing import Optional


class EffectiveWorkflowError(Exception):
    """Base class for errors surfaced to the command-line frontend."""

    hint: Optional[str] = None


class ConfigurationError(EffectiveWorkflowError):
    """Settings or the target repository could not be determined."""


class MalformedReference(EffectiveWorkflowError):
    """An invocation string does not parse into owner/repo/path@ref."""

    def __init__(self, value: str, reason: str):
        self.value = value
        self.reason = reason
        super().__init__(f"malformed workflow reference '{value}': {reason}")


class WorkflowResolutionFailed(EffectiveWorkflowError):
    """Metadata or content lookup failed for a workflow coordinate."""

    def __init__(self, repository: str, identifier: str, ref: Optional[str],
                 reason: str, hint: Optional[str] = None):
        self.repository = repository
        self.identifier = identifier
        self.ref = ref
        self.reason = reason
        self.hint = hint
        at = f"@{ref}" if ref else ""
        super().__init__(f"failed to resolve workflow {identifier}{at} in {repository}: {reason}")


class ContentDecodeFailed(EffectiveWorkflowError):
    """The transport payload was not valid base64-encoded UTF-8 text."""

    def __init__(self, path: str, reason: str, repository: str = "", ref: Optional[str] = None):
        self.path = path
        self.reason = reason
        self.repository = repository
        self.ref = ref
        at = f"@{ref}" if ref else ""
        where = f" in {repository}" if repository else ""
        super().__init__(f"failed to decode workflow file {path}{at}{where}: {reason}")


class WorkflowParseFailed(EffectiveWorkflowError):
    """The workflow document is not YAML of the shape the extractor reads."""

    def __init__(self, filename: str, reason: str, line: Optional[int] = None):
        self.filename = filename
        self.reason = reason
        self.line = line
        where = f"{filename}:{line}" if line else filename
        super().__init__(f"failed to parse {where}: {reason}")


class UnexpectedNodeType(EffectiveWorkflowError):
    """A job's 'uses' field is present but is not a plain string."""

    def __init__(self, filename: str, job_id: str, node_kind: str, line: Optional[int] = None):
        self.filename = filename
        self.job_id = job_id
        self.node_kind = node_kind
        self.line = line
        where = f"{filename}:{line}" if line else filename
        super().__init__(f"unexpected node type for uses in job '{job_id}' ({where}): {node_kind}")
