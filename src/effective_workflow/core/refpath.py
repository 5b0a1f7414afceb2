#!/usr/bin/env python3
"""
EFFECTIVE WORKFLOW REFERENCE PATHS
----------------------------------
Decomposes invocation strings (``owner/repo/path/to/file.yml@ref``) and
repository specifiers (``OWNER/REPO``, ``HOST/OWNER/REPO`` or a git remote
URL) into typed coordinates. No I/O happens here.
"""

import re
from typing import Optional
from urllib.parse import urlparse

from effective_workflow.core.errors import ConfigurationError, MalformedReference
from effective_workflow.core.models import ReferencePath, Repository

DEFAULT_HOST = "github.com"

# git@github.com:owner/repo.git
SCP_REMOTE_PATTERN = re.compile(r'^(?:[\w.\-]+@)?([\w.\-]+):(?!//)(.+)$')


def parse_reference_path(value: str, host: str = DEFAULT_HOST) -> ReferencePath:
    """
    Splits an invocation string into repository, in-repo path and ref.

    The string must hold exactly one '@'. Everything before it is split on
    '/': the first two segments are owner and repo, the remainder is the path.
    """
    if "@" not in value:
        raise MalformedReference(value, "missing '@<ref>' suffix")
    if value.count("@") > 1:
        raise MalformedReference(value, "more than one '@' found")

    location, ref = value.split("@")
    if not ref:
        raise MalformedReference(value, "empty ref after '@'")

    segments = location.split("/")
    if len(segments) < 3:
        raise MalformedReference(value, "expected <owner>/<repo>/<path>")

    owner, name = segments[0], segments[1]
    if not owner or not name:
        raise MalformedReference(value, "empty owner or repository name")

    path = "/".join(segments[2:])
    if not path.strip("/"):
        raise MalformedReference(value, "empty workflow path")

    return ReferencePath(repository=Repository(owner=owner, name=name, host=host), path=path, ref=ref)


def parse_repository(value: str, default_host: str = DEFAULT_HOST) -> Repository:
    """Parses ``OWNER/REPO``, ``HOST/OWNER/REPO`` or a git remote URL."""
    spec = value.strip()
    if not spec:
        raise ConfigurationError("empty repository specifier")

    host: Optional[str] = None
    if "://" in spec:
        parsed = urlparse(spec)
        host = parsed.hostname
        path = parsed.path
    else:
        match = SCP_REMOTE_PATTERN.match(spec)
        if match:
            host, path = match.group(1), match.group(2)
        else:
            path = spec

    path = path.strip("/")
    if path.endswith(".git"):
        path = path[:-4]

    parts = path.split("/")
    if host is None and len(parts) == 3:
        host, parts = parts[0], parts[1:]

    if len(parts) != 2 or not all(parts):
        raise ConfigurationError(
            f"expected the \"[HOST/]OWNER/REPO\" format, got \"{value}\""
        )

    return Repository(owner=parts[0], name=parts[1], host=(host or default_host).lower())
