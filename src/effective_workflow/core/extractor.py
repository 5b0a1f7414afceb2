#!/usr/bin/env python3
"""
EFFECTIVE WORKFLOW EXTRACTOR - Call Site Locator
------------------------------------------------
Finds the 'uses' declaration of every job in a workflow document and pins
it to the exact source line it was written on.

The document is composed (not constructed) with ruamel.yaml so every node
keeps its start mark. Marks are 0-based; the line number reported here is
1-based and indexes into split_lines(text). The YAML 1.2 reader only
advances its line counter on '\\n' and a lone '\\r', so split_lines breaks
on those and nothing else: NEL, LS and PS stay inside their line.

Composing hands an alias back as the anchored node and never applies merge
keys, so both are handled here: an aliased 'uses' is rejected, merged
mappings are searched after the job's own keys.
"""

import logging
import re
from typing import List, Optional, Tuple

from ruamel.yaml import YAML, YAMLError
from ruamel.yaml.nodes import MappingNode, Node, ScalarNode, SequenceNode

from effective_workflow.core.errors import UnexpectedNodeType, WorkflowParseFailed
from effective_workflow.core.models import Reference, UsesDeclaration, UsesKind

logger = logging.getLogger("effective_workflow.extractor")

STR_TAG = "tag:yaml.org,2002:str"
NULL_TAG = "tag:yaml.org,2002:null"
MERGE_TAG = "tag:yaml.org,2002:merge"

# Reader.forward (YAML 1.2) counts these, and only these
LINE_BREAK_PATTERN = re.compile(r'\r\n|[\r\n]')


def split_lines(text: str) -> List[str]:
    """Splits text into the lines a YAML parser numbers."""
    return LINE_BREAK_PATTERN.split(text)


def _position(node: Node) -> Tuple[int, int]:
    return node.start_mark.line, node.start_mark.column


def is_alias(key_node: Node, value_node: Node) -> bool:
    """
    True when value_node was reached through an alias ('*name').
    The composer hands back the anchored node itself, which always sits
    earlier in the document than the key it is aliased under.
    """
    return _position(value_node) < _position(key_node)


def node_kind(node: Node) -> str:
    """Human readable kind of a composed node (e.g. 'mapping', 'scalar (!!int)')."""
    if isinstance(node, MappingNode):
        return "mapping"
    if isinstance(node, SequenceNode):
        return "sequence"
    if isinstance(node, ScalarNode):
        tag = node.tag or ""
        short = tag.replace("tag:yaml.org,2002:", "!!") if tag else "untagged"
        return f"scalar ({short})"
    return type(node).__name__


def classify_uses(node: Optional[Node], key_node: Optional[Node] = None) -> UsesDeclaration:
    """Turns the raw 'uses' node of a job into the tagged UsesDeclaration variant."""
    if node is None:
        return UsesDeclaration(kind=UsesKind.ABSENT)

    if key_node is not None and is_alias(key_node, node):
        return UsesDeclaration(kind=UsesKind.OTHER, line_number=key_node.start_mark.line + 1, node_kind="alias")

    line_number = node.start_mark.line + 1 if node.start_mark is not None else None

    if isinstance(node, ScalarNode):
        if node.tag == NULL_TAG:
            return UsesDeclaration(kind=UsesKind.ABSENT)
        if node.tag == STR_TAG:
            return UsesDeclaration(kind=UsesKind.SCALAR, value=node.value, line_number=line_number)

    return UsesDeclaration(kind=UsesKind.OTHER, line_number=line_number, node_kind=node_kind(node))


def _mapping_lookup(node: MappingNode, key: str, filename: str) -> Optional[Tuple[Node, Node]]:
    """
    Finds (key node, value node) for ``key`` the way a loader would see it:
    explicit keys first, then each '<<' source in order. A key defined twice
    in the same mapping is an error.
    """
    found = None
    merged = []
    for key_node, value_node in node.value:
        if key_node.tag == MERGE_TAG:
            merged.append(value_node)
        elif isinstance(key_node, ScalarNode) and key_node.value == key:
            if found is not None:
                raise WorkflowParseFailed(
                    filename, f"mapping key '{key}' already defined at line {found[0].start_mark.line + 1}",
                    key_node.start_mark.line + 1)
            found = (key_node, value_node)
    if found is not None:
        return found

    for value_node in merged:
        sources = value_node.value if isinstance(value_node, SequenceNode) else [value_node]
        for source in sources:
            if not isinstance(source, MappingNode):
                raise WorkflowParseFailed(filename, f"expected a mapping to merge, found {node_kind(source)}",
                                          source.start_mark.line + 1)
            hit = _mapping_lookup(source, key, filename)
            if hit is not None:
                return hit
    return None


def _mapping_get(node: MappingNode, key: str, filename: str) -> Optional[Node]:
    hit = _mapping_lookup(node, key, filename)
    return hit[1] if hit is not None else None


class ReferenceExtractor:
    """
    Pulls (invocation string, Reference) pairs out of workflow documents.
    Holds nothing between calls, so one instance can scan any number of files.
    """

    def __init__(self):
        self.yaml = YAML(typ='rt')

    def _compose(self, yaml_text: str, filename: str) -> Optional[Node]:
        try:
            return self.yaml.compose(yaml_text)
        except YAMLError as e:
            mark = getattr(e, 'problem_mark', None) or getattr(e, 'context_mark', None)
            line = mark.line + 1 if mark is not None else None
            raise WorkflowParseFailed(filename, str(e), line) from e

    def iter_uses(self, yaml_text: str, filename: str) -> List[Tuple[str, UsesDeclaration]]:
        """
        Classifies the 'uses' field of every job, in document order.
        Returns (job id, declaration) pairs; raises WorkflowParseFailed when
        the document is not a mapping with a 'jobs' mapping.
        """
        root = self._compose(yaml_text, filename)
        if root is None:
            return []
        if not isinstance(root, MappingNode):
            raise WorkflowParseFailed(filename, f"expected a mapping at the top level, found {node_kind(root)}",
                                      root.start_mark.line + 1)

        jobs = _mapping_get(root, "jobs", filename)
        if jobs is None or (isinstance(jobs, ScalarNode) and jobs.tag == NULL_TAG):
            return []
        if not isinstance(jobs, MappingNode):
            raise WorkflowParseFailed(filename, f"expected 'jobs' to be a mapping, found {node_kind(jobs)}",
                                      jobs.start_mark.line + 1)

        declarations = []
        for key_node, job_node in jobs.value:
            if key_node.tag == MERGE_TAG:
                continue
            job_id = str(key_node.value)

            if isinstance(job_node, ScalarNode) and job_node.tag == NULL_TAG:
                declarations.append((job_id, UsesDeclaration(kind=UsesKind.ABSENT)))
                continue
            if not isinstance(job_node, MappingNode):
                raise WorkflowParseFailed(
                    filename, f"expected job '{job_id}' to be a mapping, found {node_kind(job_node)}",
                    job_node.start_mark.line + 1)

            key, value = _mapping_lookup(job_node, "uses", filename) or (None, None)
            declarations.append((job_id, classify_uses(value, key)))
        return declarations

    def extract(self, yaml_text: str, filename: str) -> List[Tuple[str, Reference]]:
        """Returns (invocation string, Reference) for every job that calls a workflow."""
        lines = None
        results = []

        for job_id, uses in self.iter_uses(yaml_text, filename):
            if uses.kind is UsesKind.ABSENT:
                continue
            if uses.kind is UsesKind.OTHER:
                raise UnexpectedNodeType(filename, job_id, uses.node_kind, uses.line_number)

            if lines is None:
                lines = split_lines(yaml_text)
            reference = Reference(
                source_filename=filename,
                source_line=lines[uses.line_number - 1],
                source_line_number=uses.line_number,
            )
            logger.debug(f"{filename}:{uses.line_number} job '{job_id}' uses {uses.value}")
            results.append((uses.value, reference))

        return results


def extract_references(yaml_text: str, filename: str) -> List[Tuple[str, Reference]]:
    """Module-level shortcut for ReferenceExtractor().extract()."""
    return ReferenceExtractor().extract(yaml_text, filename)
