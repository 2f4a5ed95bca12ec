"""
Workflow Validation - Pre-flight checks before a workflow runs.

Validation produces blocking errors and non-blocking warnings. A result
is valid when it holds no errors.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Literal
from urllib.parse import urlparse

from prompt_canvas.core.graph import CODE_TYPE, Edge, Node, NodeKind


IssueType = Literal["error", "warning"]

VALID_IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg", ".avif")


@dataclass
class ValidationIssue:
    """A single validation finding."""
    type: IssueType
    message: str
    node_id: str | None = None
    details: str | None = None


@dataclass
class ValidationResult:
    """Outcome of validating a workflow or a node."""
    valid: bool
    errors: list[ValidationIssue] = field(default_factory=list)

    @classmethod
    def from_issues(cls, issues: list[ValidationIssue]) -> ValidationResult:
        return cls(valid=not any(i.type == "error" for i in issues), errors=issues)

    @property
    def blocking(self) -> list[ValidationIssue]:
        return [issue for issue in self.errors if issue.type == "error"]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [issue for issue in self.errors if issue.type == "warning"]


def _non_blank(value: object) -> bool:
    return isinstance(value, str) and bool(value.strip())


def is_valid_image_url(url: str | None) -> bool:
    """
    Check that an image URL is usable as a generation input.

    Accepts data URLs, local placeholder paths, storage bucket URLs, and
    http(s) URLs ending in an image extension.
    """
    if not url or not isinstance(url, str):
        return False

    if url.startswith("data:image/"):
        return len(url) > 50

    if url.startswith("/placeholders/") or url.startswith("/images/"):
        return True

    try:
        parsed = urlparse(url)
    except ValueError:
        return False

    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return False

    if "/storage/v1/object/" in parsed.path:
        return True

    return parsed.path.lower().endswith(VALID_IMAGE_EXTENSIONS)


def validate_image_node(node: Node) -> list[ValidationIssue]:
    """An image node used as an input must hold a valid image."""
    name = node.label or "Untitled"
    url = node.data.get("image_url")
    if not _non_blank(url):
        return [ValidationIssue(
            "error",
            f'Image node "{name}" has no image',
            node_id=node.id,
            details="Please upload an image before running the workflow",
        )]
    if not is_valid_image_url(url):
        return [ValidationIssue(
            "error",
            f'Image node "{name}" has an invalid image',
            node_id=node.id,
            details="The image URL or data is not valid",
        )]
    return []


def validate_prompt_node(node: Node) -> list[ValidationIssue]:
    """A generator needs a prompt and a model."""
    issues = []
    name = node.title or "Untitled"
    if not _non_blank(node.data.get("prompt")):
        issues.append(ValidationIssue(
            "error",
            f'Prompt node "{name}" has no prompt',
            node_id=node.id,
            details="Please enter a prompt before running",
        ))
    if not _non_blank(node.data.get("model")):
        issues.append(ValidationIssue(
            "error",
            f'Prompt node "{name}" has no model selected',
            node_id=node.id,
            details="Please select a model",
        ))
    return issues


def validate_code_node(node: Node) -> list[ValidationIssue]:
    """A code node used as an input must have content."""
    if _non_blank(node.data.get("content")):
        return []
    return [ValidationIssue(
        "error",
        f'Code node "{node.label or "Output"}" is empty',
        node_id=node.id,
        details="This code node is being used as input but has no content",
    )]


def has_path_to_output(node_id: str, nodes: list[Node], edges: list[Edge]) -> bool:
    """Check whether any downstream node is an image or code output."""
    by_id = {node.id: node for node in nodes}
    visited: set[str] = set()
    to_visit = [node_id]

    while to_visit:
        current = to_visit.pop()
        if current in visited:
            continue
        visited.add(current)
        for edge in edges:
            if edge.source != current:
                continue
            target = by_id.get(edge.target)
            if target and (target.kind is NodeKind.PASS_THROUGH_IMAGE or target.type_name == CODE_TYPE):
                return True
            to_visit.append(edge.target)

    return False


def detect_cycles(nodes: list[Node], edges: list[Edge]) -> list[list[str]]:
    """
    Find cycles in the raw edge graph.

    Returns each cycle found as a closed chain of node IDs.
    """
    outgoing: dict[str, list[str]] = {}
    for edge in edges:
        outgoing.setdefault(edge.source, []).append(edge.target)

    cycles: list[list[str]] = []
    visited: set[str] = set()

    for root in nodes:
        if root.id in visited:
            continue
        visited.add(root.id)
        path = [root.id]
        on_path = {root.id}
        stack = [iter(outgoing.get(root.id, ()))]

        while stack:
            for target in stack[-1]:
                if target in on_path:
                    cycles.append(path[path.index(target):] + [target])
                elif target not in visited:
                    visited.add(target)
                    path.append(target)
                    on_path.add(target)
                    stack.append(iter(outgoing.get(target, ())))
                    break
            else:
                stack.pop()
                on_path.discard(path.pop())

    return cycles


def validate_workflow(nodes: Iterable[Node], edges: Iterable[Edge]) -> ValidationResult:
    """
    Validate the whole workflow before running it.

    Cycles are reported on their own; node checks only run on an
    acyclic graph.
    """
    nodes = list(nodes)
    edges = list(edges)
    by_id = {node.id: node for node in nodes}

    cycles = detect_cycles(nodes, edges)
    if cycles:
        summary = (
            "1 circular dependency detected" if len(cycles) == 1
            else f"{len(cycles)} circular dependencies detected"
        )
        chains = [
            "Cycle: " + " → ".join(
                by_id[i].display_name(i) if i in by_id else i for i in cycle
            )
            for cycle in cycles
        ]
        return ValidationResult(
            valid=False,
            errors=[ValidationIssue("error", summary, details="; ".join(chains))],
        )

    issues: list[ValidationIssue] = []
    sources = {edge.source for edge in edges}

    for node in nodes:
        if node.kind is NodeKind.PASS_THROUGH_IMAGE:
            # Only images feeding something are inputs
            if node.id in sources:
                issues.extend(validate_image_node(node))
        elif node.is_generator:
            issues.extend(validate_prompt_node(node))
            if not has_path_to_output(node.id, nodes, edges):
                issues.append(ValidationIssue(
                    "warning",
                    f'Prompt node "{node.title or "Untitled"}" has no output',
                    node_id=node.id,
                    details="This node doesn't connect to any output (image or code node)",
                ))

    if not any(node.is_generator for node in nodes):
        issues.append(ValidationIssue(
            "error",
            "No prompt nodes in workflow",
            details="Add at least one prompt node to run the workflow",
        ))

    return ValidationResult.from_issues(issues)


def detect_language_from_prompt(prompt: str) -> str | None:
    """Guess the output language a prompt asks for."""
    lower = prompt.lower()
    if "typescript" in lower or "tsx" in lower or "react component" in lower:
        return "tsx"
    if "css" in lower or "stylesheet" in lower or "styling" in lower:
        return "css"
    if "json" in lower or "config" in lower:
        return "json"
    if "html" in lower:
        return "html"
    return None


def validate_node_for_execution(
    node_id: str,
    nodes: Iterable[Node],
    edges: Iterable[Edge],
) -> ValidationResult:
    """Validate a single generator and its direct inputs right before it runs."""
    nodes = list(nodes)
    edges = list(edges)
    by_id = {node.id: node for node in nodes}

    node = by_id.get(node_id)
    if node is None:
        return ValidationResult(
            valid=False,
            errors=[ValidationIssue("error", "Node not found", node_id=node_id)],
        )
    if not node.is_generator:
        return ValidationResult(valid=True)

    issues = validate_prompt_node(node)

    for edge in edges:
        if edge.target != node_id or edge.source not in by_id:
            continue
        source = by_id[edge.source]
        if source.kind is NodeKind.PASS_THROUGH_IMAGE:
            issues.extend(validate_image_node(source))
        elif source.type_name == CODE_TYPE:
            issues.extend(validate_code_node(source))

    if not has_path_to_output(node_id, nodes, edges):
        issues.append(ValidationIssue(
            "warning",
            f'Prompt node "{node.title or "Untitled"}" has no output',
            node_id=node_id,
            details="This node doesn't connect to any output (image or code node)",
        ))

    suggested = detect_language_from_prompt(node.prompt)
    for edge in edges:
        target = by_id.get(edge.target) if edge.source == node_id else None
        if target is None or target.type_name != CODE_TYPE:
            continue
        expected = target.data.get("language")
        if isinstance(expected, str) and suggested and expected != suggested:
            issues.append(ValidationIssue(
                "warning",
                f'Language mismatch for "{target.label or "Output"}"',
                node_id=target.id,
                details=f"Output expects {expected} but prompt suggests {suggested}",
            ))

    return ValidationResult.from_issues(issues)
