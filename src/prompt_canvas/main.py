"""
Prompt Canvas - Main Entry Point

Command-line runner for saved canvas workspaces:

    prompt-canvas plan workflow.json
    prompt-canvas run workflow.json --save --output-dir out/
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from uuid import uuid4

from prompt_canvas.core.data_types import WorkflowImage
from prompt_canvas.core.dependencies import dependency_resolver
from prompt_canvas.core.errors import CycleDetectedError
from prompt_canvas.core.execution import RunOutcome, WorkflowRunner
from prompt_canvas.core.graph import NodeKind, WorkflowGraph
from prompt_canvas.core.levels import plan_execution
from prompt_canvas.core.node_execution import GenerationNodeExecutor
from prompt_canvas.core.notifications import LoggingNotifier, RecordingNotifier
from prompt_canvas.core.validation import validate_workflow
from prompt_canvas.core.workspace import load_workspace, save_workspace
from prompt_canvas.providers.http import HttpGenerationProvider
from prompt_canvas.settings import CanvasSettings, load_settings

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="prompt-canvas",
        description="Plan and run prompt canvas workflows.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    parser.add_argument("--settings", type=Path, default=None, help="path to settings.json")

    sub = parser.add_subparsers(dest="command", required=True)

    plan = sub.add_parser("plan", help="validate a workspace and print its execution levels")
    plan.add_argument("workspace", type=Path)

    run = sub.add_parser("run", help="run every prompt node of a workspace")
    run.add_argument("workspace", type=Path)
    run.add_argument("--save", action="store_true", help="write results back to the workspace file")
    run.add_argument("--output-dir", type=Path, default=None, help="write generated images here")

    return parser


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def cmd_plan(graph: WorkflowGraph, settings: CanvasSettings) -> int:
    """Print the level plan without executing anything."""
    snapshot = graph.snapshot()
    validation = validate_workflow(snapshot.nodes, snapshot.edges)
    for issue in validation.errors:
        print(f"{issue.type}: {issue.message}" + (f" ({issue.details})" if issue.details else ""))
    if not validation.valid:
        return 1

    by_id = snapshot.node_by_id()
    deps_of = dependency_resolver(snapshot, passthrough_depth=settings.passthrough_depth)
    try:
        plan = plan_execution(snapshot, deps_of)
    except CycleDetectedError as e:
        print(str(e))
        return 1

    for level in plan.levels:
        names = ", ".join(by_id[node.id].display_name(node.id) for node in level.nodes)
        print(f"level {level.level}: {names}")
    return 0


def cmd_run(
    graph: WorkflowGraph,
    settings: CanvasSettings,
    workspace: Path,
    save: bool,
    output_dir: Path | None,
) -> int:
    """Run the workflow against the configured provider."""
    notifier = RecordingNotifier(forward_to=LoggingNotifier())
    provider = HttpGenerationProvider(settings.provider)
    executor = GenerationNodeExecutor(
        graph, provider, notifier=notifier, session_id=str(uuid4()),
    )
    runner = WorkflowRunner(
        graph,
        executor,
        notifier=notifier,
        passthrough_depth=settings.passthrough_depth,
    )

    outcome = asyncio.run(runner.run_workflow())
    print(format_outcome(outcome))

    if save:
        save_workspace(graph, workspace)
        logger.info("Saved workspace to %s", workspace)
    if output_dir is not None:
        for path in export_images(graph, output_dir):
            print(f"wrote {path}")

    return 0 if outcome.succeeded else 1


def format_outcome(outcome: RunOutcome) -> str:
    line = f"{outcome.status.value}: {outcome.completed} of {outcome.total} nodes completed"
    if outcome.failed_node_title:
        line += f'; failed at "{outcome.failed_node_title}": {outcome.failure}'
    elif outcome.failure:
        line += f"; {outcome.failure}"
    if outcome.errors:
        line += "; " + "; ".join(outcome.errors)
    if outcome.cycle:
        line += "; cycle: " + " → ".join(outcome.cycle)
    return line


def export_images(graph: WorkflowGraph, output_dir: Path) -> list[Path]:
    """Write every data-URL image held by an image node to `output_dir`."""
    output_dir.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    for node in graph.nodes.values():
        url = node.data.get("image_url")
        if node.kind is not NodeKind.PASS_THROUGH_IMAGE or not url:
            continue
        image = WorkflowImage.from_url(url)
        if not image.is_data_url:
            continue
        try:
            pil_img = image.to_pil()
        except (ValueError, OSError) as e:
            logger.warning("Skipping image for node %s: %s", node.id, e)
            continue
        path = output_dir / f"{node.id}.png"
        pil_img.save(path, format="PNG")
        written.append(path)
    return written


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for Prompt Canvas.

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    if sys.version_info < (3, 11):
        print("Error: Prompt Canvas requires Python 3.11 or later")
        return 1

    args = build_parser().parse_args(argv)
    settings = load_settings(args.settings)
    configure_logging("DEBUG" if args.verbose else settings.log_level)

    try:
        graph = load_workspace(args.workspace)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}")
        return 1

    if args.command == "plan":
        return cmd_plan(graph, settings)
    return cmd_run(graph, settings, args.workspace, args.save, args.output_dir)


if __name__ == "__main__":
    sys.exit(main())
