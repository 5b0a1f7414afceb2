#!/usr/bin/env python3
"""
EFFECTIVE WORKFLOW CLI
----------------------
Command-line frontend. Translates 'view <run-id>' into one call to the
resolver and hands the result to the presenter. No resolution logic
lives here.
"""

import argparse
import logging
import sys
from typing import Callable, List, Mapping, Optional

from rich.console import Console
from rich.panel import Panel

from effective_workflow.api.client import GitHubClient
from effective_workflow.cli.formatter import WorkflowPresenter
from effective_workflow.config import Settings, current_repository
from effective_workflow.core.errors import EffectiveWorkflowError
from effective_workflow.core.resolver import resolve_effective_workflow

VERSION = "1.0.0"

logger = logging.getLogger("effective_workflow.cli")

EXAMPLES = """\
examples:
  # View the effective workflow of a run in the current repository
  $ effective-workflow view 12345

  # View a run of another repository
  $ effective-workflow view 12345 --repo octocat/Hello-World
"""


class EffectiveWorkflowCLI:
    """
    CLI wrapper that turns command-line arguments into a resolver call
    and renders the result.
    """

    def __init__(self, console: Optional[Console] = None, error_console: Optional[Console] = None,
                 client_factory: Callable[..., GitHubClient] = GitHubClient,
                 environ: Optional[Mapping[str, str]] = None):
        self.console = console or Console()
        self.presenter = WorkflowPresenter(self.console, error_console or Console(stderr=True))
        self.client_factory = client_factory
        self.environ = environ
        self.parser = argparse.ArgumentParser(
            prog="effective-workflow",
            description="Display the effective workflow of a GitHub Actions run",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog=EXAMPLES,
        )
        self._setup_args()

    def _setup_args(self):
        self.parser.add_argument("-v", "--version", action="version", version=f"effective-workflow v{VERSION}")
        subparsers = self.parser.add_subparsers(dest="command", metavar="Command")

        view_parser = subparsers.add_parser("view", help="View the effective workflow file for a workflow run")
        view_parser.add_argument("run_id", nargs="?", metavar="run-id", help="ID of the workflow run")
        view_parser.add_argument("-R", "--repo", help="Select another repository using the [HOST/]OWNER/REPO format")
        view_parser.add_argument("--ref", help="Revision to read the run's top-level workflow at "
                                               "(default: the run's head branch)")
        view_parser.add_argument("--json", action="store_true", help="Print the result as JSON")
        view_parser.add_argument("--verbose", action="store_true", help="Enable debug logging")

    def print_header(self):
        self.console.print(Panel.fit(
            f"[bold cyan]effective-workflow v{VERSION}[/bold cyan]",
            border_style="cyan",
        ))

    def _configure_logging(self, settings: Settings, verbose: bool):
        level = logging.DEBUG if verbose else getattr(logging, settings.log_level, logging.WARNING)
        logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
        logging.getLogger("effective_workflow").setLevel(level)

    def _view(self, args: argparse.Namespace) -> int:
        if not args.run_id:
            self.parser.error("run ID required")

        settings = Settings.from_env(self.environ)
        self._configure_logging(settings, args.verbose)
        repository = current_repository(settings, override=args.repo)
        logger.debug(f"Resolving run {args.run_id} in {repository.full_name} on {repository.host}")

        with self.client_factory(host=repository.host, token=settings.token, timeout=settings.timeout) as client:
            result = resolve_effective_workflow(client, repository, args.run_id, ref=args.ref)

        if args.json:
            self.presenter.render_json(result)
        else:
            self.presenter.render_effective_workflow(result)
        return 0

    def run(self, argv: Optional[List[str]] = None) -> int:
        """Primary routing entry point. Returns the process exit status."""
        argv = sys.argv[1:] if argv is None else argv
        if not argv:
            self.print_header()
            self.parser.print_help()
            return 0

        args = self.parser.parse_args(argv)
        if args.command != "view":
            self.parser.print_help()
            return 0

        try:
            return self._view(args)
        except EffectiveWorkflowError as e:
            logger.debug("Resolution failed", exc_info=True)
            self.presenter.render_error(str(e), e.hint)
            return 1


def main(argv: Optional[List[str]] = None) -> int:
    """Application entry point with interrupt handling."""
    cli = EffectiveWorkflowCLI()
    try:
        return cli.run(argv)
    except KeyboardInterrupt:
        cli.console.print("\n[bold red]Terminated by user.[/bold red]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
