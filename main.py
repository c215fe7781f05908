"""
Burrow: module ecosystem manager

Primary entry point.  Installs a project and everything it depends on:

    python main.py install JSON-Fast
    python main.py install ./my-project --notests
    python main.py install git://example.org/foo.git
    python main.py install-deps-only ./my-project
    python main.py look JSON-Fast
    python main.py list
    python main.py update --catalog projects.json

Each missing dependency is fetched, built, tested and installed in
dependency order before the requested project itself.  Any failure
stops the run with a message naming the project and the stage that
failed, and a non-zero exit status.

# ---- Changelog ----
# [2026-10-18] Initial creation.
#   What: argparse CLI over burrow_core.orchestrator.Burrow, with Rich
#         output for announcements, errors and the project list.
#   Settings: Reads config.yaml (see config_schema.py) for every path
#         and timeout.  --verbose switches logging to DEBUG.
#   How:  Subcommands install / install-deps-only / look map directly
#         onto Action values; list and update talk to the Ecosystem
#         store only.  Exit code 1 on BurrowError, 130 on Ctrl-C.
# -------------------
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from burrow_core.errors import BurrowError
from burrow_core.orchestrator import Action, Burrow
from burrow_core.project import ProjectState
from config_schema import load_and_validate
from ecosystem.descriptor import DescriptorError

PIPELINE_COMMANDS = [a.value for a in Action]


def load_config(config_path: str = "config.yaml") -> Dict[str, Any]:
    """Load Burrow configuration from YAML with Pydantic validation."""
    return load_and_validate(config_path)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="burrow",
        description="Burrow: fetch, build, test and install projects with their dependencies",
    )
    parser.add_argument(
        "command",
        choices=PIPELINE_COMMANDS + ["list", "update"],
        help="Command to execute",
    )
    parser.add_argument(
        "refs",
        nargs="*",
        help="Project names, local directories (with a slash) or git URLs",
    )
    parser.add_argument(
        "--notests",
        action="store_true",
        help="Skip the test stage",
    )
    parser.add_argument(
        "--nodeps",
        action="store_true",
        help="Don't install missing dependencies first",
    )
    parser.add_argument(
        "--catalog",
        help="Catalog JSON file to load (for 'update' command)",
    )
    parser.add_argument(
        "--config", "-c",
        default="config.yaml",
        help="Path to config.yaml",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    return parser


def main(argv: Optional[List[str]] = None, console: Optional[Console] = None) -> int:
    """CLI entry point.  Returns the process exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(name)s %(levelname)s: %(message)s",
    )

    console = console or Console()
    config = load_config(args.config)
    burrow = Burrow.from_config(config, console=console)

    if args.command in PIPELINE_COMMANDS:
        if not args.refs:
            parser.error(f"{args.command} command requires at least one project")
        try:
            for ref in args.refs:
                burrow.resolve(
                    ref,
                    skip_deps=args.nodeps,
                    skip_tests=args.notests,
                    action=Action(args.command),
                )
        except BurrowError as e:
            console.print(f"[bold red]{escape(e.project)}[/] failed at stage [red]{e.stage.value}[/]: {escape(e.message)}")
            return 1
        except KeyboardInterrupt:
            console.print("[yellow]Interrupted[/]")
            return 130

    elif args.command == "list":
        _print_projects(burrow, console)

    elif args.command == "update":
        if not args.catalog:
            parser.error("update command requires --catalog")
        try:
            count = burrow.ecosystem.update_catalog(args.catalog)
        except DescriptorError as e:
            console.print(f"[bold red]Catalog update failed:[/] {escape(str(e))}")
            return 1
        console.print(f"Catalog updated: {count} projects")

    return 0


def _print_projects(burrow: Burrow, console: Console) -> None:
    """Print known projects and their state."""
    color_map = {
        ProjectState.INSTALLED: "green",
        ProjectState.INSTALLED_DEP: "cyan",
        ProjectState.ABSENT: "white",
    }

    table = Table(title="Burrow Ecosystem")
    table.add_column("Project", style="bold")
    table.add_column("Version")
    table.add_column("State")
    table.add_column("Depends on")

    for project in burrow.ecosystem.projects():
        state = burrow.ecosystem.get_state(project)
        table.add_row(
            project.name,
            project.version or "-",
            f"[{color_map[state]}]{state.value}[/]",
            ", ".join(project.dependencies) or "-",
        )

    console.print(table)


if __name__ == "__main__":
    sys.exit(main())
