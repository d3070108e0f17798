"""
Rebrand a freshly generated purplestack Flutter project.

Usage:
    # First rename of a new project
    project-rename --name "Task Flow" --app-id com.acme.taskflow

    # With a description, version and launcher icons
    project-rename --name "Task Flow" --app-id com.acme.taskflow \\
        --description "Shared todo lists over Nostr" --version 1.0.0+1 \\
        --icon assets/icon.png --adaptive-foreground assets/fg.png \\
        --adaptive-background assets/bg.png

    # Rename again later: tell the tool what the current identity is
    project-rename --name "Task Flow Pro" --app-id com.acme.taskflowpro \\
        --old-name "Task Flow" --old-app-id com.acme.taskflow

    # See what would change without touching anything
    project-rename --name "Task Flow" --app-id com.acme.taskflow --dry-run
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from src.project_rename.config import DEFAULT_APP_ID, DEFAULT_APP_NAME, DEFAULT_VERSION, log_level
from src.project_rename.coordinator import (
    EXIT_RESTORE_FAILED,
    RenameCoordinator,
    RenameOutcome,
    RenameReport,
)
from src.project_rename.validation import RenameRequest


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="project-rename",
        description="Give a generated Flutter template its own name, app id, version and icons",
    )
    parser.add_argument("--name", type=str, required=True, help="New display name (required)")
    parser.add_argument(
        "--app-id",
        type=str,
        required=True,
        help="New reverse-domain app identifier, e.g. com.acme.taskflow (required)",
    )
    parser.add_argument("--description", type=str, help="pubspec.yaml description")
    parser.add_argument(
        "--version",
        type=str,
        help=f"pubspec.yaml version, MAJOR.MINOR.PATCH[+BUILD] (default: {DEFAULT_VERSION})",
    )
    parser.add_argument("--icon", type=str, help="Main launcher icon image")
    parser.add_argument("--adaptive-background", type=str, help="Android adaptive icon background layer")
    parser.add_argument("--adaptive-foreground", type=str, help="Android adaptive icon foreground layer")
    parser.add_argument("--adaptive-monochrome", type=str, help="Android adaptive icon monochrome layer")
    parser.add_argument("--notification-icon", type=str, help="Android notification icon")
    parser.add_argument(
        "--old-app-id",
        type=str,
        default=None,
        help=f"Current app identifier when renaming again (default: {DEFAULT_APP_ID})",
    )
    parser.add_argument(
        "--old-name",
        type=str,
        default=None,
        help=f"Current display name when renaming again (default: {DEFAULT_APP_NAME})",
    )
    parser.add_argument(
        "--project-root",
        type=str,
        default=".",
        help="Flutter project directory (default: current directory)",
    )
    parser.add_argument("--dry-run", action="store_true", help="Report changes without writing")
    parser.add_argument(
        "--skip-refresh",
        action="store_true",
        help="Don't run flutter clean / flutter pub get afterwards",
    )
    parser.add_argument("--json", action="store_true", help="Print the report as JSON")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def request_from_args(args: argparse.Namespace) -> RenameRequest:
    return RenameRequest(
        name=args.name,
        app_id=args.app_id,
        description=args.description,
        version=args.version,
        icon=args.icon,
        adaptive_background=args.adaptive_background,
        adaptive_foreground=args.adaptive_foreground,
        adaptive_monochrome=args.adaptive_monochrome,
        notification_icon=args.notification_icon,
        old_app_id=args.old_app_id,
        old_name=args.old_name,
    )


def format_summary(outcome: RenameOutcome) -> str:
    report = RenameReport.from_outcome(outcome)
    lines: list[str] = []
    if report.phase == "failed":
        lines.append(f"Rename failed while {report.failed_in}: {report.error}")
        if report.exit_code == EXIT_RESTORE_FAILED:
            lines.append("pubspec.yaml may be left modified; restore it before building.")
        return "\n".join(lines)

    prefix = "Dry run: " if report.dry_run else ""
    lines.append(
        f"{prefix}{report.name} ({report.app_id}), package {report.package_name}, "
        f"version {report.version}"
    )
    lines.append(
        f"Files: {report.files.visited} visited, {report.files.changed} changed, "
        f"{report.files.skipped} binary skipped, {report.files.failed} failed"
    )
    for item in report.relocated:
        lines.append(f"Moved {item}")
    if report.ambiguous_files:
        lines.append("Review these files, identifiers overlapped with other text:")
        lines.extend(f"  {p}" for p in report.ambiguous_files)
    if report.warnings:
        lines.append("Warnings:")
        lines.extend(f"  [{w.step}] {w.message}" for w in report.warnings)
    return "\n".join(lines)


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else log_level(),
        format="%(levelname)s %(name)s: %(message)s",
    )

    coordinator = RenameCoordinator(
        Path(args.project_root),
        dry_run=args.dry_run,
        skip_refresh=args.skip_refresh,
    )
    outcome = coordinator.run(request_from_args(args))

    if args.json:
        print(RenameReport.from_outcome(outcome).model_dump_json(indent=2))
    else:
        print(format_summary(outcome))
    return outcome.exit_code


if __name__ == "__main__":
    sys.exit(main())
