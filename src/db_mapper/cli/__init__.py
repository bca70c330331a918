"""CLI module for profile listing and record/table checks.

Usage:
    db-mapper profiles
    DB_MAPPER_PROFILE=local db-mapper check --models app.models
    db-mapper check --models app.models --profile prod
    db-mapper truncate --models tests.fixtures.models --profile local --confirm

Commands:
    profiles  - List available profiles
    check     - Validate record types in a module against the live schema
    truncate  - Delete all rows from the tables of a module's record types
"""

import argparse
import asyncio
import dataclasses
import importlib
import inspect
import sys

from rich.console import Console
from rich.table import Table

from db_mapper.config.loader import load_db_config
from db_mapper.config.settings import get_settings
from db_mapper.errors import ConfigurationError
from db_mapper.factory import ProfileNotFoundError, connect_and_validate, get_orm
from db_mapper.mapping.descriptor import describe
from db_mapper.utils.logging import configure_logging

console = Console()


# ============================================================================
# Record discovery (CLI-internal helper)
# ============================================================================


def _load_record_types(module_name: str) -> list[type]:
    """Import *module_name* and collect the record types it defines.

    A record type is a non-frozen dataclass defined in that module (not
    imported into it) that declares a primary key.

    Raises:
        ModuleNotFoundError: If the module cannot be imported.
        ConfigurationError: If a dataclass in the module is malformed.
    """
    module = importlib.import_module(module_name)
    records: list[type] = []
    for _, obj in inspect.getmembers(module, inspect.isclass):
        if obj.__module__ != module.__name__ or not dataclasses.is_dataclass(obj):
            continue
        if obj.__dataclass_params__.frozen:
            continue
        if describe(obj).primary_key is not None:
            records.append(obj)
    return records


# ============================================================================
# Async command implementations
# ============================================================================


async def _async_check(args: argparse.Namespace) -> int:
    """Async implementation for check command.

    Args:
        args: Parsed arguments with models, profile and database_url.

    Returns:
        0 when every record field has a column, 1 otherwise.
    """
    try:
        record_types = _load_record_types(args.models)
    except (ModuleNotFoundError, ConfigurationError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    if not record_types:
        console.print(f"[yellow]No record types found in {args.models}.[/yellow]")
        return 1

    names = ", ".join(describe(cls).table for cls in record_types)
    console.print(f"Checking tables: [cyan]{names}[/cyan]", style="dim")

    result = await connect_and_validate(
        profile_name=args.profile,
        record_types=record_types,
        database_url=args.database_url,
    )

    if result.success:
        console.print()
        console.print("[bold green]v[/bold green] All record fields have a column")
        return 0
    else:
        console.print()
        console.print(f"[bold red]x[/bold red] {result.error}")
        if result.schema_report:
            console.print(result.schema_report.format_report())
        return 1


async def _async_truncate(args: argparse.Namespace) -> int:
    """Async implementation for truncate command.

    Args:
        args: Parsed arguments with models, profile, database_url and confirm.

    Returns:
        0 on success, 1 on failure or missing ``--confirm``.
    """
    try:
        record_types = _load_record_types(args.models)
    except (ModuleNotFoundError, ConfigurationError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    tables = [describe(cls).table for cls in record_types]
    if not tables:
        console.print(f"[yellow]No record types found in {args.models}.[/yellow]")
        return 1

    if not args.confirm:
        console.print(f"[yellow]Would truncate:[/yellow] {', '.join(tables)}")
        console.print("[dim]Re-run with[/dim] [cyan]--confirm[/cyan] [dim]to delete all rows.[/dim]")
        return 1

    try:
        orm = get_orm(profile_name=args.profile, database_url=args.database_url)
    except (ProfileNotFoundError, FileNotFoundError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    try:
        for cls in record_types:
            orm.add_table(cls)
        await orm.truncate_tables()
    finally:
        await orm.close()

    for table in tables:
        console.print(f"[bold green]v[/bold green] Truncated [cyan]{table}[/cyan]")
    return 0


# ============================================================================
# Command handlers
# ============================================================================


def cmd_profiles(args: argparse.Namespace) -> int:
    """List available profiles from db.toml.

    Reads only local TOML config -- no database calls.

    Args:
        args: Parsed CLI arguments.

    Returns:
        0 on success, 1 if db.toml not found.
    """
    settings = get_settings()
    try:
        config = load_db_config(settings.config_file)
    except FileNotFoundError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    current = args.profile or settings.profile

    table = Table(
        title="Database Profiles", show_header=True, header_style="bold"
    )
    table.add_column("", width=2)
    table.add_column("Profile")
    table.add_column("Pool (open/idle)")
    table.add_column("Description")

    for name, profile in config.profiles.items():
        marker = "[bold green]*[/bold green]" if name == current else " "
        name_style = "bold cyan" if name == current else ""
        table.add_row(
            marker,
            f"[{name_style}]{name}[/{name_style}]" if name_style else name,
            f"{profile.max_open}/{profile.max_idle}",
            profile.description or "",
        )

    console.print(table)

    if current:
        console.print(f"\n[bold green]*[/bold green] = current profile")

    return 0


def cmd_check(args: argparse.Namespace) -> int:
    """Validate record types against the live schema.

    Wraps the async implementation with ``asyncio.run()``.
    """
    return asyncio.run(_async_check(args))


def cmd_truncate(args: argparse.Namespace) -> int:
    """Truncate the tables of a module's record types.

    Wraps the async implementation with ``asyncio.run()``.
    """
    return asyncio.run(_async_truncate(args))


def _add_target_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--models",
        required=True,
        help="Dotted module path containing record dataclasses (e.g., app.models)",
    )
    parser.add_argument(
        "--database-url",
        default=None,
        help="Connect to this URL instead of a profile",
    )


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Parses command line arguments and dispatches to appropriate handler.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    settings = get_settings()

    parser = argparse.ArgumentParser(
        prog="db-mapper",
        description="Record mapping toolkit: profiles and table checks",
    )
    parser.add_argument(
        "--profile",
        "-p",
        default=None,
        help="Profile name from db.toml (default: DB_MAPPER_PROFILE)",
    )
    parser.add_argument(
        "--log-level",
        default=settings.log_level,
        help="Logging level (default: DB_MAPPER_LOG_LEVEL or INFO)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        default=settings.json_logs,
        help="Emit logs as JSON",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # profiles command
    p_profiles = subparsers.add_parser(
        "profiles",
        help="List available profiles",
    )
    p_profiles.set_defaults(func=cmd_profiles)

    # check command
    p_check = subparsers.add_parser(
        "check",
        help="Validate record types against the live schema",
    )
    _add_target_arguments(p_check)
    p_check.set_defaults(func=cmd_check)

    # truncate command
    p_truncate = subparsers.add_parser(
        "truncate",
        help="Delete all rows from the record types' tables",
    )
    _add_target_arguments(p_truncate)
    p_truncate.add_argument(
        "--confirm",
        action="store_true",
        help="Actually delete the rows",
    )
    p_truncate.set_defaults(func=cmd_truncate)

    args = parser.parse_args(argv)
    configure_logging(level=args.log_level, json_logs=args.json_logs)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
