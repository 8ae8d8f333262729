"""
Provision CLI: Command-line interface over the context/service model.

Provides commands for:
- list: Show known contexts
- save: Create or update a context record
- services: Check service requirements, or list servers and their services
- verify: Verify contexts against real infrastructure
- status: Show configuration and record counts

Exit codes: 0 on success, 1 on any validation, requirement or
verification failure.
"""

from __future__ import annotations

import argparse
import logging
import sys
import tomllib
from collections import Counter
from pathlib import Path
from typing import Any

import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from provision.config import ProvisionConfig, deep_merge
from provision.context.base import ContextTypeRegistry
from provision.errors import ProvisionError, StoreError
from provision.registry import ContextRegistry
from provision.requirements import RequirementResolver
from provision.store.base import make_record_id
from provision.verification import LocalVerifier, verify_all

console = Console()
err_console = Console(stderr=True)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="provision",
        description="Provision: manage servers, platforms and sites",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--config-path",
        help="Base directory for provision data (overrides .provision.toml)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # list
    list_parser = subparsers.add_parser("list", help="List contexts")
    list_parser.add_argument(
        "--type", "-t",
        dest="context_type",
        help="Only list contexts of this type",
    )

    # save
    save_parser = subparsers.add_parser("save", help="Create or update a context")
    save_parser.add_argument("context_type", help="Context type (server, platform, site)")
    save_parser.add_argument("name", help="Context name")
    save_parser.add_argument(
        "--option", "-o",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Config value; dotted keys set nested fields (services.http.type=apache)",
    )
    save_parser.add_argument(
        "--replace",
        action="store_true",
        help="Replace the existing record instead of merging into it",
    )

    # services
    services_parser = subparsers.add_parser(
        "services",
        help="Check service requirements for a context type",
    )
    services_parser.add_argument(
        "context_type",
        nargs="?",
        help="Context type to check; omit to list servers and their services",
    )

    # verify
    verify_parser = subparsers.add_parser("verify", help="Verify contexts")
    verify_parser.add_argument("names", nargs="*", help="Contexts to verify (default: all)")
    verify_parser.add_argument(
        "--workers", "-w",
        type=int,
        help="Verify this many contexts in parallel",
    )

    # status
    subparsers.add_parser("status", help="Show configuration and record counts")

    args = parser.parse_args(argv)

    # Setup logging
    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    handlers = {
        "list": handle_list,
        "save": handle_save,
        "services": handle_services,
        "verify": handle_verify,
        "status": handle_status,
    }
    handler = handlers.get(args.command)
    if handler is None:
        parser.print_help()
        return 0

    try:
        config = ProvisionConfig.load()
        if args.config_path:
            config = ProvisionConfig(
                config_path=Path(args.config_path).expanduser(),
                max_workers=config.max_workers,
                check_timeout=config.check_timeout,
                source=config.source,
            )
        return handler(args, config)
    except (ProvisionError, tomllib.TOMLDecodeError) as e:
        err_console.print(f"[red]Error:[/red] {escape(str(e))}")
        return 1


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def parse_options(options: list[str]) -> dict[str, Any]:
    """
    Turn ``KEY=VALUE`` strings into a nested config mapping.

    Values are parsed as YAML scalars, so ``80`` becomes an int and
    ``true`` a bool. Dotted keys build nested mappings.

    Raises:
        ProvisionError: If an option has no ``=``.
    """
    result: dict[str, Any] = {}
    for option in options:
        key, sep, raw_value = option.partition("=")
        if not sep or not key:
            raise ProvisionError(f"Invalid option {option!r}: expected KEY=VALUE")
        try:
            value = yaml.safe_load(raw_value) if raw_value else None
        except yaml.YAMLError:
            value = raw_value
        target = result
        *parents, leaf = key.split(".")
        for part in parents:
            target = target.setdefault(part, {})
            if not isinstance(target, dict):
                raise ProvisionError(f"Option {option!r} conflicts with {part!r}")
        target[leaf] = value
    return result


def _describe(context: Any) -> str:
    if context.role == "provider":
        return ", ".join(
            f"{stype}: {svc.implementation}" for stype, svc in context.services.items()
        ) or "no services"
    return ", ".join(f"{field} → {target}" for field, target in context.references.items())


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def handle_list(args: argparse.Namespace, config: ProvisionConfig) -> int:
    """List contexts, optionally of one type."""
    registry = ContextRegistry.from_config(config)
    if args.context_type:
        contexts = registry.get_all_of_type(args.context_type)
    else:
        contexts = dict(registry.contexts)

    for warning in registry.warnings:
        err_console.print(f"[yellow]Warning:[/yellow] {escape(str(warning))}")

    if not contexts:
        console.print("No contexts found. Use `provision save` to create one.")
        return 0

    table = Table(title="Contexts")
    table.add_column("Name", style="bold")
    table.add_column("Type")
    table.add_column("Details")
    for name, context in sorted(contexts.items()):
        table.add_row(escape(name), context.type, escape(_describe(context)))
    console.print(table)
    return 0


def handle_save(args: argparse.Namespace, config: ProvisionConfig) -> int:
    """Create or update a context record."""
    registry = ContextRegistry.from_config(config)
    record_id = make_record_id(args.context_type, args.name)

    existing = registry.contexts.get(args.name)
    if existing is not None and existing.type != args.context_type:
        err_console.print(
            f"[red]Error:[/red] a {existing.type} named {args.name!r} already exists"
        )
        return 1

    raw: dict[str, Any] = {}
    if existing is not None and not args.replace:
        raw = existing.to_record()
    raw = deep_merge(raw, parse_options(args.option))

    context = registry.create(args.context_type, args.name, raw)
    for notice in context.notices:
        err_console.print(f"[yellow]Notice:[/yellow] {escape(str(notice))}")

    resolver = RequirementResolver(registry)
    for service_type in resolver.unmet(args.context_type):
        err_console.print(
            f"[yellow]Warning:[/yellow] no server provides {service_type!r}; "
            f"the {args.context_type} cannot be provisioned yet"
        )

    registry.save(context)
    console.print(f"Saved [bold]{record_id}[/bold]")
    return 0


def handle_services(args: argparse.Namespace, config: ProvisionConfig) -> int:
    """Check service requirements or list server services."""
    registry = ContextRegistry.from_config(config)

    if not args.context_type:
        options = registry.server_options()
        if not options:
            console.print("No server contexts found. Use `provision save` to create one.")
            return 0
        table = Table(title="Servers")
        table.add_column("Server", style="bold")
        table.add_column("Services")
        for name, label in sorted(options.items()):
            table.add_row(name, label.split(": ", 1)[1])
        console.print(table)
        return 0

    resolver = RequirementResolver(registry)
    results = resolver.check_requirements(args.context_type)

    table = Table(title=f"Service requirements: {args.context_type}")
    table.add_column("Service", style="bold")
    table.add_column("Available")
    table.add_column("Providers")
    for service_type, met in results.items():
        providers = ", ".join(resolver.providers_for(service_type)) or "-"
        table.add_row(service_type, "[green]yes[/green]" if met else "[red]no[/red]", providers)
    console.print(table)

    unmet = [service_type for service_type, met in results.items() if not met]
    for service_type in unmet:
        err_console.print(
            f"Cannot provision a {args.context_type}: no server provides {service_type!r}"
        )
    return 1 if unmet else 0


def handle_verify(args: argparse.Namespace, config: ProvisionConfig) -> int:
    """Verify contexts and report every failure."""
    registry = ContextRegistry.from_config(config)
    if args.names:
        contexts = [registry.get_by_name(name) for name in args.names]
    else:
        contexts = list(registry.contexts.values())

    if not contexts:
        console.print("No contexts to verify.")
        return 0

    results = verify_all(
        contexts,
        verifier=LocalVerifier(timeout=config.check_timeout),
        max_workers=args.workers or config.max_workers,
    )

    table = Table(title="Verification")
    table.add_column("Context", style="bold")
    table.add_column("Type")
    table.add_column("Result")
    for name, result in results.items():
        status = "[green]verified[/green]" if result.ok else "[red]failed[/red]"
        table.add_row(name, result.context_type, status)
    console.print(table)

    failed = False
    for name, result in results.items():
        for failure in result.failures:
            failed = True
            err_console.print(escape(f"{name}: {failure}"))
    return 1 if failed else 0


def handle_status(args: argparse.Namespace, config: ProvisionConfig) -> int:
    """Show configuration and record counts."""
    console.print(f"Config file:   {config.source or '(none, using defaults)'}")
    console.print(f"Records path:  {config.records_path}")
    console.print(f"Context types: {', '.join(ContextTypeRegistry.types())}")

    registry = ContextRegistry.from_config(config)
    try:
        record_ids = registry.store.list("*.*")
    except StoreError as e:
        err_console.print(f"[red]Error:[/red] {escape(str(e))}")
        return 1

    counts = Counter(record_id.split(".", 1)[0] for record_id in record_ids)
    if not counts:
        console.print("Records:       none")
    for context_type, count in sorted(counts.items()):
        console.print(f"  {context_type}: {count}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
