#!/usr/bin/env python3
"""Command-line access to the reconciliation engine.

Usage:
    ipam-reconcile create --appliance sds-prod --type dns_rr \\
        --set server=ns1.example.com --set name=www.example.com --set type=A --set value=10.0.0.1
    ipam-reconcile read   --appliance sds-prod --type dns_rr --id 123 --set name=www.example.com ...
    ipam-reconcile update --appliance sds-prod --type dns_rr --id 123 --set ... [--current ...]
    ipam-reconcile delete --appliance sds-prod --type dns_rr --id 123
    ipam-reconcile plan   --type dns_rr --id 123 --current ... --set ...

The result is printed as JSON on stdout.

Environment:
    SOLIDSERVER_PASSWORD        Appliance credentials (or per-appliance password_env)
    IPAM_RECONCILER_CONFIG      Path to appliances.yaml
"""
import argparse
import asyncio
import json
import logging
import sys
from typing import Optional

from .config.inventory import ApplianceInventory
from .errors import ReconcileError
from .reconcile import ENTITY_TYPES, ReconciliationEngine, ResourceState
from .reconcile.diff import DiffEngine
from .reconcile.entities import get_descriptor
from .utils.audit_log import ChangeTracker, setup_audit_logging
from .utils.logging_config import setup_logging

logger = logging.getLogger(__name__)

COMMANDS = ("create", "read", "update", "delete", "plan")


def parse_assignments(items: Optional[list[str]]) -> dict[str, str]:
    """Turn ["key=value", ...] into a dict."""
    result: dict[str, str] = {}
    for item in items or []:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"Expected key=value, got '{item}'")
        result[key.strip()] = value
    return result


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ipam-reconcile",
        description="Create, read, update or delete one object on an IPAM/DNS appliance",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"Entity types: {', '.join(sorted(ENTITY_TYPES))}",
    )
    parser.add_argument("command", choices=COMMANDS)
    parser.add_argument(
        "--type", dest="entity_type", required=True, choices=sorted(ENTITY_TYPES),
        help="Entity type",
    )
    parser.add_argument("--appliance", help="Appliance ID from the inventory")
    parser.add_argument("--config", help="Path to appliances.yaml")
    parser.add_argument("--id", default="", help="Appliance identifier of the object")
    parser.add_argument(
        "--set", action="append", metavar="KEY=VALUE",
        help="Configuration field (repeatable)",
    )
    parser.add_argument(
        "--current", action="append", metavar="KEY=VALUE",
        help="Currently known configuration, for update and plan (repeatable)",
    )
    parser.add_argument("--audit-dir", help="Directory for the audit log")
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return parser


async def run(args: argparse.Namespace) -> dict:
    """Execute one command and return its JSON-serializable result."""
    desired = parse_assignments(args.set)
    current = parse_assignments(args.current)

    if args.command == "plan":
        descriptor = get_descriptor(args.entity_type)
        state = ResourceState(args.entity_type, current, id=args.id)
        return DiffEngine().calculate(descriptor, state, desired).to_dict()

    if not args.appliance:
        raise ValueError(f"{args.command} requires --appliance")

    inventory = ApplianceInventory(args.config)
    client = inventory.get_client(args.appliance)
    engine = ReconciliationEngine(client, audit=ChangeTracker(args.appliance))

    try:
        if args.command == "create":
            state = ResourceState(args.entity_type, desired)
            outcome = await engine.create(state)
        elif args.command == "read":
            state = ResourceState(args.entity_type, desired, id=args.id)
            outcome = await engine.read(state)
        elif args.command == "update":
            state = ResourceState(args.entity_type, current or desired, id=args.id)
            outcome = await engine.update(state, desired)
        else:
            state = ResourceState(args.entity_type, desired, id=args.id)
            outcome = await engine.delete(state)
    finally:
        await inventory.close_all()

    return {"outcome": outcome.to_dict(), "state": state.to_dict()}


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for the CLI."""
    args = build_parser().parse_args(argv)

    setup_logging()
    if args.command != "plan":
        setup_audit_logging(args.audit_dir)
    if args.verbose:
        logging.getLogger("ipam_reconciler").handlers[0].setLevel(logging.DEBUG)

    try:
        result = asyncio.run(run(args))
    except (ReconcileError, ValueError, KeyError, FileNotFoundError) as e:
        logger.error(f"{args.command} failed: {e}")
        print(json.dumps({"error": str(e)}, indent=2))
        return 1

    print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
