"""CLI entrypoint for the gateway.

Commands: run the HTTP server, create the schema, and inspect a stored workflow.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

import uvicorn
from pydantic import ValidationError

from shieldgate import __version__
from shieldgate.actions.factory import ActionProviderFactory
from shieldgate.gateway.config import ShieldGateSettings
from shieldgate.gateway.errors import NotFound
from shieldgate.gateway.logging import configure_logging
from shieldgate.gateway.storage.database import Database
from shieldgate.gateway.workflow.service import WorkflowService
from shieldgate.gateway.workflow.store import WorkflowStore
from shieldgate.server.app import create_app
from shieldgate.server.models import ApiWorkflowWithSteps
from shieldgate.shield.validator import create_validator

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="shieldgate",
        description="Idempotent workflow gateway for yield actions",
    )
    parser.add_argument("--version", action="version", version=f"shieldgate {__version__}")

    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=None, help="Bind address (defaults to HOST)")
    serve.add_argument("--port", type=int, default=None, help="Bind port (defaults to PORT)")

    subparsers.add_parser("init-db", help="Create the database schema if it does not exist")

    show = subparsers.add_parser("show-workflow", help="Print a stored workflow as JSON")
    show.add_argument("workflow_id", help="Workflow id")
    show.add_argument(
        "--include-signed",
        action="store_true",
        help="Include signed payloads for signed steps",
    )
    show.add_argument(
        "--events",
        action="store_true",
        help="Include the workflow's audit trail",
    )

    return parser


def _show_workflow(settings: ShieldGateSettings, args: argparse.Namespace) -> int:
    database = Database.from_url(settings.database_url)
    try:
        service = WorkflowService(
            store=WorkflowStore(database),
            action_provider=ActionProviderFactory.create(settings),
            validator=create_validator(settings),
        )
        try:
            found = service.get_workflow(
                args.workflow_id, include_signed_payload=args.include_signed
            )
        except NotFound as e:
            print(e.message, file=sys.stderr)
            return 4

        output = ApiWorkflowWithSteps.from_record(found).to_json()
        if args.events:
            output["events"] = [
                {
                    "id": event.id,
                    "type": event.type.value,
                    "data": event.data,
                    "createdAt": event.created_at.isoformat(),
                }
                for event in service.list_events(args.workflow_id)
            ]
        print(json.dumps(output, indent=2, ensure_ascii=False))
        return 0
    finally:
        database.dispose()


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = ShieldGateSettings()
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return 2

    configure_logging(settings.log_level)

    try:
        if args.command == "serve":
            host = args.host or settings.host
            port = args.port or settings.port
            logger.info("Starting server", extra={"host": host, "port": port})
            # log_config=None keeps the JSON handlers installed above.
            uvicorn.run(create_app(settings), host=host, port=port, log_config=None)
            return 0

        if args.command == "init-db":
            database = Database.from_url(settings.database_url)
            try:
                database.create_schema()
            finally:
                database.dispose()
            print("Database schema ready")
            return 0

        if args.command == "show-workflow":
            return _show_workflow(settings, args)

        parser.error(f"Unknown command: {args.command}")
        return 2

    except Exception:
        logger.exception("Command failed")
        return 1
