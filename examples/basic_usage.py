#!/usr/bin/env python3
"""Programmatic workflow example.

This demonstrates using the gateway components directly, without the HTTP server:

* load settings from `.env`
* create a workflow for an intent through the configured action source
* sign the first step and print the stored workflow

Run it against the fixture source with `USE_MOCK_PROVIDER=true` and a
`SIGNER_PRIVATE_KEY` whose address matches `--address`.
"""

from __future__ import annotations

import argparse
import json
from typing import Sequence

from shieldgate.actions.factory import ActionProviderFactory
from shieldgate.actions.provider import ActionRequest
from shieldgate.gateway.config import ShieldGateSettings
from shieldgate.gateway.errors import ShieldGateError, ShieldValidationFailed
from shieldgate.gateway.logging import configure_logging
from shieldgate.gateway.storage.database import Database
from shieldgate.gateway.workflow.service import WorkflowService
from shieldgate.gateway.workflow.state_machine import Intent
from shieldgate.gateway.workflow.store import WorkflowStore
from shieldgate.server.models import ApiWorkflowWithSteps
from shieldgate.shield.validator import create_validator
from shieldgate.signer.local_signer import LocalSigner


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create and sign a workflow (programmatic example).")
    parser.add_argument("--intent", choices=[i.value for i in Intent], default="enter")
    parser.add_argument("--yield-id", required=True, help="Yield identifier")
    parser.add_argument("--address", required=True, help="Wallet address that will sign")
    parser.add_argument(
        "--arguments",
        default="{}",
        help='Intent arguments as JSON, e.g. \'{"amount": "1"}\'',
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    settings = ShieldGateSettings()
    configure_logging(settings.log_level)

    database = Database.from_url(settings.database_url)
    database.create_schema()

    service = WorkflowService(
        store=WorkflowStore(database),
        action_provider=ActionProviderFactory.create(settings),
        validator=create_validator(settings),
    )

    request = ActionRequest(
        intent=Intent(args.intent),
        yield_id=args.yield_id,
        address=args.address,
        arguments=json.loads(args.arguments),
    )

    try:
        created = service.create_workflow(request)
    except ShieldValidationFailed as exc:
        print(f"Workflow {exc.workflow_id} failed validation: {exc.failures}")
        return 1

    print(f"Created workflow {created.workflow.id} with {len(created.steps)} step(s)")

    if created.steps:
        try:
            service.sign_step(
                created.workflow.id, created.steps[0].id, LocalSigner(settings.signer_private_key)
            )
        except ShieldGateError as exc:
            print(f"Signing failed: {exc.code} {exc.message}")
            return 1

    stored = service.get_workflow(created.workflow.id, include_signed_payload=True)
    print(json.dumps(ApiWorkflowWithSteps.from_record(stored).to_json(), indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
