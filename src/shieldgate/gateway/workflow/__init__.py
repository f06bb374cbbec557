"""Workflow domain concepts.

This package holds first-class types for:
- the workflow and step state machine
- audit events appended alongside every state change
- persisted records and their store
- the service that ties action source, shield and signer together
"""

__all__: list[str] = []
