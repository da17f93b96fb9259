"""Cycle ids for correlating the log lines of one polling cycle."""

import uuid
from collections.abc import Iterator
from contextlib import contextmanager

import structlog

CYCLE_ID_KEY = "cycle_id"


def generate_cycle_id() -> str:
    return uuid.uuid4().hex[:16]


def current_cycle_id() -> str | None:
    """Cycle id bound to the running task, None outside a cycle."""
    return structlog.contextvars.get_contextvars().get(CYCLE_ID_KEY)


@contextmanager
def cycle_context(cycle_id: str | None = None) -> Iterator[str]:
    """Bind a cycle id to every log event emitted inside the block.

    Nested blocks restore the outer id on exit.
    """
    cycle_id = cycle_id or generate_cycle_id()
    with structlog.contextvars.bound_contextvars(**{CYCLE_ID_KEY: cycle_id}):
        yield cycle_id
