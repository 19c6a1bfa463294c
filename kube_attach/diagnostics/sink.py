"""
Diagnostic sink for kube-attach.
Collects human-readable error messages from every stage of a run and aborts
the process at checkpoints once anything has been collected.
"""

import sys
import logging
from typing import Callable, List, Optional, Tuple

import click

logger = logging.getLogger(__name__)


class DiagnosticSink:
    """
    DiagnosticSink is an append-only list of messages shared by the components
    of a single CLI invocation. Components add to it instead of aborting, so
    several independent problems are reported together at the next checkpoint.
    """

    def __init__(self, usage: Optional[Callable[[], str]] = None):
        """
        Initialize a new DiagnosticSink instance.

        Args:
            usage: Callable returning the usage help printed before the messages
        """
        self._usage = usage
        self._messages: List[str] = []

    def add(self, message: str) -> None:
        """Append a message to the sink."""
        logger.debug(f"Diagnostic added: {message}")
        self._messages.append(message)

    @property
    def messages(self) -> Tuple[str, ...]:
        return tuple(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __bool__(self) -> bool:
        return bool(self._messages)

    def flush_and_abort_if_non_empty(self) -> None:
        """
        Print usage and every collected message, then exit with status 1.

        Does nothing when the sink is empty.
        """
        if not self._messages:
            return

        if self._usage is not None:
            click.echo(self._usage(), err=True)
            click.echo("", err=True)

        for message in self._messages:
            click.echo(f"Error: {message}", err=True)

        logger.info(f"Aborting with {len(self._messages)} error(s)")
        sys.exit(1)
