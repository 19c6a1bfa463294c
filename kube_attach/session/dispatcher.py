"""
Session dispatch for kube-attach.
Attaches a shell, a command, or a log stream to a resolved pod.
"""

import signal
import logging
import subprocess
from enum import Enum
from typing import List, Optional, Sequence, Union

from kube_attach.connection.kubectl import KubectlConnector
from kube_attach.resolution.models import Instance
from kube_attach.resolution.resolver import ResolutionOutcome

logger = logging.getLogger(__name__)

DEFAULT_SHELL = "bash"
DEFAULT_SECRETS_SHIM = "/usr/local/bin/secrets-entrypoint"

# Signals relayed to the attached session while it runs.
FORWARDED_SIGNALS = tuple(
    getattr(signal, name) for name in ("SIGINT", "SIGTERM", "SIGHUP", "SIGQUIT") if hasattr(signal, name)
)


class ActionKind(Enum):
    SHELL = "shell"
    LOG_TAIL = "log_tail"


class Action:
    """What to do with the resolved pod."""

    def __init__(self, kind: ActionKind, command: Optional[Sequence[str]] = None):
        self.kind = kind
        self.command = list(command or [])

    @classmethod
    def shell(cls, command: Union[str, Sequence[str], None] = None) -> "Action":
        if isinstance(command, str):
            command = [command]
        return cls(ActionKind.SHELL, command or [DEFAULT_SHELL])

    @classmethod
    def log_tail(cls) -> "Action":
        return cls(ActionKind.LOG_TAIL)

    @classmethod
    def from_command(cls, tokens: Sequence[str]) -> "Action":
        """
        Pick the action for the trailing command-line tokens.

        No tokens means a bash shell, a lone `logs` means following the pod's
        logs, anything else is run through the secrets shim.
        """
        tokens = list(tokens)
        if tokens == ["logs"]:
            return cls.log_tail()
        return cls.shell(tokens)

    def __eq__(self, other) -> bool:
        return isinstance(other, Action) and (self.kind, self.command) == (other.kind, other.command)

    def __repr__(self) -> str:
        return f"Action({self.kind.value}, {self.command!r})"


class SessionDispatcher:
    """
    SessionDispatcher builds the kubectl logs/exec command for a pod and runs
    it in the foreground, returning its exit code.
    """

    def __init__(self, connector: KubectlConnector, secrets_shim: str = DEFAULT_SECRETS_SHIM):
        """
        Initialize a new SessionDispatcher instance.

        Args:
            connector: KubectlConnector used to build kubectl commands
            secrets_shim: Wrapper that injects secrets before running the command
        """
        self.connector = connector
        self.secrets_shim = secrets_shim

    def build_command(self, instance: Instance, namespace: str, action: Action) -> List[str]:
        """
        Build the kubectl command attaching to the pod.

        Returns:
            List[str]: Command as list of strings
        """
        if action.kind is ActionKind.LOG_TAIL:
            return self.connector.build_command(namespace, ["logs", instance.name, "-f"])

        return self.connector.build_command(
            namespace,
            ["exec", "-ti", instance.name, "--", self.secrets_shim, *action.command]
        )

    def dispatch(self, target: Union[Instance, ResolutionOutcome], namespace: str, action: Action) -> int:
        """
        Attach to the pod and wait for the session to end.

        Args:
            target: Resolved pod, or a found ResolutionOutcome
            namespace: Namespace of the pod
            action: Shell command or log tail

        Returns:
            int: Exit code of the attached session

        Raises:
            ValueError: if target is a not-found outcome
        """
        if isinstance(target, ResolutionOutcome):
            if not target.is_found:
                raise ValueError("Cannot dispatch a session without a resolved pod")
            target = target.instance

        cmd = self.build_command(target, namespace, action)
        logger.info(f"Attaching to {target.name}: {' '.join(cmd)}")
        return self._run_foreground(cmd)

    def _run_foreground(self, cmd: List[str]) -> int:
        """
        Run a command attached to this terminal, relaying signals to it.

        The child shares the terminal's foreground process group, so keyboard
        signals reach it directly too; relaying covers signals sent to this
        process alone (kill, a closing terminal).
        """
        process = subprocess.Popen(cmd)

        def forward(signum, frame):
            if process.poll() is None:
                logger.debug(f"Forwarding signal {signum} to pid {process.pid}")
                process.send_signal(signum)

        previous = {}
        for signum in FORWARDED_SIGNALS:
            try:
                previous[signum] = signal.signal(signum, forward)
            except (OSError, ValueError) as e:
                logger.debug(f"Cannot forward signal {signum}: {e}")

        try:
            returncode = process.wait()
        finally:
            for signum, handler in previous.items():
                signal.signal(signum, handler)

        logger.info(f"Session exited with code {returncode}")
        # Popen reports death by signal N as -N; shells report it as 128 + N.
        if returncode < 0:
            return 128 - returncode
        return returncode
