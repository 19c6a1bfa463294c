"""
Teleport login for kube-attach.
Logs the operator in to the environment's Teleport proxy and selects the
Kubernetes cluster behind it.
"""

import logging
import subprocess
from typing import List, Optional

from kube_attach.diagnostics.sink import DiagnosticSink

logger = logging.getLogger(__name__)

DEFAULT_PROXY_TEMPLATE = "teleport.{environment}.internal:443"
DEFAULT_CLUSTER_TEMPLATE = "{environment}"

class TeleportAuthenticator:
    """
    TeleportAuthenticator drives `tsh` to log in. Logging in again while a
    session for the proxy is still valid is skipped.
    """

    def __init__(
        self,
        sink: DiagnosticSink,
        tsh: str = "tsh",
        proxy_template: str = DEFAULT_PROXY_TEMPLATE,
        cluster_template: str = DEFAULT_CLUSTER_TEMPLATE
    ):
        """
        Initialize a new TeleportAuthenticator instance.

        Args:
            sink: DiagnosticSink collecting errors for this run
            tsh: tsh binary to invoke
            proxy_template: Proxy address, formatted with the environment
            cluster_template: Default Kubernetes cluster, formatted with the environment
        """
        self.sink = sink
        self.tsh = tsh
        self.proxy_template = proxy_template
        self.cluster_template = cluster_template

    def proxy_for(self, environment: str) -> str:
        return self.proxy_template.format(environment=environment)

    def cluster_for(self, environment: str) -> str:
        return self.cluster_template.format(environment=environment)

    def is_logged_in(self, environment: str) -> bool:
        """Check for a valid tsh session on the environment's proxy."""
        return self._run([self.tsh, "status", f"--proxy={self.proxy_for(environment)}"], capture=True)

    def login(self, username: str, environment: str, cluster: Optional[str] = None) -> bool:
        """
        Log in to the environment and select its Kubernetes cluster.

        Args:
            username: Teleport user
            environment: Environment name, used to derive the proxy
            cluster: Kubernetes cluster, defaults to the environment's cluster

        Returns:
            bool: True if the session is authenticated
        """
        proxy = self.proxy_for(environment)
        cluster = cluster or self.cluster_for(environment)

        if self.is_logged_in(environment):
            logger.info(f"Already logged in to {proxy}")
        else:
            logger.info(f"Logging in to {proxy} as {username}...")
            # Interactive: tsh prompts for password and second factor.
            if not self._run([self.tsh, "login", f"--proxy={proxy}", f"--user={username}"]):
                return self._fail(username, environment)

        if not self._run([self.tsh, "kube", "login", cluster], capture=True):
            return self._fail(username, environment)

        logger.info(f"Using Kubernetes cluster {cluster}")
        return True

    def _fail(self, username: str, environment: str) -> bool:
        self.sink.add(f"Could not log in to `{environment}` as `{username}`. Check your username (--username)")
        self.sink.add("Make sure you are connected to the VPN")
        return False

    def _run(self, cmd: List[str], capture: bool = False) -> bool:
        """
        Run a tsh command.

        Returns:
            bool: True if the command exited with 0
        """
        logger.debug(f"Executing command: {' '.join(cmd)}")

        try:
            if capture:
                process = subprocess.run(
                    cmd,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    universal_newlines=True,
                    check=False
                )
            else:
                process = subprocess.run(cmd, check=False)
        except OSError as e:
            logger.error(f"Error executing command: {e}")
            return False

        if process.returncode != 0:
            logger.debug(f"Command exited with {process.returncode}")
        return process.returncode == 0
