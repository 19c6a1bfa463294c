"""
KubectlConnector module for querying the cluster with the kubectl CLI.
Provides the pod and namespace lookups used to pick a pod to attach to.
"""

import json
import logging
import subprocess
from typing import Optional, Dict, Any, List

from kube_attach.diagnostics.sink import DiagnosticSink
from kube_attach.errors import QueryParseError
from kube_attach.resolution.models import Instance

logger = logging.getLogger(__name__)

class KubectlConnector:
    """
    KubectlConnector runs kubectl commands through subprocess and turns their
    JSON output into typed records. Lookup failures are reported to the
    DiagnosticSink instead of being raised.
    """

    def __init__(
        self,
        sink: DiagnosticSink,
        kubectl: str = "kubectl",
        kubeconfig: Optional[str] = None,
        context: Optional[str] = None
    ):
        """
        Initialize a new KubectlConnector instance.

        Args:
            sink: DiagnosticSink collecting errors for this run
            kubectl: kubectl binary to invoke
            kubeconfig: Path to kubeconfig file. If None, kubectl picks its default
            context: Kubernetes context to use. If None, uses current context
        """
        self.sink = sink
        self.kubectl = kubectl
        self.kubeconfig = kubeconfig
        self.context = context

    def get_pods(self, namespace: str, fail_fast: bool = False) -> List[Instance]:
        """
        Get the pods of a namespace.

        Only Running pods are returned unless fail_fast is set, in which case
        pods in any phase are kept.

        Args:
            namespace: Namespace to query
            fail_fast: Keep pods regardless of phase

        Returns:
            List[Instance]: Pods in the order kubectl returned them, empty on failure
        """
        cmd = self.build_command(namespace, ["get", "pods", "-o", "json"])
        result = self._execute_command(cmd)

        try:
            instances = self._parse_pods(result)
        except QueryParseError as e:
            logger.error(f"Error parsing pods for namespace {namespace}: {e}")
            self.sink.add(f"Could not get pods for `{namespace}`")
            return []

        return [instance for instance in instances if fail_fast or instance.is_running]

    def get_namespaces(self) -> List[str]:
        """
        Get list of available namespaces.

        Returns:
            List[str]: List of namespace names, empty on failure
        """
        cmd = self.build_command(None, ["get", "namespaces", "-o", "json"])
        result = self._execute_command(cmd)

        try:
            if not result["success"]:
                raise QueryParseError(result["error"].strip() or "kubectl failed")
            namespaces_info = json.loads(result["output"])
            return [item["metadata"]["name"] for item in namespaces_info.get("items", [])]
        except (QueryParseError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.error(f"Error parsing namespaces: {e}")
            self.sink.add("Could not list namespaces")
            return []

    def build_command(self, namespace: Optional[str], args: List[str]) -> List[str]:
        """
        Build a kubectl command with config, context, and namespace.

        Args:
            namespace: Namespace passed with -n, omitted when None
            args: kubectl subcommand and its arguments

        Returns:
            List[str]: Command as list of strings
        """
        cmd = [self.kubectl]

        if self.kubeconfig:
            cmd.extend(["--kubeconfig", self.kubeconfig])

        if self.context:
            cmd.extend(["--context", self.context])

        if namespace:
            cmd.extend(["-n", namespace])

        cmd.extend(args)
        return cmd

    def _parse_pods(self, result: Dict[str, Any]) -> List[Instance]:
        """
        Parse the result of `kubectl get pods -o json`.

        Raises:
            QueryParseError: if kubectl failed or the output is not a pod list
        """
        if not result["success"]:
            raise QueryParseError(result["error"].strip() or f"kubectl exited with {result['returncode']}")

        try:
            pods_info = json.loads(result["output"])
        except ValueError as e:
            raise QueryParseError(f"Invalid JSON: {e}") from e

        if not isinstance(pods_info, dict) or not isinstance(pods_info.get("items"), list):
            raise QueryParseError("Response has no items list")

        return [Instance.from_item(item) for item in pods_info["items"]]

    def _execute_command(self, cmd: List[str]) -> Dict[str, Any]:
        """
        Execute a command using subprocess.

        Args:
            cmd: Command to execute as list of strings

        Returns:
            Dict containing:
                success: bool indicating command success
                output: command output if successful
                error: error message if command failed
                returncode: command return code
        """
        logger.debug(f"Executing command: {' '.join(cmd)}")

        result = {
            "success": False,
            "output": "",
            "error": "",
            "returncode": -1
        }

        try:
            process = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                universal_newlines=True,
                check=False
            )

            result["returncode"] = process.returncode

            if process.returncode == 0:
                result["success"] = True
                result["output"] = process.stdout
            else:
                result["error"] = process.stderr

            return result
        except OSError as e:
            logger.error(f"Error executing command: {e}")
            result["error"] = str(e)
            return result
