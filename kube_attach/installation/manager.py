"""
Installation manager for the command-line tools kube-attach relies on.
"""

import shutil
import logging
import subprocess
from typing import Iterable, Optional, Tuple

from kube_attach.diagnostics.sink import DiagnosticSink

logger = logging.getLogger(__name__)

# (binary, Homebrew formula)
REQUIRED_TOOLS = (
    ("kubectl", "kubernetes-cli"),
    ("tsh", "teleport"),
)

class InstallationManager:
    """
    InstallationManager checks that required binaries are on PATH and installs
    missing ones with Homebrew when it is available.
    """

    def __init__(self, sink: DiagnosticSink, package_manager: str = "brew"):
        """
        Initialize a new InstallationManager instance.

        Args:
            sink: DiagnosticSink collecting errors for this run
            package_manager: Package manager binary used to install missing tools
        """
        self.sink = sink
        self.package_manager = package_manager

    def tool_exists(self, name: str) -> bool:
        """Check whether a binary is on PATH."""
        return shutil.which(name) is not None

    def ensure_tools(self, tools: Iterable[Tuple[str, str]] = REQUIRED_TOOLS) -> bool:
        """
        Make sure every tool is installed.

        Args:
            tools: (binary, package) pairs

        Returns:
            bool: True if all tools are available
        """
        results = [self.ensure_tool(name, package) for name, package in tools]
        return all(results)

    def ensure_tool(self, name: str, package: Optional[str] = None) -> bool:
        """
        Make sure a tool is installed, installing it if possible.

        A missing tool is only reported to the sink when there is no package
        manager to install it with. A failed install is logged and left for
        the later steps that need the tool to report.

        Args:
            name: Binary name
            package: Package providing the binary, defaults to the binary name

        Returns:
            bool: True if the tool is available afterwards
        """
        if self.tool_exists(name):
            logger.debug(f"{name} is already installed")
            return True

        if not self.tool_exists(self.package_manager):
            logger.error(f"{name} is not installed and {self.package_manager} is not available")
            self.sink.add(f"Missing `{name}`. Install it and try again")
            return False

        return self._install(name, package or name)

    def _install(self, name: str, package: str) -> bool:
        """
        Install a package with the package manager.

        Returns:
            bool: True if the binary is available after installing
        """
        logger.info(f"Installing {name} with {self.package_manager}...")

        try:
            subprocess.run([self.package_manager, "install", package], check=True)
        except (subprocess.SubprocessError, OSError) as e:
            logger.error(f"Error installing {name}: {e}")

        installed = self.tool_exists(name)
        if installed:
            logger.info(f"{name} installed successfully")
        else:
            logger.error(f"{name} is still missing after installing {package}")
        return installed
