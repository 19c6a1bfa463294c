"""
Test configuration and fixtures for kube-attach tests.
"""
import json
import pytest
from unittest.mock import Mock

from kube_attach.connection.kubectl import KubectlConnector
from kube_attach.diagnostics.sink import DiagnosticSink


def pods_json(*pods):
    """Render (name, phase) pairs as `kubectl get pods -o json` output."""
    return json.dumps({
        "apiVersion": "v1",
        "kind": "List",
        "items": [
            {"metadata": {"name": name, "namespace": "test"}, "status": {"phase": phase}}
            for name, phase in pods
        ],
    })


def command_result(output="", success=True, error="", returncode=None):
    """Build a result dict as returned by KubectlConnector._execute_command."""
    return {
        "success": success,
        "output": output,
        "error": error,
        "returncode": returncode if returncode is not None else (0 if success else 1),
    }


@pytest.fixture(autouse=True)
def setup_test_env(tmp_path, monkeypatch):
    """Point the settings file at a temporary path."""
    config_file = tmp_path / "config.yaml"
    monkeypatch.setenv("KUBE_ATTACH_CONFIG", str(config_file))
    return config_file


@pytest.fixture
def sink():
    return DiagnosticSink()


@pytest.fixture
def connector_for(sink):
    """Build a KubectlConnector whose kubectl calls return the given pods."""
    def make(*pods, result=None):
        connector = KubectlConnector(sink)
        connector._execute_command = Mock(return_value=result or command_result(pods_json(*pods)))
        return connector
    return make
