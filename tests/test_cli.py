"""
Test cases for CLI commands
"""
import json
import pytest
import yaml
from unittest.mock import Mock, patch
from click.testing import CliRunner

from kube_attach.cli.cli import cli, main
from tests.conftest import pods_json

SHIM = "/usr/local/bin/secrets-entrypoint"


class TestCLI:
    @pytest.fixture(autouse=True)
    def setup(self):
        self.runner = CliRunner()
        self.installation = patch('kube_attach.cli.cli.InstallationManager').start()
        self.authenticator = patch('kube_attach.cli.cli.TeleportAuthenticator').start()
        self.kubectl_run = patch('kube_attach.connection.kubectl.subprocess.run').start()
        self.popen = patch('kube_attach.session.dispatcher.subprocess.Popen').start()
        self.popen.return_value.wait.return_value = 0
        yield
        patch.stopall()

    def given_pods(self, *pods):
        self.kubectl_run.return_value = Mock(returncode=0, stdout=pods_json(*pods), stderr="")

    def test_default_shell_in_utility_pod(self):
        """No hint: the running utility pod gets a bash shell"""
        self.given_pods(("core-utility-7f9", "Running"))

        result = self.runner.invoke(cli, ['-u', 'jdoe', 'core', 'staging'])

        assert result.exit_code == 0, result.output
        self.authenticator.return_value.login.assert_called_once_with('jdoe', 'staging')
        self.popen.assert_called_once_with(
            ["kubectl", "-n", "core", "exec", "-ti", "core-utility-7f9", "--", SHIM, "bash"]
        )

    def test_hinted_pending_pod_logs(self):
        """Hint: fail-fast resolution ignores phase and logs are followed"""
        self.given_pods(("weedmaps-api-preflight-2", "Pending"))

        result = self.runner.invoke(cli, ['-u', 'jdoe', '-p', 'preflight', 'weedmaps-api', 'production', 'logs'])

        assert result.exit_code == 0, result.output
        self.popen.assert_called_once_with(
            ["kubectl", "-n", "weedmaps-api", "logs", "weedmaps-api-preflight-2", "-f"]
        )

    def test_custom_command(self):
        self.given_pods(("core-sidekiq-1", "Running"))

        result = self.runner.invoke(cli, ['-u', 'jdoe', 'core', 'staging', 'bundle', 'exec', 'rails', 'c'])

        assert result.exit_code == 0, result.output
        assert self.popen.call_args[0][0][-5:] == [SHIM, "bundle", "exec", "rails", "c"]

    def test_session_exit_code_is_forwarded(self):
        self.given_pods(("core-utility-7f9", "Running"))
        self.popen.return_value.wait.return_value = 42

        result = self.runner.invoke(cli, ['-u', 'jdoe', 'core', 'staging'])

        assert result.exit_code == 42

    def test_no_pod_found(self):
        """Empty pod list: not found is reported and nothing is attached"""
        self.given_pods()

        result = self.runner.invoke(cli, ['-u', 'jdoe', 'core', 'staging'])

        assert result.exit_code == 1
        assert "Could not find a pod in `core`" in result.output
        assert "Usage:" in result.output
        self.popen.assert_not_called()

    def test_malformed_pod_list(self):
        self.kubectl_run.return_value = Mock(returncode=0, stdout="garbage", stderr="")

        result = self.runner.invoke(cli, ['-u', 'jdoe', 'core', 'staging'])

        assert result.exit_code == 1
        assert "Could not get pods for `core`" in result.output
        assert "Could not find a pod in `core`" in result.output
        self.popen.assert_not_called()

    def test_missing_arguments_reported_together(self):
        result = self.runner.invoke(cli, [])

        assert result.exit_code == 1
        assert "Username is required (--username)" in result.output
        assert "Environment is required" in result.output
        assert "App is required" in result.output
        self.authenticator.return_value.login.assert_not_called()

    def test_missing_tools_abort_before_validation(self):
        def ensure_tools(sink):
            manager = Mock()
            manager.ensure_tools.side_effect = lambda: sink.add("Missing `tsh`. Install it and try again")
            return manager
        self.installation.side_effect = ensure_tools

        result = self.runner.invoke(cli, [])

        assert result.exit_code == 1
        assert "Missing `tsh`" in result.output
        assert "Username is required" not in result.output

    def test_failed_login_aborts(self):
        def authenticator(sink, **kwargs):
            auth = Mock()
            auth.login.side_effect = lambda *args: sink.add("Make sure you are connected to the VPN")
            return auth
        self.authenticator.side_effect = authenticator
        self.given_pods(("core-utility-7f9", "Running"))

        result = self.runner.invoke(cli, ['-u', 'jdoe', 'core', 'staging'])

        assert result.exit_code == 1
        assert "Make sure you are connected to the VPN" in result.output
        self.kubectl_run.assert_not_called()
        self.popen.assert_not_called()

    def test_username_is_saved(self, setup_test_env):
        self.given_pods(("core-utility-7f9", "Running"))

        self.runner.invoke(cli, ['-u', 'jdoe', 'core', 'staging'])
        result = self.runner.invoke(cli, ['core', 'staging'])

        assert result.exit_code == 0, result.output
        assert yaml.safe_load(setup_test_env.read_text())["username"] == "jdoe"

    def test_list_pods(self):
        self.given_pods(("core-utility-1", "Pending"), ("core-sidekiq-1", "Running"))

        result = self.runner.invoke(cli, ['-u', 'jdoe', 'core', 'staging', '--pods'])

        assert result.exit_code == 0, result.output
        assert "core-utility-1\tPending" in result.output
        assert "core-sidekiq-1\tRunning" in result.output
        self.popen.assert_not_called()

    def test_list_pods_as_json(self):
        self.given_pods(("core-utility-1", "Running"))

        result = self.runner.invoke(cli, ['-u', 'jdoe', 'core', 'staging', '--pods', '--output-format', 'json'])

        assert result.exit_code == 0, result.output
        assert json.loads(result.output) == [{"name": "core-utility-1", "phase": "Running"}]

    def test_list_namespaces_without_app(self):
        self.kubectl_run.return_value = Mock(
            returncode=0,
            stdout=json.dumps({"items": [{"metadata": {"name": "core"}}]}),
            stderr=""
        )

        result = self.runner.invoke(cli, ['-u', 'jdoe', '--namespaces', 'staging'])

        assert result.exit_code == 0, result.output
        assert result.output.strip() == "core"

    def test_help(self):
        result = self.runner.invoke(cli, ['--help'])
        assert result.exit_code == 0
        assert "APP" in result.output

    def test_main_entry_point(self):
        self.given_pods(("core-utility-7f9", "Running"))

        with patch('sys.argv', ['kube-attach', '-u', 'jdoe', 'core', 'staging']), \
             patch('sys.exit') as mock_exit:
            main()
            mock_exit.assert_called_once_with(0)

    def test_single_configured_candidate_matches_whole_pattern(self, setup_test_env):
        setup_test_env.write_text("default_candidates: sidekiq\n")
        self.given_pods(("core-web-1", "Running"))

        result = self.runner.invoke(cli, ['-u', 'jdoe', 'core', 'staging'])

        assert result.exit_code == 1
        assert "Could not find a pod in `core`" in result.output
        self.popen.assert_not_called()

    def test_empty_secrets_shim_uses_default(self, setup_test_env):
        setup_test_env.write_text("secrets_shim:\n")
        self.given_pods(("core-utility-1", "Running"))

        result = self.runner.invoke(cli, ['-u', 'jdoe', 'core', 'staging'])

        assert result.exit_code == 0, result.output
        self.popen.assert_called_once_with(
            ["kubectl", "-n", "core", "exec", "-ti", "core-utility-1", "--", SHIM, "bash"]
        )

    def test_invalid_settings_are_a_clean_error(self, setup_test_env):
        setup_test_env.write_text("default_candidates: 3\n")

        result = self.runner.invoke(cli, ['-u', 'jdoe', 'core', 'staging'])

        assert result.exit_code == 1
        assert "default_candidates" in result.output
        assert result.exception is None or isinstance(result.exception, SystemExit)
        self.popen.assert_not_called()

    def test_unknown_option_is_not_taken_as_app(self):
        self.given_pods(("core-utility-1", "Running"))

        result = self.runner.invoke(cli, ['-u', 'jdoe', '--bogus', 'core', 'staging'])

        assert result.exit_code == 1
        assert "Unknown option `--bogus`" in result.output
        self.authenticator.return_value.login.assert_not_called()
        self.popen.assert_not_called()
