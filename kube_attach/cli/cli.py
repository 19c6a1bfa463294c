"""
CLI module for kube-attach.
Logs in, finds a pod for an app and attaches a shell, command or log stream to it.
"""

import os
import json
import logging
import yaml
import click

from kube_attach.auth.teleport import TeleportAuthenticator
from kube_attach.config.settings import load_settings, save_username
from kube_attach.connection.kubectl import KubectlConnector
from kube_attach.diagnostics.sink import DiagnosticSink
from kube_attach.errors import ConfigError
from kube_attach.installation.manager import InstallationManager
from kube_attach.resolution.candidates import DEFAULT_CANDIDATES
from kube_attach.resolution.resolver import PodResolver
from kube_attach.session.dispatcher import Action, SessionDispatcher

# Configure logging
logging.basicConfig(
    level=getattr(logging, os.environ.get('KUBE_ATTACH_LOG_LEVEL', 'WARNING').upper(), logging.WARNING),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)

# Helper function to pretty print data as YAML
def print_yaml(data):
    """Print data as YAML."""
    click.echo(yaml.dump(data, default_flow_style=False), nl=False)

# Helper function to pretty print data as JSON
def print_json(data, indent=2):
    """Print data as JSON."""
    click.echo(json.dumps(data, indent=indent))

def print_result(data, output_format):
    """Print a listing in the requested format."""
    if output_format == 'json':
        print_json(data)
    elif output_format == 'yaml':
        print_yaml(data)
    else:
        for row in data:
            click.echo(row if isinstance(row, str) else f"{row['name']}\t{row['phase']}")

@click.command(context_settings={'help_option_names': ['-h', '--help'], 'ignore_unknown_options': True})
@click.argument('app', required=False)
@click.argument('environment', required=False)
@click.argument('command', nargs=-1, type=click.UNPROCESSED)
@click.option('--pod', '-p', 'pod_hint', help='Attach to the pod whose name contains this text')
@click.option('--username', '-u', help='Teleport username (saved for next time)')
@click.option('--namespaces', 'list_namespaces', is_flag=True, help='List namespaces and exit')
@click.option('--pods', 'list_pods', is_flag=True, help="List the app's pods without connecting")
@click.option(
    '--output-format',
    type=click.Choice(['text', 'yaml', 'json']),
    default='text',
    help='Output format for --namespaces and --pods'
)
@click.option('--config', 'config_file', type=click.Path(dir_okay=False), help='Path to settings file')
@click.pass_context
def cli(ctx, app, environment, command, pod_hint, username, list_namespaces, list_pods, output_format, config_file):
    """
    Open a shell in a pod of APP running in ENVIRONMENT.

    COMMAND defaults to bash and runs through the secrets shim. Use `logs`
    as COMMAND to follow the pod's logs instead. Without --pod the first
    running utility pod is used, then the first sidekiq pod.
    """
    sink = DiagnosticSink(usage=ctx.get_help)

    try:
        settings = load_settings(config_file)
        if username:
            save_username(username, config_file)
    except ConfigError as e:
        raise click.ClickException(str(e))

    username = username or settings['username']

    # `--namespaces ENVIRONMENT` needs no app
    if list_namespaces and app and not environment:
        app, environment = None, app

    # Tools
    InstallationManager(sink).ensure_tools()
    sink.flush_and_abort_if_non_empty()

    # Arguments
    for value in (app, environment):
        if value and value.startswith("-"):
            sink.add(f"Unknown option `{value}`")
    if not username:
        sink.add("Username is required (--username)")
    if not environment:
        sink.add("Environment is required")
    if not app and not list_namespaces:
        sink.add("App is required")
    sink.flush_and_abort_if_non_empty()

    # Login
    authenticator = TeleportAuthenticator(
        sink,
        proxy_template=settings['proxy_template'],
        cluster_template=settings['default_cluster']
    )
    authenticator.login(username, environment)
    sink.flush_and_abort_if_non_empty()

    connector = KubectlConnector(
        sink,
        kubectl=settings['kubectl'],
        kubeconfig=settings['kubeconfig'],
        context=settings['context']
    )

    if list_namespaces:
        namespaces = connector.get_namespaces()
        sink.flush_and_abort_if_non_empty()
        print_result(namespaces, output_format)
        ctx.exit(0)

    namespace = app

    if list_pods:
        pods = connector.get_pods(namespace, fail_fast=True)
        sink.flush_and_abort_if_non_empty()
        print_result([{'name': pod.name, 'phase': pod.phase.value} for pod in pods], output_format)
        ctx.exit(0)

    # Pod
    defaults = settings['default_candidates'] or DEFAULT_CANDIDATES
    resolver = PodResolver.for_hint(connector, namespace, pod_hint, defaults)
    outcome = resolver.resolve()
    if not outcome.is_found:
        sink.add(f"Could not find a pod in `{namespace}`. Pick one with --pod; list them with --pods")
    sink.flush_and_abort_if_non_empty()

    dispatcher = SessionDispatcher(connector, secrets_shim=settings['secrets_shim'])
    ctx.exit(dispatcher.dispatch(outcome, namespace, Action.from_command(command)))

def main():
    """Entry point for the CLI."""
    cli(obj={})

if __name__ == '__main__':
    main()
