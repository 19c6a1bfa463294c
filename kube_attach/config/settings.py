"""
Settings file handling for kube-attach.
"""

import os
import logging
from typing import Any, Dict, Optional

import yaml

from kube_attach.auth.teleport import DEFAULT_CLUSTER_TEMPLATE, DEFAULT_PROXY_TEMPLATE
from kube_attach.errors import ConfigError
from kube_attach.resolution.candidates import DEFAULT_CANDIDATES
from kube_attach.session.dispatcher import DEFAULT_SECRETS_SHIM

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = os.path.join("~", ".kube-attach", "config.yaml")

DEFAULTS: Dict[str, Any] = {
    "username": None,
    "kubectl": "kubectl",
    "kubeconfig": None,
    "context": None,
    "secrets_shim": DEFAULT_SECRETS_SHIM,
    "default_candidates": list(DEFAULT_CANDIDATES),
    "proxy_template": DEFAULT_PROXY_TEMPLATE,
    "default_cluster": DEFAULT_CLUSTER_TEMPLATE,
}


def config_path(path: Optional[str] = None) -> str:
    """Resolve the settings file path: explicit path, $KUBE_ATTACH_CONFIG, then the default."""
    return os.path.expanduser(path or os.environ.get("KUBE_ATTACH_CONFIG") or DEFAULT_CONFIG_PATH)


def _read(path: str) -> Dict[str, Any]:
    if not os.path.exists(path):
        return {}

    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Could not read settings from {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Settings in {path} must be a mapping")
    return data


def _validate(data: Dict[str, Any], path: str) -> Dict[str, Any]:
    """
    Check value types of known keys, dropping empty values where a default exists.

    A single string for default_candidates is taken as a one-element list.
    """
    data = dict(data)

    for key, value in list(data.items()):
        if key not in DEFAULTS:
            continue
        if not value and DEFAULTS[key]:
            logger.debug(f"Ignoring empty {key} in {path}")
            del data[key]
        elif value is not None and key != "default_candidates" and not isinstance(value, str):
            raise ConfigError(f"{key} in {path} must be a string")

    candidates = data.get("default_candidates")
    if isinstance(candidates, str):
        candidates = data["default_candidates"] = [candidates]
    if candidates is not None and (
        not isinstance(candidates, list)
        or not all(isinstance(pattern, str) and pattern for pattern in candidates)
    ):
        raise ConfigError(f"default_candidates in {path} must be a list of non-empty strings")

    return data


def load_settings(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load settings, filling in defaults for missing keys.

    Args:
        path: Settings file; see config_path for the fallbacks

    Returns:
        Dict[str, Any]: Settings

    Raises:
        ConfigError: if the file is not a YAML mapping or a value has the wrong type
    """
    path = config_path(path)
    settings = dict(DEFAULTS)
    settings.update(_validate(_read(path), path))
    logger.debug(f"Loaded settings from {path}")
    return settings


def save_username(username: str, path: Optional[str] = None) -> None:
    """
    Persist the username, keeping any other settings in the file.

    Raises:
        ConfigError: if the existing file is invalid or cannot be written
    """
    path = config_path(path)
    data = _read(path)
    data["username"] = username

    try:
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        with open(path, "w") as f:
            yaml.safe_dump(data, f, default_flow_style=False)
    except OSError as e:
        raise ConfigError(f"Could not write settings to {path}: {e}") from e

    logger.info(f"Saved username to {path}")
