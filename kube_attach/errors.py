"""
Exception types for kube-attach.

Most failures are reported through the DiagnosticSink rather than raised;
these cover the cases that are raised and handled locally.
"""


class KubeAttachError(Exception):
    """Base class for kube-attach errors."""


class ConfigError(KubeAttachError):
    """The settings file exists but could not be read or parsed."""


class QueryParseError(KubeAttachError):
    """The cluster query returned output that is not a usable pod list."""
