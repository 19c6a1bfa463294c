"""
Typed records for pods returned by the cluster query.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict

from kube_attach.errors import QueryParseError

logger = logging.getLogger(__name__)


class PodPhase(Enum):
    RUNNING = "Running"
    PENDING = "Pending"
    FAILED = "Failed"
    SUCCEEDED = "Succeeded"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, value: Any) -> "PodPhase":
        """
        Map a status.phase value to a PodPhase.

        Anything unrecognised, including a missing phase, is UNKNOWN.
        """
        try:
            return cls(value)
        except ValueError:
            logger.debug(f"Unrecognised pod phase {value!r}, treating as Unknown")
            return cls.UNKNOWN


@dataclass(frozen=True)
class Instance:
    """A single pod in a namespace."""

    name: str
    phase: PodPhase

    @property
    def is_running(self) -> bool:
        return self.phase is PodPhase.RUNNING

    @classmethod
    def from_item(cls, item: Dict[str, Any]) -> "Instance":
        """
        Build an Instance from one entry of `kubectl get pods -o json` items.

        Raises:
            QueryParseError: if the entry has no usable metadata.name
        """
        if not isinstance(item, dict):
            raise QueryParseError(f"Pod entry is not an object: {item!r}")

        metadata = item.get("metadata")
        name = metadata.get("name") if isinstance(metadata, dict) else None
        if not isinstance(name, str) or not name:
            raise QueryParseError("Pod entry has no metadata.name")

        status = item.get("status")
        phase = status.get("phase") if isinstance(status, dict) else None
        return cls(name=name, phase=PodPhase.parse(phase))
