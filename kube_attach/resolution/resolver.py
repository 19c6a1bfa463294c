"""
Pod resolution for kube-attach.
Picks the single pod a session is attached to from the pods of a namespace.
"""

import logging
from enum import Enum
from typing import Iterable, List, Optional, Sequence

from kube_attach.resolution.candidates import DEFAULT_CANDIDATES, build_candidates
from kube_attach.resolution.models import Instance

logger = logging.getLogger(__name__)


class ResolverState(Enum):
    UNRESOLVED = "unresolved"
    RESOLVED = "resolved"
    EXHAUSTED = "exhausted"


class ResolutionOutcome:
    """Result of a resolution: either a found Instance or not found."""

    def __init__(self, instance: Optional[Instance] = None):
        self.instance = instance

    @classmethod
    def found(cls, instance: Instance) -> "ResolutionOutcome":
        return cls(instance)

    @classmethod
    def not_found(cls) -> "ResolutionOutcome":
        return cls(None)

    @property
    def is_found(self) -> bool:
        return self.instance is not None

    def __repr__(self) -> str:
        if self.is_found:
            return f"ResolutionOutcome.found({self.instance!r})"
        return "ResolutionOutcome.not_found()"


class PodResolver:
    """
    PodResolver walks an ordered candidate list against the pods of a
    namespace and settles on at most one pod.

    In fail-fast mode only the first candidate is tried and pods in any phase
    are considered. In fallback mode every candidate is tried in order against
    Running pods only. Either way the cluster is queried once and the outcome
    is cached: later calls to resolve() return the same object.
    """

    def __init__(self, query, namespace: str, candidates: Sequence[str], fail_fast: bool = False):
        """
        Initialize a new PodResolver instance.

        Args:
            query: Object with a get_pods(namespace, fail_fast) method, usually a KubectlConnector
            namespace: Namespace to look in
            candidates: Name patterns in priority order
            fail_fast: Try only the first candidate and accept any pod phase
        """
        self.query = query
        self.namespace = namespace
        self.candidates = list(candidates)
        self.fail_fast = fail_fast
        self.state = ResolverState.UNRESOLVED
        self._pods: Optional[List[Instance]] = None
        self._outcome: Optional[ResolutionOutcome] = None

    @classmethod
    def for_hint(
        cls,
        query,
        namespace: str,
        hint: Optional[str] = None,
        defaults: Iterable[str] = DEFAULT_CANDIDATES
    ) -> "PodResolver":
        """Build a resolver that runs fail-fast when an explicit hint is given."""
        return cls(query, namespace, build_candidates(hint, defaults), fail_fast=bool(hint))

    @property
    def pods(self) -> List[Instance]:
        """Pods of the namespace, queried on first access."""
        if self._pods is None:
            self._pods = self.query.get_pods(self.namespace, fail_fast=self.fail_fast)
            logger.debug(f"Found {len(self._pods)} candidate pod(s) in {self.namespace}")
        return self._pods

    def resolve(self) -> ResolutionOutcome:
        """
        Resolve the pod to attach to.

        Returns:
            ResolutionOutcome: found with the matching pod, or not found
        """
        if self._outcome is not None:
            return self._outcome

        pods = self.pods
        limit = min(1, len(self.candidates)) if self.fail_fast else len(self.candidates)

        cursor = 0
        while cursor < limit:
            candidate = self.candidates[cursor]
            logger.debug(f"Trying candidate '{candidate}' in {self.namespace}")
            for pod in pods:
                if candidate in pod.name:
                    logger.info(f"Resolved pod {pod.name} for candidate '{candidate}'")
                    return self._settle(ResolverState.RESOLVED, ResolutionOutcome.found(pod))
            cursor += 1

        logger.info(f"No pod matched {self.candidates[:limit]} in {self.namespace}")
        return self._settle(ResolverState.EXHAUSTED, ResolutionOutcome.not_found())

    def _settle(self, state: ResolverState, outcome: ResolutionOutcome) -> ResolutionOutcome:
        self.state = state
        self._outcome = outcome
        return outcome
