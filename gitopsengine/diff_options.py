"""Settings for diffing and the pluggable pieces the diff relies on."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class Normalizer(ABC):
    """Updates a resource before it gets compared."""

    @abstractmethod
    def normalize(self, obj: dict[str, Any]) -> None:
        """Modify ``obj`` in place; raise on failure."""


class NoopNormalizer(Normalizer):
    """Normalizer that leaves resources as they are."""

    def normalize(self, obj: dict[str, Any]) -> None:
        """Accept any resource object without modifying it."""
        if not isinstance(obj, dict):
            raise TypeError(f"expected a resource object, got {type(obj).__name__}")


def get_noop_normalizer() -> Normalizer:
    """Return a normalizer that does not modify resources."""
    return NoopNormalizer()


class DryRunStrategy(Enum):
    """How an apply is dry-run."""

    NONE = 0
    CLIENT = 1
    SERVER = 2


class ServerSideDryRunner(ABC):
    """Runs a server-side apply in dry-run mode."""

    @abstractmethod
    def run(self, obj: dict[str, Any], manager: str) -> str:
        """Return the predicted live state of ``obj`` as a JSON string."""


class KubeApplier(ABC):
    """Applies a resource to a cluster."""

    @abstractmethod
    def apply_resource(
        self,
        obj: dict[str, Any],
        dry_run_strategy: DryRunStrategy,
        force: bool,
        validate: bool,
        server_side_apply: bool,
        manager: str,
        server_side_diff: bool,
    ) -> str:
        """Apply ``obj`` and return the resulting resource as a JSON string."""


class K8sServerSideDryRunner(ServerSideDryRunner):
    """Server-side dry runner backed by a KubeApplier."""

    def __init__(self, kube_applier: KubeApplier) -> None:
        self.dryrun_applier = kube_applier

    def run(self, obj: dict[str, Any], manager: str) -> str:
        """Server-side apply ``obj`` in server dry-run mode as ``manager``."""
        return self.dryrun_applier.apply_resource(
            obj, DryRunStrategy.SERVER, False, False, True, manager, True
        )


def _default_logger() -> logging.Logger:
    return logging.getLogger("gitopsengine.diff")


@dataclass
class DiffOptions:
    """Diffing settings."""

    # Ignore differences in rules of aggregated RBAC roles.
    ignore_aggregated_roles: bool = False
    normalizer: Normalizer = field(default_factory=NoopNormalizer)
    log: logging.Logger = field(default_factory=_default_logger)
    structured_merge_diff: bool = False
    gvk_parser: Optional[Any] = None
    manager: str = ""
    server_side_diff: bool = False
    server_side_dry_runner: Optional[ServerSideDryRunner] = None
    ignore_mutation_webhook: bool = True