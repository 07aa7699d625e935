"""Resource health assessment: overrides first, then the built-in checks."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from .health_extras import get_apiservice_health, get_argo_workflow_health, get_hpa_health
from .health_pod import (
    get_ingress_health,
    get_job_health,
    get_pod_health,
    get_pvc_health,
    get_service_health,
)
from .health_status import HealthStatus, HealthStatusCode
from .health_workloads import (
    _group_version_kind,
    get_daemonset_health,
    get_deployment_health,
    get_replicaset_health,
    get_statefulset_health,
)

HealthCheck = Callable[[dict], HealthStatus]


class HealthCheckError(Exception):
    """Raised when a health assessment fails; ``health`` holds the Unknown status."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.health = HealthStatus(HealthStatusCode.UNKNOWN, message)


class HealthOverride(ABC):
    """Custom health assessment that takes precedence over the built-in one."""

    @abstractmethod
    def get_resource_health(self, obj: dict[str, Any]) -> Optional[HealthStatus]:
        """Return the health of ``obj``, or None to fall back to the built-in checks."""


_CHECKS: dict[tuple[str, str], HealthCheck] = {
    ("apps", "Deployment"): get_deployment_health,
    ("apps", "StatefulSet"): get_statefulset_health,
    ("apps", "ReplicaSet"): get_replicaset_health,
    ("apps", "DaemonSet"): get_daemonset_health,
    ("extensions", "Ingress"): get_ingress_health,
    ("argoproj.io", "Workflow"): get_argo_workflow_health,
    ("apiregistration.k8s.io", "APIService"): get_apiservice_health,
    ("networking.k8s.io", "Ingress"): get_ingress_health,
    ("", "Service"): get_service_health,
    ("", "PersistentVolumeClaim"): get_pvc_health,
    ("", "Pod"): get_pod_health,
    ("batch", "Job"): get_job_health,
    ("autoscaling", "HorizontalPodAutoscaler"): get_hpa_health,
}


def get_health_check_func(group: str, kind: str) -> Optional[HealthCheck]:
    """Return the built-in health check for a group and kind, or None if there is none."""
    return _CHECKS.get((group, kind))


def get_resource_health(
    obj: dict[str, Any], health_override: Optional[HealthOverride] = None
) -> Optional[HealthStatus]:
    """Return the health of a resource, or None when no assessment applies.

    Raises HealthCheckError when the override or the built-in check fails.
    """
    metadata = obj.get("metadata")
    if isinstance(metadata, dict) and metadata.get("deletionTimestamp") is not None:
        return HealthStatus(HealthStatusCode.PROGRESSING, "Pending deletion")

    if health_override is not None:
        try:
            health = health_override.get_resource_health(obj)
        except Exception as err:
            raise HealthCheckError(str(err)) from err
        if health is not None:
            return health

    group, _, kind = _group_version_kind(obj)
    check = get_health_check_func(group, kind)
    if check is None:
        return None
    try:
        return check(obj)
    except (ValueError, TypeError) as err:
        raise HealthCheckError(str(err)) from err