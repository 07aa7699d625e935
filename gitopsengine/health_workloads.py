"""Built-in health checks for Deployments, DaemonSets, StatefulSets and ReplicaSets."""

from __future__ import annotations

import json
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from .health_status import HealthStatus, HealthStatusCode


def _group_version_kind(obj: dict) -> tuple[str, str, str]:
    api_version = obj.get("apiVersion")
    kind = obj.get("kind")
    api_version = api_version if isinstance(api_version, str) else ""
    kind = kind if isinstance(kind, str) else ""
    group, _, version = api_version.rpartition("/")
    return group, version, kind


def _require_apps_v1(obj: dict, kind: str) -> None:
    group, version, actual_kind = _group_version_kind(obj)
    if (group, version, actual_kind) != ("apps", "v1", kind):
        raise ValueError(f"unsupported {kind} GVK: {group}/{version}, Kind={actual_kind}")


@contextmanager
def _converting(kind: str) -> Iterator[None]:
    try:
        yield
    except (ValueError, TypeError) as err:
        raise ValueError(f"failed to convert unstructured {kind} to typed: {err}") from err


def _map(parent: dict, key: str) -> dict:
    value = parent.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"field {key!r}: expected map, got {type(value).__name__}")
    return value


def _list(parent: dict, key: str) -> list:
    value = parent.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"field {key!r}: expected list, got {type(value).__name__}")
    return value


def _opt_int(parent: dict, key: str) -> Optional[int]:
    value = parent.get(key)
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"field {key!r}: expected integer, got bool")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    raise ValueError(f"field {key!r}: expected integer, got {type(value).__name__}")


def _int(parent: dict, key: str) -> int:
    value = _opt_int(parent, key)
    return 0 if value is None else value


def _str(parent: dict, key: str) -> str:
    value = parent.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"field {key!r}: expected string, got {type(value).__name__}")
    return value


def _bool(parent: dict, key: str) -> bool:
    value = parent.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ValueError(f"field {key!r}: expected bool, got {type(value).__name__}")
    return value


def _find_condition(status: dict, cond_type: str) -> Optional[dict]:
    for condition in _list(status, "conditions"):
        if not isinstance(condition, dict):
            raise ValueError("condition: expected map")
        if _str(condition, "type") == cond_type:
            return condition
    return None


def _quote(text: str) -> str:
    return json.dumps(text)


def get_deployment_health(obj: dict[str, Any]) -> HealthStatus:
    """Assess the health of an apps/v1 Deployment."""
    _require_apps_v1(obj, "Deployment")
    with _converting("Deployment"):
        metadata = _map(obj, "metadata")
        spec = _map(obj, "spec")
        status = _map(obj, "status")
        name = _str(metadata, "name")
        generation = _int(metadata, "generation")
        paused = _bool(spec, "paused")
        replicas = _opt_int(spec, "replicas")
        observed = _int(status, "observedGeneration")
        total = _int(status, "replicas")
        updated = _int(status, "updatedReplicas")
        available = _int(status, "availableReplicas")
        condition = _find_condition(status, "Progressing")
        reason = _str(condition, "reason") if condition is not None else None

    if paused:
        return HealthStatus(HealthStatusCode.SUSPENDED, "Deployment is paused")
    if generation > observed:
        return HealthStatus(
            HealthStatusCode.PROGRESSING,
            "Waiting for rollout to finish: observed deployment generation less than desired generation",
        )
    if reason == "ProgressDeadlineExceeded":
        return HealthStatus(
            HealthStatusCode.DEGRADED,
            f"Deployment {_quote(name)} exceeded its progress deadline",
        )
    if replicas is not None and updated < replicas:
        return HealthStatus(
            HealthStatusCode.PROGRESSING,
            f"Waiting for rollout to finish: {updated} out of {replicas} new replicas have been updated...",
        )
    if total > updated:
        return HealthStatus(
            HealthStatusCode.PROGRESSING,
            f"Waiting for rollout to finish: {total - updated} old replicas are pending termination...",
        )
    if available < updated:
        return HealthStatus(
            HealthStatusCode.PROGRESSING,
            f"Waiting for rollout to finish: {available} of {updated} updated replicas are available...",
        )
    return HealthStatus(HealthStatusCode.HEALTHY)


def get_daemonset_health(obj: dict[str, Any]) -> HealthStatus:
    """Assess the health of an apps/v1 DaemonSet."""
    _require_apps_v1(obj, "DaemonSet")
    with _converting("DaemonSet"):
        metadata = _map(obj, "metadata")
        spec = _map(obj, "spec")
        status = _map(obj, "status")
        name = _str(metadata, "name")
        generation = _int(metadata, "generation")
        strategy_type = _str(_map(spec, "updateStrategy"), "type")
        observed = _int(status, "observedGeneration")
        updated = _int(status, "updatedNumberScheduled")
        desired = _int(status, "desiredNumberScheduled")
        available = _int(status, "numberAvailable")

    if generation > observed:
        return HealthStatus(
            HealthStatusCode.PROGRESSING,
            "Waiting for rollout to finish: observed daemon set generation less than desired generation",
        )
    if strategy_type == "OnDelete":
        return HealthStatus(
            HealthStatusCode.HEALTHY,
            f"daemon set {updated} out of {desired} new pods have been updated",
        )
    if updated < desired:
        return HealthStatus(
            HealthStatusCode.PROGRESSING,
            f"Waiting for daemon set {_quote(name)} rollout to finish: "
            f"{updated} out of {desired} new pods have been updated...",
        )
    if available < desired:
        return HealthStatus(
            HealthStatusCode.PROGRESSING,
            f"Waiting for daemon set {_quote(name)} rollout to finish: "
            f"{available} of {desired} updated pods are available...",
        )
    return HealthStatus(HealthStatusCode.HEALTHY)


def get_statefulset_health(obj: dict[str, Any]) -> HealthStatus:
    """Assess the health of an apps/v1 StatefulSet."""
    _require_apps_v1(obj, "StatefulSet")
    with _converting("StatefulSet"):
        metadata = _map(obj, "metadata")
        spec = _map(obj, "spec")
        status = _map(obj, "status")
        generation = _int(metadata, "generation")
        replicas = _opt_int(spec, "replicas")
        strategy = _map(spec, "updateStrategy")
        strategy_type = _str(strategy, "type")
        has_rolling_update = strategy.get("rollingUpdate") is not None
        partition = _opt_int(_map(strategy, "rollingUpdate"), "partition")
        observed = _int(status, "observedGeneration")
        ready = _int(status, "readyReplicas")
        updated = _int(status, "updatedReplicas")
        current = _int(status, "currentReplicas")
        update_revision = _str(status, "updateRevision")
        current_revision = _str(status, "currentRevision")

    if observed == 0 or generation > observed:
        return HealthStatus(
            HealthStatusCode.PROGRESSING,
            "Waiting for statefulset spec update to be observed...",
        )
    if replicas is not None and ready < replicas:
        return HealthStatus(
            HealthStatusCode.PROGRESSING,
            f"Waiting for {replicas - ready} pods to be ready...",
        )
    if strategy_type == "RollingUpdate" and has_rolling_update:
        if replicas is not None and partition is not None and updated < replicas - partition:
            return HealthStatus(
                HealthStatusCode.PROGRESSING,
                f"Waiting for partitioned roll out to finish: {updated} out of "
                f"{replicas - partition} new pods have been updated...",
            )
        return HealthStatus(
            HealthStatusCode.HEALTHY,
            f"partitioned roll out complete: {updated} new pods have been updated...",
        )
    if strategy_type == "OnDelete":
        return HealthStatus(HealthStatusCode.HEALTHY, f"statefulset has {ready} ready pods")
    if update_revision != current_revision:
        return HealthStatus(
            HealthStatusCode.PROGRESSING,
            f"waiting for statefulset rolling update to complete {updated} pods "
            f"at revision {update_revision}...",
        )
    return HealthStatus(
        HealthStatusCode.HEALTHY,
        f"statefulset rolling update complete {current} pods at revision {current_revision}...",
    )


def get_replicaset_health(obj: dict[str, Any]) -> HealthStatus:
    """Assess the health of an apps/v1 ReplicaSet."""
    _require_apps_v1(obj, "ReplicaSet")
    with _converting("ReplicaSet"):
        metadata = _map(obj, "metadata")
        spec = _map(obj, "spec")
        status = _map(obj, "status")
        generation = _int(metadata, "generation")
        replicas = _opt_int(spec, "replicas")
        observed = _int(status, "observedGeneration")
        available = _int(status, "availableReplicas")
        condition = _find_condition(status, "ReplicaFailure")
        failure = None
        if condition is not None:
            failure = (_str(condition, "status"), _str(condition, "message"))

    if generation > observed:
        return HealthStatus(
            HealthStatusCode.PROGRESSING,
            "Waiting for rollout to finish: observed replica set generation less than desired generation",
        )
    if failure is not None and failure[0] == "True":
        return HealthStatus(HealthStatusCode.DEGRADED, failure[1])
    if replicas is not None and available < replicas:
        return HealthStatus(
            HealthStatusCode.PROGRESSING,
            f"Waiting for rollout to finish: {available} out of {replicas} new replicas are available...",
        )
    return HealthStatus(HealthStatusCode.HEALTHY)