"""Built-in health checks for HorizontalPodAutoscalers, APIServices and Argo Workflows."""

from __future__ import annotations

import json
from typing import Any, NamedTuple

from .health_status import HealthStatus, HealthStatusCode
from .health_workloads import _converting, _group_version_kind, _list, _map, _str

_PROGRESSING = HealthStatus(HealthStatusCode.PROGRESSING, "Waiting to Autoscale")
_CONDITIONS_ANNOTATION = "autoscaling.alpha.kubernetes.io/conditions"
_HPA_VERSIONS = ("v1", "v2beta1", "v2beta2", "v2")

_DEGRADED_STATES = frozenset(
    {
        ("AbleToScale", "FailedGetScale"),
        ("AbleToScale", "FailedUpdateScale"),
        ("ScalingActive", "FailedGetResourceMetric"),
        ("ScalingActive", "InvalidSelector"),
    }
)
_HEALTHY_TYPES = frozenset({"AbleToScale", "ScalingLimited"})


class _HpaCondition(NamedTuple):
    type: str
    reason: str
    message: str
    status: str


def _gvk_error(label: str, obj: dict) -> ValueError:
    group, version, kind = _group_version_kind(obj)
    return ValueError(f"unsupported {label} GVK: {group}/{version}, Kind={kind}")


def _field(raw: dict, name: str) -> str:
    """Read a string field, matching the name case-insensitively as a fallback."""
    if name in raw:
        key = name
    else:
        key = next((k for k in raw if k.lower() == name.lower()), None)
        if key is None:
            return ""
    value = raw[key]
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"field {key!r}: expected string, got {type(value).__name__}")
    return value


def _parse_condition(raw: Any) -> _HpaCondition:
    if raw is None:
        return _HpaCondition("", "", "", "")
    if not isinstance(raw, dict):
        raise ValueError("condition: expected map")
    return _HpaCondition(*(_field(raw, name) for name in _HpaCondition._fields))


def _check_conditions(conditions: list[_HpaCondition]) -> HealthStatus:
    for condition in conditions:
        if (condition.type, condition.reason) in _DEGRADED_STATES:
            return HealthStatus(HealthStatusCode.DEGRADED, condition.message)
        if condition.type in _HEALTHY_TYPES and condition.status == "True":
            return HealthStatus(HealthStatusCode.HEALTHY, condition.message)
    return _PROGRESSING


def _annotation_conditions(obj: dict) -> list[_HpaCondition] | None:
    with _converting("HPA"):
        annotations = _map(_map(obj, "metadata"), "annotations")
        if _CONDITIONS_ANNOTATION not in annotations:
            return None
        annotation = _str(annotations, _CONDITIONS_ANNOTATION)
    try:
        raw = json.loads(annotation)
        if raw is None:
            return []
        if not isinstance(raw, list):
            raise ValueError("expected a list of conditions")
        return [_parse_condition(item) for item in raw]
    except ValueError as err:
        raise ValueError(f"failed to convert conditions annotation to typed: {err}") from err


def get_hpa_health(obj: dict[str, Any]) -> HealthStatus:
    """Assess the health of a HorizontalPodAutoscaler of any supported version."""
    group, version, kind = _group_version_kind(obj)
    if group != "autoscaling" or kind != "HorizontalPodAutoscaler" or version not in _HPA_VERSIONS:
        raise _gvk_error("HPA", obj)
    if version == "v1":
        conditions = _annotation_conditions(obj)
        if not conditions:
            return _PROGRESSING
    else:
        with _converting("HPA"):
            conditions = [_parse_condition(c) for c in _list(_map(obj, "status"), "conditions")]
    return _check_conditions(conditions)


def get_apiservice_health(obj: dict[str, Any]) -> HealthStatus:
    """Assess the health of an apiregistration.k8s.io APIService."""
    group, version, kind = _group_version_kind(obj)
    if group != "apiregistration.k8s.io" or kind != "APIService" or version not in ("v1", "v1beta1"):
        raise _gvk_error("APIService", obj)
    with _converting("APIService"):
        conditions = [_parse_condition(c) for c in _list(_map(obj, "status"), "conditions")]
    for condition in conditions:
        if condition.type == "Available":
            code = HealthStatusCode.HEALTHY if condition.status == "True" else HealthStatusCode.PROGRESSING
            return HealthStatus(code, f"{condition.reason}: {condition.message}")
    return HealthStatus(HealthStatusCode.PROGRESSING, "Waiting to be processed")


_WORKFLOW_PHASES = {
    "": HealthStatusCode.PROGRESSING,
    "Pending": HealthStatusCode.PROGRESSING,
    "Running": HealthStatusCode.PROGRESSING,
    "Succeeded": HealthStatusCode.HEALTHY,
    "Failed": HealthStatusCode.DEGRADED,
    "Error": HealthStatusCode.DEGRADED,
}


def get_argo_workflow_health(obj: dict[str, Any]) -> HealthStatus:
    """Assess the health of an Argo Workflow from its status phase and message only."""
    status = _map(obj, "status")
    phase = _str(status, "phase")
    message = _str(status, "message")
    return HealthStatus(_WORKFLOW_PHASES.get(phase, HealthStatusCode.UNKNOWN), message)