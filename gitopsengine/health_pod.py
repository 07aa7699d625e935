"""Built-in health checks for Pods, Jobs, PersistentVolumeClaims, Services and Ingresses."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from .health_status import HealthStatus, HealthStatusCode
from .health_workloads import _converting, _group_version_kind, _int, _list, _map, _str


def _require_gvk(obj: dict, group: str, version: str, kind: str) -> None:
    actual = _group_version_kind(obj)
    if actual != (group, version, kind):
        g, v, k = actual
        raise ValueError(f"unsupported {kind} GVK: {g}/{v}, Kind={k}")


def _optional_map(parent: dict, key: str) -> Optional[dict]:
    if parent.get(key) is None:
        return None
    return _map(parent, key)


def _conditions(status: dict) -> list[dict]:
    conditions = _list(status, "conditions")
    for condition in conditions:
        if not isinstance(condition, dict):
            raise ValueError("condition: expected map")
    return conditions


@dataclass(frozen=True)
class _ContainerStatus:
    name: str
    waiting: Optional[tuple[str, str]]
    terminated: Optional[tuple[str, str, int]]
    last_terminated: bool

    @classmethod
    def parse(cls, raw: Any) -> "_ContainerStatus":
        if not isinstance(raw, dict):
            raise ValueError("container status: expected map")
        state = _map(raw, "state")
        waiting_raw = _optional_map(state, "waiting")
        terminated_raw = _optional_map(state, "terminated")
        waiting = None
        if waiting_raw is not None:
            waiting = (_str(waiting_raw, "reason"), _str(waiting_raw, "message"))
        terminated = None
        if terminated_raw is not None:
            terminated = (
                _str(terminated_raw, "message"),
                _str(terminated_raw, "reason"),
                _int(terminated_raw, "exitCode"),
            )
        last_terminated = _optional_map(_map(raw, "lastState"), "terminated") is not None
        return cls(_str(raw, "name"), waiting, terminated, last_terminated)

    def is_erroring(self) -> bool:
        if self.waiting is None:
            return False
        reason = self.waiting[0]
        return reason.startswith("Err") or reason.endswith("Error") or reason.endswith("BackOff")

    def fail_message(self) -> str:
        if self.terminated is None:
            return ""
        message, reason, exit_code = self.terminated
        if message:
            return message
        if reason == "OOMKilled":
            return reason
        if exit_code != 0:
            return f"container {_quote(self.name)} failed with exit code {exit_code}"
        return ""


def _quote(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _is_ready(status: dict) -> bool:
    for condition in _conditions(status):
        if _str(condition, "type") == "Ready":
            return _str(condition, "status") == "True"
    return False


def get_pod_health(obj: dict[str, Any]) -> HealthStatus:
    """Assess the health of a core v1 Pod."""
    _require_gvk(obj, "", "v1", "Pod")
    with _converting("Pod"):
        spec = _map(obj, "spec")
        status = _map(obj, "status")
        restart_policy = _str(spec, "restartPolicy")
        phase = _str(status, "phase")
        message = _str(status, "message")
        containers = [_ContainerStatus.parse(c) for c in _list(status, "containerStatuses")]
        init_containers = [_ContainerStatus.parse(c) for c in _list(status, "initContainerStatuses")]
        ready = _is_ready(status)

    # Hook pods (OnFailure/Never) must not be marked degraded while waiting.
    if restart_policy == "Always":
        erroring = [c.waiting[1] for c in containers if c.is_erroring()]
        if erroring:
            return HealthStatus(HealthStatusCode.DEGRADED, ", ".join(erroring))

    if phase == "Pending":
        return HealthStatus(HealthStatusCode.PROGRESSING, message)
    if phase == "Succeeded":
        return HealthStatus(HealthStatusCode.HEALTHY, message)
    if phase == "Failed":
        if message:
            return HealthStatus(HealthStatusCode.DEGRADED, message)
        for container in init_containers + containers:
            fail_message = container.fail_message()
            if fail_message:
                return HealthStatus(HealthStatusCode.DEGRADED, fail_message)
        return HealthStatus(HealthStatusCode.DEGRADED, "")
    if phase == "Running":
        if restart_policy == "Always":
            if ready:
                return HealthStatus(HealthStatusCode.HEALTHY, message)
            if any(c.last_terminated for c in containers):
                return HealthStatus(HealthStatusCode.DEGRADED, message)
            return HealthStatus(HealthStatusCode.PROGRESSING, message)
        if restart_policy in ("OnFailure", "Never"):
            return HealthStatus(HealthStatusCode.PROGRESSING, message)
    return HealthStatus(HealthStatusCode.UNKNOWN, message)


def get_job_health(obj: dict[str, Any]) -> HealthStatus:
    """Assess the health of a batch/v1 Job."""
    _require_gvk(obj, "batch", "v1", "Job")
    with _converting("Job"):
        conditions = [
            (_str(c, "type"), _str(c, "status"), _str(c, "message"))
            for c in _conditions(_map(obj, "status"))
        ]

    failed = complete = suspended = False
    fail_message = message = ""
    for cond_type, cond_status, cond_message in conditions:
        if cond_type == "Failed":
            failed = complete = True
            fail_message = cond_message
        elif cond_type == "Complete":
            complete = True
            message = cond_message
        elif cond_type == "Suspended":
            complete = True
            message = cond_message
            if cond_status == "True":
                suspended = True

    if not complete:
        return HealthStatus(HealthStatusCode.PROGRESSING, message)
    if failed:
        return HealthStatus(HealthStatusCode.DEGRADED, fail_message)
    if suspended:
        return HealthStatus(HealthStatusCode.SUSPENDED, fail_message)
    return HealthStatus(HealthStatusCode.HEALTHY, message)


_PVC_PHASES = {
    "Lost": HealthStatusCode.DEGRADED,
    "Pending": HealthStatusCode.PROGRESSING,
    "Bound": HealthStatusCode.HEALTHY,
}


def get_pvc_health(obj: dict[str, Any]) -> HealthStatus:
    """Assess the health of a core v1 PersistentVolumeClaim."""
    _require_gvk(obj, "", "v1", "PersistentVolumeClaim")
    with _converting("PersistentVolumeClaim"):
        phase = _str(_map(obj, "status"), "phase")
    return HealthStatus(_PVC_PHASES.get(phase, HealthStatusCode.UNKNOWN))


def get_service_health(obj: dict[str, Any]) -> HealthStatus:
    """Assess the health of a core v1 Service."""
    _require_gvk(obj, "", "v1", "Service")
    with _converting("Service"):
        service_type = _str(_map(obj, "spec"), "type")
        ingress = _list(_map(_map(obj, "status"), "loadBalancer"), "ingress")
    if service_type == "LoadBalancer" and not ingress:
        return HealthStatus(HealthStatusCode.PROGRESSING)
    return HealthStatus(HealthStatusCode.HEALTHY)


def _nested_list(obj: Any, *path: str) -> list:
    value = obj
    for key in path:
        if not isinstance(value, dict):
            return []
        value = value.get(key)
    return value if isinstance(value, list) else []


def get_ingress_health(obj: dict[str, Any]) -> HealthStatus:
    """Assess the health of an Ingress: healthy once a load balancer is assigned."""
    if _nested_list(obj, "status", "loadBalancer", "ingress"):
        return HealthStatus(HealthStatusCode.HEALTHY)
    return HealthStatus(HealthStatusCode.PROGRESSING)