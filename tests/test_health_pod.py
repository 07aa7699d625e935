import pytest

from gitopsengine.health_pod import (
    get_ingress_health,
    get_job_health,
    get_pod_health,
    get_pvc_health,
    get_service_health,
)
from gitopsengine.health_status import HealthStatusCode


def _pod(phase, restart="Always", **status):
    return {
        "apiVersion": "v1",
        "kind": "Pod",
        "metadata": {"name": "p"},
        "spec": {"restartPolicy": restart},
        "status": {"phase": phase, **status},
    }


def test_pod_waiting_backoff_messages_joined():
    obj = _pod(
        "Running",
        containerStatuses=[
            {"name": "a", "state": {"waiting": {"reason": "CrashLoopBackOff", "message": "m1"}}},
            {"name": "b", "state": {"waiting": {"reason": "ErrImagePull", "message": "m2"}}},
            {"name": "c", "state": {"waiting": {"reason": "ContainerCreating", "message": "m3"}}},
        ],
    )
    health = get_pod_health(obj)
    assert health.status is HealthStatusCode.DEGRADED
    assert health.message == "m1, m2"


def test_pod_waiting_error_ignored_for_hook_pods():
    obj = _pod(
        "Pending",
        restart="Never",
        message="waiting",
        containerStatuses=[{"name": "a", "state": {"waiting": {"reason": "ImagePullBackOff"}}}],
    )
    health = get_pod_health(obj)
    assert health.status is HealthStatusCode.PROGRESSING
    assert health.message == "waiting"


def test_pod_failed_uses_terminated_exit_code():
    obj = _pod(
        "Failed",
        restart="Never",
        containerStatuses=[{"name": "main", "state": {"terminated": {"exitCode": 1}}}],
    )
    health = get_pod_health(obj)
    assert health.status is HealthStatusCode.DEGRADED
    assert health.message == 'container "main" failed with exit code 1'


def test_pod_failed_prefers_init_container_message():
    obj = _pod(
        "Failed",
        restart="Never",
        initContainerStatuses=[{"name": "i", "state": {"terminated": {"message": "init broke"}}}],
        containerStatuses=[{"name": "c", "state": {"terminated": {"reason": "OOMKilled", "exitCode": 137}}}],
    )
    assert get_pod_health(obj).message == "init broke"


def test_pod_failed_oom_killed():
    obj = _pod(
        "Failed",
        restart="Never",
        containerStatuses=[{"name": "c", "state": {"terminated": {"reason": "OOMKilled", "exitCode": 137}}}],
    )
    assert get_pod_health(obj).message == "OOMKilled"


def test_pod_running_not_ready_with_prior_termination_is_degraded():
    obj = _pod(
        "Running",
        conditions=[{"type": "Ready", "status": "False"}],
        containerStatuses=[{"name": "c", "state": {"running": {}}, "lastState": {"terminated": {}}}],
    )
    assert get_pod_health(obj).status is HealthStatusCode.DEGRADED


def test_pod_running_ready_is_healthy():
    obj = _pod("Running", conditions=[{"type": "Ready", "status": "True"}])
    assert get_pod_health(obj).status is HealthStatusCode.HEALTHY


def test_pod_running_without_restart_policy_is_unknown():
    obj = _pod("Running", restart="")
    assert get_pod_health(obj).status is HealthStatusCode.UNKNOWN


def test_pod_wrong_version_rejected():
    obj = _pod("Running")
    obj["apiVersion"] = "v2"
    with pytest.raises(ValueError, match="unsupported Pod GVK"):
        get_pod_health(obj)


def test_pod_malformed_status_rejected():
    obj = _pod("Running")
    obj["status"]["containerStatuses"] = "nope"
    with pytest.raises(ValueError, match="failed to convert unstructured Pod to typed"):
        get_pod_health(obj)


def _job(*conditions):
    return {"apiVersion": "batch/v1", "kind": "Job", "status": {"conditions": list(conditions)}}


def test_job_states():
    assert get_job_health(_job()).status is HealthStatusCode.PROGRESSING
    failed = get_job_health(_job({"type": "Failed", "status": "True", "message": "boom"}))
    assert (failed.status, failed.message) == (HealthStatusCode.DEGRADED, "boom")
    done = get_job_health(_job({"type": "Complete", "status": "True", "message": "done"}))
    assert (done.status, done.message) == (HealthStatusCode.HEALTHY, "done")
    suspended = get_job_health(_job({"type": "Suspended", "status": "True"}))
    assert suspended.status is HealthStatusCode.SUSPENDED


def test_job_wrong_group_rejected():
    with pytest.raises(ValueError, match="unsupported Job GVK"):
        get_job_health({"apiVersion": "batch/v1beta1", "kind": "Job"})


@pytest.mark.parametrize(
    "phase, expected",
    [
        ("Bound", HealthStatusCode.HEALTHY),
        ("Pending", HealthStatusCode.PROGRESSING),
        ("Lost", HealthStatusCode.DEGRADED),
        ("", HealthStatusCode.UNKNOWN),
    ],
)
def test_pvc_phases(phase, expected):
    obj = {"apiVersion": "v1", "kind": "PersistentVolumeClaim", "status": {"phase": phase}}
    assert get_pvc_health(obj).status is expected


def test_service_load_balancer():
    svc = {"apiVersion": "v1", "kind": "Service", "spec": {"type": "LoadBalancer"}}
    assert get_service_health(svc).status is HealthStatusCode.PROGRESSING
    svc["status"] = {"loadBalancer": {"ingress": [{"hostname": "lb.example.com"}]}}
    assert get_service_health(svc).status is HealthStatusCode.HEALTHY
    cluster_ip = {"apiVersion": "v1", "kind": "Service", "spec": {"type": "ClusterIP"}}
    assert get_service_health(cluster_ip).status is HealthStatusCode.HEALTHY


def test_ingress_tolerates_malformed_status():
    assert get_ingress_health({"status": {"loadBalancer": {"ingress": "x"}}}).status is HealthStatusCode.PROGRESSING
    ok = get_ingress_health({"status": {"loadBalancer": {"ingress": [{"ip": "10.0.0.1"}]}}})
    assert (ok.status, ok.message) == (HealthStatusCode.HEALTHY, "")