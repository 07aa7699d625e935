import pytest

from gitopsengine.health_status import HealthStatusCode
from gitopsengine.health_workloads import (
    get_daemonset_health,
    get_deployment_health,
    get_replicaset_health,
    get_statefulset_health,
)


def workload(kind, spec=None, status=None, generation=1, api_version="apps/v1", name="demo"):
    return {
        "apiVersion": api_version,
        "kind": kind,
        "metadata": {"name": name, "generation": generation},
        "spec": spec or {},
        "status": status or {},
    }


# Deployment


def test_deployment_healthy():
    obj = workload(
        "Deployment",
        spec={"replicas": 2},
        status={"observedGeneration": 1, "replicas": 2, "updatedReplicas": 2, "availableReplicas": 2},
    )
    health = get_deployment_health(obj)
    assert health.status is HealthStatusCode.HEALTHY
    assert health.message == ""


def test_deployment_paused():
    obj = workload("Deployment", spec={"paused": True})
    health = get_deployment_health(obj)
    assert health.status is HealthStatusCode.SUSPENDED
    assert health.message == "Deployment is paused"


def test_deployment_generation_not_observed():
    obj = workload("Deployment", generation=3, status={"observedGeneration": 2})
    health = get_deployment_health(obj)
    assert health.status is HealthStatusCode.PROGRESSING
    assert "observed deployment generation less than desired generation" in health.message


def test_deployment_progress_deadline_exceeded():
    obj = workload(
        "Deployment",
        status={
            "observedGeneration": 1,
            "conditions": [{"type": "Progressing", "reason": "ProgressDeadlineExceeded"}],
        },
    )
    health = get_deployment_health(obj)
    assert health.status is HealthStatusCode.DEGRADED
    assert health.message == 'Deployment "demo" exceeded its progress deadline'


def test_deployment_updating_replicas():
    obj = workload(
        "Deployment",
        spec={"replicas": 3},
        status={"observedGeneration": 1, "updatedReplicas": 1},
    )
    health = get_deployment_health(obj)
    assert health.status is HealthStatusCode.PROGRESSING
    assert health.message == "Waiting for rollout to finish: 1 out of 3 new replicas have been updated..."


def test_deployment_old_replicas_pending():
    obj = workload(
        "Deployment",
        spec={"replicas": 2},
        status={"observedGeneration": 1, "replicas": 3, "updatedReplicas": 2, "availableReplicas": 2},
    )
    health = get_deployment_health(obj)
    assert health.status is HealthStatusCode.PROGRESSING
    assert health.message.endswith("old replicas are pending termination...")


def test_deployment_unavailable_replicas():
    obj = workload(
        "Deployment",
        spec={"replicas": 2},
        status={"observedGeneration": 1, "replicas": 2, "updatedReplicas": 2, "availableReplicas": 1},
    )
    health = get_deployment_health(obj)
    assert health.status is HealthStatusCode.PROGRESSING
    assert health.message == "Waiting for rollout to finish: 1 of 2 updated replicas are available..."


def test_deployment_unsupported_gvk():
    obj = workload("Deployment", api_version="extensions/v1beta1")
    with pytest.raises(ValueError, match="unsupported Deployment GVK"):
        get_deployment_health(obj)


def test_deployment_invalid_field_fails_conversion():
    obj = workload("Deployment", spec={"replicas": "badValue"})
    with pytest.raises(ValueError, match="failed to convert unstructured Deployment to typed"):
        get_deployment_health(obj)


# DaemonSet


def test_daemonset_on_delete_is_healthy():
    obj = workload(
        "DaemonSet",
        spec={"updateStrategy": {"type": "OnDelete"}},
        status={"observedGeneration": 1, "updatedNumberScheduled": 1, "desiredNumberScheduled": 4},
    )
    health = get_daemonset_health(obj)
    assert health.status is HealthStatusCode.HEALTHY
    assert health.message == "daemon set 1 out of 4 new pods have been updated"


def test_daemonset_rolling_out():
    obj = workload(
        "DaemonSet",
        spec={"updateStrategy": {"type": "RollingUpdate"}},
        status={"observedGeneration": 1, "updatedNumberScheduled": 1, "desiredNumberScheduled": 4},
    )
    health = get_daemonset_health(obj)
    assert health.status is HealthStatusCode.PROGRESSING
    assert health.message.startswith('Waiting for daemon set "demo" rollout to finish')


def test_daemonset_pods_not_available():
    obj = workload(
        "DaemonSet",
        status={
            "observedGeneration": 1,
            "updatedNumberScheduled": 4,
            "desiredNumberScheduled": 4,
            "numberAvailable": 2,
        },
    )
    health = get_daemonset_health(obj)
    assert health.status is HealthStatusCode.PROGRESSING
    assert "updated pods are available" in health.message


def test_daemonset_healthy_and_stale_generation():
    ready = workload(
        "DaemonSet",
        status={
            "observedGeneration": 1,
            "updatedNumberScheduled": 2,
            "desiredNumberScheduled": 2,
            "numberAvailable": 2,
        },
    )
    assert get_daemonset_health(ready).status is HealthStatusCode.HEALTHY
    stale = workload("DaemonSet", generation=2, status={"observedGeneration": 1})
    assert get_daemonset_health(stale).status is HealthStatusCode.PROGRESSING


def test_daemonset_unsupported_gvk():
    with pytest.raises(ValueError, match="unsupported DaemonSet GVK"):
        get_daemonset_health(workload("DaemonSet", api_version="extensions/v1beta1"))


# StatefulSet


def test_statefulset_not_observed():
    health = get_statefulset_health(workload("StatefulSet"))
    assert health.status is HealthStatusCode.PROGRESSING
    assert health.message == "Waiting for statefulset spec update to be observed..."


def test_statefulset_waiting_for_ready_pods():
    obj = workload("StatefulSet", spec={"replicas": 3}, status={"observedGeneration": 1, "readyReplicas": 1})
    health = get_statefulset_health(obj)
    assert health.status is HealthStatusCode.PROGRESSING
    assert health.message.endswith("pods to be ready...")


def test_statefulset_partitioned_rollout_in_progress():
    obj = workload(
        "StatefulSet",
        spec={"replicas": 3, "updateStrategy": {"type": "RollingUpdate", "rollingUpdate": {"partition": 1}}},
        status={"observedGeneration": 1, "readyReplicas": 3, "updatedReplicas": 0},
    )
    health = get_statefulset_health(obj)
    assert health.status is HealthStatusCode.PROGRESSING
    assert health.message.startswith("Waiting for partitioned roll out to finish")


def test_statefulset_partitioned_rollout_complete():
    obj = workload(
        "StatefulSet",
        spec={"replicas": 3, "updateStrategy": {"type": "RollingUpdate", "rollingUpdate": {"partition": 0}}},
        status={"observedGeneration": 1, "readyReplicas": 3, "updatedReplicas": 3},
    )
    health = get_statefulset_health(obj)
    assert health.status is HealthStatusCode.HEALTHY
    assert health.message == "partitioned roll out complete: 3 new pods have been updated..."


def test_statefulset_on_delete():
    obj = workload(
        "StatefulSet",
        spec={"replicas": 2, "updateStrategy": {"type": "OnDelete"}},
        status={"observedGeneration": 1, "readyReplicas": 2},
    )
    health = get_statefulset_health(obj)
    assert health.status is HealthStatusCode.HEALTHY
    assert health.message == "statefulset has 2 ready pods"


def test_statefulset_revisions():
    updating = workload(
        "StatefulSet",
        spec={"replicas": 1, "updateStrategy": {"type": "RollingUpdate"}},
        status={
            "observedGeneration": 1,
            "readyReplicas": 1,
            "updatedReplicas": 1,
            "updateRevision": "rev-b",
            "currentRevision": "rev-a",
        },
    )
    health = get_statefulset_health(updating)
    assert health.status is HealthStatusCode.PROGRESSING
    assert health.message == "waiting for statefulset rolling update to complete 1 pods at revision rev-b..."

    done = workload(
        "StatefulSet",
        spec={"replicas": 1, "updateStrategy": {"type": "RollingUpdate"}},
        status={
            "observedGeneration": 1,
            "readyReplicas": 1,
            "currentReplicas": 1,
            "updateRevision": "rev-a",
            "currentRevision": "rev-a",
        },
    )
    health = get_statefulset_health(done)
    assert health.status is HealthStatusCode.HEALTHY
    assert health.message == "statefulset rolling update complete 1 pods at revision rev-a..."


def test_statefulset_unsupported_gvk():
    with pytest.raises(ValueError, match="unsupported StatefulSet GVK"):
        get_statefulset_health(workload("StatefulSet", api_version="apps/v1beta1"))


# ReplicaSet


def test_replicaset_healthy():
    obj = workload("ReplicaSet", spec={"replicas": 2}, status={"observedGeneration": 1, "availableReplicas": 2})
    assert get_replicaset_health(obj).status is HealthStatusCode.HEALTHY


def test_replicaset_failure_condition():
    obj = workload(
        "ReplicaSet",
        status={
            "observedGeneration": 1,
            "conditions": [{"type": "ReplicaFailure", "status": "True", "message": "quota exceeded"}],
        },
    )
    health = get_replicaset_health(obj)
    assert health.status is HealthStatusCode.DEGRADED
    assert health.message == "quota exceeded"


def test_replicaset_waiting_for_available():
    obj = workload("ReplicaSet", spec={"replicas": 3}, status={"observedGeneration": 1, "availableReplicas": 1})
    health = get_replicaset_health(obj)
    assert health.status is HealthStatusCode.PROGRESSING
    assert health.message == "Waiting for rollout to finish: 1 out of 3 new replicas are available..."


def test_replicaset_stale_generation():
    obj = workload("ReplicaSet", generation=5, status={"observedGeneration": 4})
    health = get_replicaset_health(obj)
    assert health.status is HealthStatusCode.PROGRESSING
    assert "observed replica set generation less than desired generation" in health.message


def test_replicaset_bad_conditions_fail_conversion():
    obj = workload("ReplicaSet", status={"conditions": "not-a-list"})
    with pytest.raises(ValueError, match="failed to convert unstructured ReplicaSet to typed"):
        get_replicaset_health(obj)