# gitopsengine

Building blocks for working with Kubernetes resources the way a GitOps
controller does. Resources are plain Python dictionaries, for example the
result of `json.load` or `yaml.safe_load` on a manifest. There are no runtime
dependencies. The package runs on Python 3.10 or later.

## Installation

```
pip install gitopsengine
```

## Health assessment

`gitopsengine.health.get_resource_health(obj, health_override)` returns a
`HealthStatus` or `None`. A `HealthStatus` holds a `status` and a `message`.
The status is a `HealthStatusCode`: `HEALTHY`, `SUSPENDED`, `PROGRESSING`,
`MISSING`, `DEGRADED` or `UNKNOWN`.

```python
from gitopsengine.health import get_resource_health
from gitopsengine.health_status import HealthStatusCode

deployment = {
    "apiVersion": "apps/v1",
    "kind": "Deployment",
    "metadata": {"name": "web", "generation": 1},
    "spec": {"replicas": 2},
    "status": {"observedGeneration": 1, "replicas": 2,
               "updatedReplicas": 2, "availableReplicas": 2},
}

health = get_resource_health(deployment, None)
assert health.status is HealthStatusCode.HEALTHY
```

The assessment runs in this order:

1. A resource with `metadata.deletionTimestamp` set is `PROGRESSING`, with the
   message "Pending deletion".
2. A `HealthOverride` you pass in comes next. Subclass it and implement
   `get_resource_health(obj)`. Return a `HealthStatus`, or return `None` to fall
   back to the built-in checks.
3. The built-in check for the resource's group and kind comes last. Kinds
   without a check, such as most custom resources, give `None`.

If the override or a built-in check fails, `HealthCheckError` is raised. Its
`health` attribute holds an `UNKNOWN` status that carries the error message.

`get_health_check_func(group, kind)` returns the built-in check on its own.
There are checks for these kinds:

| Module | Functions |
| --- | --- |
| `health_workloads` | `get_deployment_health`, `get_daemonset_health`, `get_statefulset_health`, `get_replicaset_health` |
| `health_pod` | `get_pod_health`, `get_job_health`, `get_pvc_health`, `get_service_health`, `get_ingress_health` |
| `health_extras` | `get_hpa_health` (autoscaling v1, v2beta1, v2beta2, v2), `get_apiservice_health` (v1, v1beta1), `get_argo_workflow_health` |

`is_worse(current, new)` in `gitopsengine.health_status` tells whether one code
is a worse condition than another. The order runs from Healthy to Suspended,
Progressing, Missing, Degraded and then Unknown. This helps when you roll many
resources up into one result.

## JSON merge patches

`gitopsengine.mergepatch` creates and applies JSON merge patches. Neither
function changes its inputs.

- `create_two_way_merge_patch(original, modified)` gives the patch that turns
  `original` into `modified`.
- `merge_patch(document, patch)` applies a patch.
- `create_three_way_merge_patch(original, modified, current)` gives the patch
  that brings `current` to `modified`. Deletions come only from comparing
  `original` with `modified`, so fields that were added to `current` some other
  way stay in place. If the changes and the deletions collide, it raises
  `MergePatchConflict`.

```python
from gitopsengine.mergepatch import create_three_way_merge_patch, merge_patch

original = {"a": 1, "b": 2}
modified = {"a": 1}
current = {"a": 1, "b": 2, "c": 3}

patch = create_three_way_merge_patch(original, modified, current)
assert patch == {"b": None}
assert merge_patch(current, patch) == {"a": 1, "c": 3}
```

## Managed fields

`gitopsengine.managedfields` converts between `metadata.managedFields` entries
and per-manager field sets.

- `ManagedFieldsEntry.from_dict` reads an entry from its wire form, and
  `to_dict` writes it back.
- `decode_managed_fields(entries)` checks the entries and returns a `Managed`.
  A `Managed` maps each manager identifier to a `VersionedSet` and to a
  timestamp. Bad entries raise `ValueError`.
- `encode_managed_fields(managed)` goes back to wire-form entries. The entries
  are sorted by `sort_managed_fields`, which orders them by operation, time,
  manager, API version and subresource.
- `build_manager_identifier(entry)` gives a manager's identifier. For `Apply`
  operations the API version is left out.

```python
from gitopsengine.managedfields import ManagedFieldsEntry, build_manager_identifier

entry = ManagedFieldsEntry(manager="argocd-controller", operation="Apply")
assert build_manager_identifier(entry) == '{"manager":"argocd-controller","operation":"Apply"}'
```

## Diff settings

`gitopsengine.diff_options` holds the settings and extension points for
comparing resources:

- `DiffOptions` is a dataclass of settings:
  - `ignore_aggregated_roles`
  - `normalizer`
  - `log`
  - `structured_merge_diff`
  - `gvk_parser`
  - `manager`
  - `server_side_diff`
  - `server_side_dry_runner`
  - `ignore_mutation_webhook`, which defaults to `True`
- `Normalizer` is the base for changing a resource in place before comparison.
  `NoopNormalizer`, also returned by `get_noop_normalizer()`, leaves resources
  as they are.
- `ServerSideDryRunner` is the interface for running a server-side apply in
  dry-run mode.
- `K8sServerSideDryRunner` implements that interface on top of a
  `KubeApplier`. It calls `apply_resource` with `DryRunStrategy.SERVER`.

## Sync types

`gitopsengine.common` defines the types used when syncing:

- the enums `SyncPhase`, `OperationPhase`, `ResultCode`, `HookType` and
  `HookDeletePolicy`;
- the `ResourceSyncResult` record;
- the annotation and sync-option string constants;
- `new_hook_type(t)` and `new_hook_delete_policy(p)`, which return the matching
  enum member or `None`.

`OperationPhase` has the methods `completed()`, `running()`, `successful()` and
`failed()`.

## What the package does not do

The package does not compare a desired resource with a live one into a
diff result. It has no normalisation of Secrets, Roles or Endpoints before
comparison, and no hiding of Secret values. It does not talk to a cluster:
`KubeApplier` and `ServerSideDryRunner` are interfaces for you to implement.
It has no command-line program.

## Running the tests

```
pip install -e .[test]
pytest
```