# secretshare

Building blocks for sharing secrets between namespaces. A `Secret` is offered
to other namespaces with a `SecretExport`. Consumers then look it up with a
`SecretMatcher`. All state is kept in memory, and the caches are safe to use
from more than one thread.

## Install

```
pip install .
```

Install with `pip install .[test]` to get the test dependencies, then run `pytest`.

## Modules

### `secretshare.tracker`

- `NamespacedName(namespace, name)` is a frozen, ordered identifier. Its string form is `namespace/name`.
- `Tracker` records which resources track which others:
  - `track(tracking, *tracked)` adds entries.
  - `untrack_all(tracking)` removes them all and is idempotent.
  - `get_tracking(tracked)` returns every resource that tracks the given one.

### `secretshare.secret_exports`

- `Secret` and `SecretExport` are plain dataclasses.
- `SecretExport.static_to_namespaces()` returns `to_namespace`, when set, followed by `to_namespaces`.
- `SecretExports` caches copies of exported secrets:
  - `export(export, secret)` adds one. The export and the secret must share the same namespace and name, or `ValueError` is raised.
  - `unexport(export)` removes one.
  - `matched_secrets_for_import(matcher, ns_is_excluded_from_wildcard)` returns copies of the matching secrets, least preferred first and most preferred last. Preference goes, in this order:
    1. Higher `secretgen.carvel.dev/weight` annotation. The default is 0, and invalid values count as 0.
    2. Secrets already in the target namespace.
    3. Exact namespace matches over the `*` wildcard.
    4. `namespace/name`.

  A `*` export does not match a namespace for which `ns_is_excluded_from_wildcard` returns true. A matcher with a non-empty `subject` never matches anything.

### `secretshare.secret_exports_warmed_up`

- `SecretExportsWarmedUp(delegate, warm_up_func=None)` passes `export` and `unexport` straight to the delegate.
- It calls `warm_up_func` once, before the first `matched_secrets_for_import`. If `warm_up_func` is still unset at that point, it raises `TypeError`.

### `secretshare.dockerconfigjson`

- `combine_docker_config_json(secrets)` merges the `auths` of several `.dockerconfigjson` secrets into one data map.
- The result is keyed by `DOCKER_CONFIG_JSON_KEY`.
- When two secrets hold the same registry server, the later secret wins.
- Malformed input raises `DockerConfigError`.

### `secretshare.token_manager`

- `Manager(get_token, review_token, clock=None)` caches `TokenRequest`s.
- `get_service_account_token(namespace, name, request)` behaves as follows:
  - It serves the cached token unless a refresh is due. A refresh is due when the review rejects the token, when the token is older than two hours, or when it is past half its lifetime. A small random jitter is applied to both age limits.
  - When a refresh fails, it keeps the old token if that token has not expired yet.
  - Otherwise it raises `TokenRefreshError`.
- `cleanup()` drops expired tokens.
- `start_gc(period)` runs `cleanup` in a daemon thread and returns an event that stops the thread.
- `len(manager)` gives the cache size.

### `secretshare.namespace_exclusions`

- Namespaces that carry the `secretgen.carvel.dev/excluded-from-wildcard-matching` annotation are left out of `*` exports. `ns_has_exclusion_annotation` tells whether a namespace carries it.
- `make_namespace_wildcard_exclusion_check(client)` builds the check from `client.get_namespace(name)`. A namespace that cannot be fetched counts as not excluded.
- `EnqueueDueToNamespaceChange(to_requests)` calls `queue.add` for each request only on updates that change that annotation.

### `secretshare.secret_reconciler`

- `SecretReconciler(client, secret_exports)` fills secrets annotated with `secretgen.carvel.dev/image-pull-secret` with the combined image pull credentials exported to their namespace.
- It records a `SecretStatus` as JSON in the `secretgen.carvel.dev/status` annotation.
- Secrets whose type is not `kubernetes.io/dockerconfigjson` get a `ReconcileFailed` condition.
- `reconcile(request)` returns a `ReconcileResult`. A failed update raises an error.
- The client must provide `get_secret(namespace, name)`, which raises `LookupError` when the secret is missing. It must also provide `update_secret(secret)`, `list_secrets(namespace=None)` and `get_namespace(name)`.
- `map_secret_export_to_secret` and `map_namespace_to_secret` turn events into requests.
- `EnqueueSecretExportToSecret` enqueues requests when an export's status changes. On deletion it first unexports the export, then enqueues.

## Example

```python
from secretshare.secret_exports import Secret, SecretExport, SecretExports, SecretMatcher

exports = SecretExports()
source = Secret(name="registry", namespace="ns1", type="Opaque", data={"k": b"v"})
exports.export(SecretExport(name="registry", namespace="ns1", to_namespace="*"), source)

matched = exports.matched_secrets_for_import(
    SecretMatcher(to_namespace="dst-ns", secret_type="Opaque"),
    lambda ns: False,
)
```

## What it does not do

- The package has no Kubernetes API client, no watch loop and no command to run. The caller supplies the client objects, the event delivery and the queue.
- There is no reconciler that copies a secret into another namespace in response to an import request.
- There is no reconciler that keeps `SecretExports` in step with the exports in a cluster. The cache holds only what is passed to `export` and `unexport`.