"""Filling placeholder image pull secrets with the secrets exported to them."""

from __future__ import annotations

import copy
import json
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Callable, Iterable, Optional

from secretshare.dockerconfigjson import combine_docker_config_json
from secretshare.namespace_exclusions import make_namespace_wildcard_exclusion_check
from secretshare.secret_exports import Secret, SecretExport, SecretMatcher
from secretshare.tracker import NamespacedName

IMAGE_PULL_SECRET_ANN_KEY = "secretgen.carvel.dev/image-pull-secret"
STATUS_FIELD_ANN_KEY = "secretgen.carvel.dev/status"
SECRET_TYPE_DOCKER_CONFIG_JSON = "kubernetes.io/dockerconfigjson"

RECONCILE_SUCCEEDED = "ReconcileSucceeded"
RECONCILE_FAILED = "ReconcileFailed"
CONDITION_TRUE = "True"

_log = logging.getLogger(__name__)

_HTML_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


@dataclass
class Condition:
    """A status condition of a reconciled resource."""

    type: str = ""
    status: str = ""
    reason: str = ""
    message: str = ""


def _condition_json(condition: Condition) -> dict[str, str]:
    doc = {"type": condition.type, "status": condition.status}
    if condition.reason:
        doc["reason"] = condition.reason
    if condition.message:
        doc["message"] = condition.message
    return doc


@dataclass
class SecretStatus:
    """Status recorded on a placeholder secret as an annotation."""

    conditions: list[Condition] = field(default_factory=list)
    secret_names: list[str] = field(default_factory=list)

    def to_json(self) -> str:
        """Encode as compact JSON, leaving out empty fields."""
        doc: dict[str, Any] = {}
        if self.conditions:
            doc["conditions"] = [_condition_json(c) for c in self.conditions]
        if self.secret_names:
            doc["secretNames"] = list(self.secret_names)
        text = json.dumps(doc, ensure_ascii=False, separators=(",", ":"))
        for char, escaped in _HTML_ESCAPES.items():
            text = text.replace(char, escaped)
        return text


@dataclass(frozen=True)
class ReconcileResult:
    """Outcome of a successful reconcile; errors are raised instead."""

    requeue: bool = False
    requeue_after: Optional[timedelta] = None


class SecretReconciler:
    """Fills secrets annotated as image pull secrets with matching exported secrets.

    The client provides ``get_secret(namespace, name)`` (raising
    ``LookupError`` when missing), ``update_secret(secret)``,
    ``list_secrets(namespace=None)`` and ``get_namespace(name)``.
    Any exception raised by ``reconcile`` means the request should be retried.
    """

    def __init__(self, client: Any, secret_exports: Any) -> None:
        self.client = client
        self.secret_exports = secret_exports

    def reconcile(self, request: NamespacedName) -> ReconcileResult:
        """Reconcile the secret named by ``request``."""
        _log.info("Reconciling (request=%s)", request)
        try:
            secret = self.client.get_secret(request.namespace, request.name)
        except LookupError:
            return ReconcileResult()

        if secret.deletion_timestamp is not None:
            return ReconcileResult()

        return self._reconcile(secret, copy.deepcopy(secret))

    def _reconcile(self, secret: Secret, original: Secret) -> ReconcileResult:
        if IMAGE_PULL_SECRET_ANN_KEY not in secret.annotations:
            return ReconcileResult()

        _log.info("Reconciling secret with annotation %s", IMAGE_PULL_SECRET_ANN_KEY)

        # A secret's type is immutable, so there is nothing to fill in.
        if secret.type != SECRET_TYPE_DOCKER_CONFIG_JSON:
            status = SecretStatus(
                conditions=[
                    Condition(
                        type=RECONCILE_FAILED,
                        status=CONDITION_TRUE,
                        message="Expected secret to have type=corev1.SecretTypeDockerConfigJson, but did not",
                    )
                ]
            )
            return self._update_secret(secret, status, original)

        matcher = SecretMatcher(to_namespace=secret.namespace, secret_type=secret.type)
        ns_check = make_namespace_wildcard_exclusion_check(self.client)
        secrets = self.secret_exports.matched_secrets_for_import(matcher, ns_check)

        secret.data = combine_docker_config_json(secrets)

        status = SecretStatus(
            conditions=[Condition(type=RECONCILE_SUCCEEDED, status=CONDITION_TRUE)],
            secret_names=sorted(f"{s.namespace}/{s.name}" for s in secrets),
        )
        return self._update_secret(secret, status, original)

    def _update_secret(
        self, secret: Secret, status: SecretStatus, original: Secret
    ) -> ReconcileResult:
        encoded = status.to_json()
        secret.annotations[STATUS_FIELD_ANN_KEY] = encoded

        if secret == original:
            return ReconcileResult()

        _log.info("updating secret (status=%s)", encoded)
        try:
            self.client.update_secret(secret)
        except Exception as err:
            raise RuntimeError(f"Updating secret: {err}") from err
        return ReconcileResult()

    def map_secret_export_to_secret(self, obj: Any) -> list[NamespacedName]:
        """Return requests for every secret that wants image pull secrets."""
        try:
            secrets = self.client.list_secrets()
        except Exception as err:
            _log.error("Failed fetching list of all secrets: %s", err)
            return []

        result = [
            NamespacedName(namespace=s.namespace, name=s.name)
            for s in secrets
            if IMAGE_PULL_SECRET_ANN_KEY in s.annotations
        ]
        _log.info(
            "Planning to reconcile matched secrets (all=%d, matched=%d)",
            len(secrets),
            len(result),
        )
        return result

    def map_namespace_to_secret(self, namespace: Any) -> list[NamespacedName]:
        """Return requests for every secret in the given namespace."""
        try:
            secrets = self.client.list_secrets(namespace=namespace.name)
        except Exception as err:
            _log.error("Failed fetching list of all secrets: %s", err)
            return []

        result = [NamespacedName(namespace=s.namespace, name=s.name) for s in secrets]
        _log.info("Planning to reconcile matched secrets (count=%d)", len(secrets))
        return result


def _object_label(obj: Any) -> str:
    namespace = getattr(obj, "namespace", "")
    name = getattr(obj, "name", "")
    if namespace or name:
        return f"{namespace}/{name}"
    return repr(obj)


class EnqueueSecretExportToSecret:
    """Event handler for SecretExports that keeps reconcile requests to a minimum."""

    def __init__(self, secret_exports: Any, to_requests: Callable[[Any], Iterable[Any]]) -> None:
        self.secret_exports = secret_exports
        self.to_requests = to_requests

    def create(self, obj: Any, queue: Any) -> None:
        """Ignore creation; the export's status changes once it is ready."""
        _log.debug("Ignoring SecretExport create event (request=%s)", _object_label(obj))

    def update(self, old: Any, new: Any, queue: Any) -> None:
        """Enqueue only when the export's status changed."""
        if (
            isinstance(old, SecretExport)
            and isinstance(new, SecretExport)
            and old.status == new.status
        ):
            _log.info(
                "Skipping SecretExport update since status did not change (request=%s/%s)",
                old.namespace,
                old.name,
            )
            return
        self._map_and_enqueue(queue, new)

    def delete(self, obj: Any, queue: Any) -> None:
        """Drop the export from the cache, then enqueue."""
        # The secret reconciler may see the deletion before the export reconciler does.
        self.secret_exports.unexport(SecretExport(name=obj.name, namespace=obj.namespace))
        self._map_and_enqueue(queue, obj)

    def generic(self, obj: Any, queue: Any) -> None:
        """Ignore generic events; nothing is enqueued."""
        _log.debug("Ignoring SecretExport generic event (request=%s)", _object_label(obj))

    def _map_and_enqueue(self, queue: Any, obj: Any) -> None:
        for request in self.to_requests(obj):
            queue.add(request)