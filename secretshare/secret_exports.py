"""In-memory cache of exported secrets and matching of imports against it."""

from __future__ import annotations

import copy
import logging
import math
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Optional

WEIGHT_ANN_KEY = "secretgen.carvel.dev/weight"
ALL_NAMESPACES = "*"

NamespaceWildcardExclusionCheck = Callable[[str], bool]

_log = logging.getLogger(__name__)


@dataclass
class Secret:
    """A Kubernetes Secret."""

    name: str = ""
    namespace: str = ""
    type: str = ""
    data: dict[str, bytes] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)
    resource_version: str = ""
    deletion_timestamp: Optional[datetime] = None


@dataclass
class SecretExport:
    """A SecretExport resource offering a same-named secret to other namespaces."""

    name: str = ""
    namespace: str = ""
    to_namespace: str = ""
    to_namespaces: list[str] = field(default_factory=list)
    annotations: dict[str, str] = field(default_factory=dict)
    status: dict[str, Any] = field(default_factory=dict)
    deletion_timestamp: Optional[datetime] = None

    def static_to_namespaces(self) -> list[str]:
        """Return all destination namespaces named by this export."""
        result = [self.to_namespace] if self.to_namespace else []
        result.extend(self.to_namespaces)
        return result


@dataclass
class SecretMatcher:
    """Criteria for matching exported secrets."""

    from_name: str = ""
    from_namespace: str = ""
    to_namespace: str = ""
    subject: str = ""
    secret_type: str = ""


def _parse_weight(value: str) -> float:
    """Parse a weight annotation, falling back to 0.0 for invalid values."""
    if not value or value != value.strip() or "_" in value:
        return 0.0
    try:
        weight = float(value)
    except ValueError:
        return 0.0
    if math.isnan(weight):
        return 0.0
    if math.isinf(weight) and value.lstrip("+-").lower() not in ("inf", "infinity"):
        return 0.0
    return weight


@dataclass(frozen=True)
class _ExportedSecret:
    export: SecretExport
    secret: Optional[Secret]

    @classmethod
    def create(cls, export: Optional[SecretExport], secret: Optional[Secret]) -> "_ExportedSecret":
        if export is None:
            raise ValueError("Internal inconsistency: nil export")
        if not export.namespace:
            raise ValueError("Internal inconsistency: missing export namespace")
        if not export.name:
            raise ValueError("Internal inconsistency: missing export name")
        if secret is not None:
            if export.namespace != secret.namespace or export.name != secret.name:
                raise ValueError(
                    "Internal inconsistency: export and secret names do not match"
                )
            secret = copy.deepcopy(secret)
        return cls(copy.deepcopy(export), secret)

    @property
    def key(self) -> str:
        return f"{self.export.namespace}/{self.export.name}"

    def secret_copy(self) -> Secret:
        return copy.deepcopy(self.secret)

    def matches(
        self, matcher: SecretMatcher, ns_is_excluded: NamespaceWildcardExclusionCheck
    ) -> bool:
        if matcher.subject:
            _log.info("Warning: Matcher has empty subject and will never match any secret")
            return False
        secret = self.secret
        if matcher.secret_type and matcher.secret_type != secret.type:
            return False
        if matcher.from_name and matcher.from_name != secret.name:
            return False
        if matcher.from_namespace and matcher.from_namespace != secret.namespace:
            return False
        return self._matches_namespace(matcher.to_namespace, ns_is_excluded)

    def _matches_namespace(
        self, ns_to_match: str, ns_is_excluded: NamespaceWildcardExclusionCheck
    ) -> bool:
        for ns in self.export.static_to_namespaces():
            if ns == ns_to_match:
                return True
            if ns == ALL_NAMESPACES and not ns_is_excluded(ns_to_match):
                return True
        return False

    def sort_key(self, to_ns: str) -> tuple[float, bool, bool, str]:
        """Ascending key: the greatest key is the most preferred secret."""
        weight = _parse_weight(self.export.annotations.get(WEIGHT_ANN_KEY, ""))
        matches_exactly = to_ns in self.export.static_to_namespaces()
        return (
            weight,
            self.secret.namespace == to_ns,
            matches_exactly,
            f"{self.secret.namespace}/{self.secret.name}",
        )


class SecretExports:
    """Thread-safe in-memory cache of exported secrets."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._exported: dict[str, _ExportedSecret] = {}

    def export(self, export: SecretExport, secret: Secret) -> None:
        """Cache copies of an export and its underlying secret."""
        if secret is None:
            raise ValueError("Internal inconsistency: expected non-nil secret")
        exported = _ExportedSecret.create(export, secret)
        with self._lock:
            self._exported[exported.key] = exported

    def unexport(self, export: SecretExport) -> None:
        """Drop the cached export and its secret."""
        exported = _ExportedSecret.create(export, None)
        with self._lock:
            self._exported.pop(exported.key, None)

    def matched_secrets_for_import(
        self,
        matcher: SecretMatcher,
        ns_is_excluded_from_wildcard: NamespaceWildcardExclusionCheck,
    ) -> list[Secret]:
        """Return copies of matching secrets, least preferred first.

        Preference goes by highest weight, then secrets in the destination
        namespace, then exact namespace matches over wildcard ones, and
        finally by namespace/name.
        """
        with self._lock:
            matched = [
                exported
                for exported in self._exported.values()
                if exported.matches(matcher, ns_is_excluded_from_wildcard)
            ]
            matched.sort(key=lambda es: es.sort_key(matcher.to_namespace))
            return [exported.secret_copy() for exported in matched]