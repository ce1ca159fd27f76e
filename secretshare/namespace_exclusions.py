"""Namespace annotation that opts a namespace out of wildcard exports."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from secretshare.secret_exports import NamespaceWildcardExclusionCheck

EXCLUSION_ANN_KEY = "secretgen.carvel.dev/excluded-from-wildcard-matching"

_log = logging.getLogger(__name__)


@dataclass
class Namespace:
    """A Kubernetes Namespace."""

    name: str = ""
    annotations: dict[str, str] = field(default_factory=dict)


def ns_has_exclusion_annotation(namespace: Namespace) -> bool:
    """Tell whether the namespace carries the wildcard exclusion annotation."""
    return EXCLUSION_ANN_KEY in namespace.annotations


def make_namespace_wildcard_exclusion_check(client: Any) -> NamespaceWildcardExclusionCheck:
    """Build a check that looks a namespace up through ``client.get_namespace``.

    A namespace that cannot be fetched counts as not excluded.
    """

    def check(ns_name: str) -> bool:
        try:
            namespace = client.get_namespace(ns_name)
        except Exception as err:
            _log.error(
                "Called to check annotation on a namespace but couldn't find "
                "(namespace=%s): %s",
                ns_name,
                err,
            )
            return False
        return ns_has_exclusion_annotation(namespace)

    return check


def _object_label(obj: Any) -> str:
    return getattr(obj, "name", "") or repr(obj)


class EnqueueDueToNamespaceChange:
    """Event handler enqueueing requests only when a namespace's exclusion changes."""

    def __init__(self, to_requests: Callable[[Any], Iterable[Any]]) -> None:
        self.to_requests = to_requests

    def create(self, obj: Any, queue: Any) -> None:
        """Ignore creation events; nothing is enqueued."""
        _log.debug("Ignoring namespace create event (namespace=%s)", _object_label(obj))

    def update(self, old: Any, new: Any, queue: Any) -> None:
        """Enqueue requests for ``new`` unless the exclusion annotation is unchanged."""
        if (
            isinstance(old, Namespace)
            and isinstance(new, Namespace)
            and ns_has_exclusion_annotation(old) == ns_has_exclusion_annotation(new)
        ):
            return
        for request in self.to_requests(new):
            queue.add(request)

    def delete(self, obj: Any, queue: Any) -> None:
        """Ignore deletion events; nothing is enqueued."""
        _log.debug("Ignoring namespace delete event (namespace=%s)", _object_label(obj))

    def generic(self, obj: Any, queue: Any) -> None:
        """Ignore generic events; nothing is enqueued."""
        _log.debug("Ignoring namespace generic event (namespace=%s)", _object_label(obj))