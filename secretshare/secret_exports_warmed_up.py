"""A secret exports provider that warms itself up on first query."""

from __future__ import annotations

import threading
from typing import Any, Callable, Optional

from secretshare.secret_exports import (
    NamespaceWildcardExclusionCheck,
    Secret,
    SecretExport,
    SecretMatcher,
)


class SecretExportsWarmedUp:
    """Delegates to another provider, calling ``warm_up_func`` once before the first match."""

    def __init__(self, delegate: Any, warm_up_func: Optional[Callable[[], None]] = None) -> None:
        self.warm_up_func = warm_up_func
        self._delegate = delegate
        self._lock = threading.Lock()
        self._warmed_up = False

    def export(self, export: SecretExport, secret: Secret) -> None:
        """Delegate an export."""
        self._delegate.export(export, secret)

    def unexport(self, export: SecretExport) -> None:
        """Delegate an unexport."""
        self._delegate.unexport(export)

    def matched_secrets_for_import(
        self,
        matcher: SecretMatcher,
        ns_is_excluded_from_wildcard: NamespaceWildcardExclusionCheck,
    ) -> list[Secret]:
        """Warm up on the first call, then delegate."""
        self._warm_up_once()
        return self._delegate.matched_secrets_for_import(matcher, ns_is_excluded_from_wildcard)

    def _warm_up_once(self) -> None:
        with self._lock:
            if self._warmed_up:
                return
            self._warmed_up = True
            if self.warm_up_func is None:
                raise TypeError("warm_up_func is not set")
            self.warm_up_func()