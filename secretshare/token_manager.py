"""Caching of service account tokens with refresh before they expire."""

from __future__ import annotations

import copy
import json
import logging
import random
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

MAX_TTL = timedelta(hours=2)
GC_PERIOD = timedelta(hours=24)
MAX_JITTER = timedelta(seconds=10)

_log = logging.getLogger(__name__)


@dataclass
class TokenRequest:
    """A request for a service account token and, once granted, its status."""

    token: str = ""
    expiration_timestamp: Optional[datetime] = None
    expiration_seconds: Optional[int] = None
    audiences: list[str] = field(default_factory=list)
    bound_object_ref: Optional[dict[str, str]] = None


@dataclass
class TokenReview:
    """The outcome of reviewing a token."""

    token: str = ""
    authenticated: bool = False


class TokenRefreshError(RuntimeError):
    """A token could not be fetched and no usable cached token exists."""


TokenGetter = Callable[[str, str, TokenRequest], TokenRequest]
TokenReviewer = Callable[[TokenReview], TokenReview]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _half_seconds(seconds: int) -> int:
    """Half of ``seconds``, truncated toward zero."""
    scaled = seconds * 50
    return scaled // 100 if scaled >= 0 else -((-scaled) // 100)


class Manager:
    """Serves service account tokens from a cache, refreshing them as needed.

    ``get_token(name, namespace, request)`` fetches a fresh token and
    ``review_token(review)`` checks whether a token is still accepted;
    both raise on failure.
    """

    def __init__(
        self,
        get_token: TokenGetter,
        review_token: TokenReviewer,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.get_token = get_token
        self.review_token = review_token
        self.clock = clock or _utc_now
        self._cache: dict[str, TokenRequest] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def get_service_account_token(
        self, namespace: str, name: str, request: TokenRequest
    ) -> TokenRequest:
        """Return a cached token, or fetch a new one when a refresh is due.

        If the refresh fails but the cached token has not expired yet, the
        cached token is returned and the failure is logged.
        """
        key = f"{json.dumps(name)}/{json.dumps(namespace)}"

        with self._lock:
            cached = self._cache.get(key)

        if cached is not None and not self.requires_refresh(cached):
            return cached

        try:
            fresh = self.get_token(name, namespace, request)
        except Exception as err:
            if cached is None:
                raise TokenRefreshError(f"Fetch token: {err}") from err
            if self._expired(cached):
                raise TokenRefreshError(
                    f"Token {key} expired and refresh failed: {err}"
                ) from err
            _log.error("Update token (cacheKey=%s): %s", key, err)
            return cached

        with self._lock:
            self._cache[key] = fresh
        return fresh

    def cleanup(self) -> None:
        """Drop every expired token from the cache."""
        with self._lock:
            for key in [k for k, tr in self._cache.items() if self._expired(tr)]:
                del self._cache[key]

    def start_gc(self, period: timedelta = GC_PERIOD) -> threading.Event:
        """Run ``cleanup`` now and then every ``period`` in a daemon thread.

        Setting the returned event stops the collector.
        """
        stop = threading.Event()
        interval = period.total_seconds()

        def loop() -> None:
            while not stop.is_set():
                self.cleanup()
                stop.wait(interval)

        threading.Thread(target=loop, name="token-gc", daemon=True).start()
        return stop

    def _expired(self, request: TokenRequest) -> bool:
        return self.clock() > request.expiration_timestamp

    def requires_refresh(self, request: TokenRequest) -> bool:
        """Tell whether a token is rejected, too old, or past half its lifetime."""
        try:
            review = self.review_token(TokenReview(token=request.token))
        except Exception:
            return True
        if not review.authenticated:
            return True

        if request.expiration_seconds is None:
            redacted = copy.deepcopy(request)
            redacted.token = ""
            _log.info("Expiration seconds was nil for token request: %r", redacted)
            return False

        now = self.clock()
        exp = request.expiration_timestamp
        issued_at = exp - timedelta(seconds=request.expiration_seconds)

        jitter = timedelta(seconds=int(random.random() * MAX_JITTER.total_seconds()))
        if now > issued_at + (MAX_TTL - jitter):
            return True

        # Refresh once within 50% of the lifetime (plus jitter) of the expiration.
        half = timedelta(seconds=_half_seconds(request.expiration_seconds))
        return now > exp - half - jitter