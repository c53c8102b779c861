"""Application state container.

AppState is created once at startup and handed to every request handler. It
decides which cache a request captures through, so call sites stay the same
whether the deployment shares one cache across requests or gives each request
its own.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from pagecapture.cache import Cache, CacheScope, new_cache
from pagecapture.capture import CapturePage

if TYPE_CHECKING:
    from pagecapture.config import Settings
    from pagecapture.protocols import CacheProtocol, PageSourceProtocol


@dataclass
class AppState:
    """Holds all shared runtime state."""

    settings: Settings
    shared_cache: Cache | None = None

    @classmethod
    def create(cls, settings: Settings) -> AppState:
        shared_cache = None
        if settings.cache.share_between_requests:
            shared_cache = new_cache(
                CacheScope.SHARED,
                verify_parent_child=settings.cache.verify_parent_child,
            )
        return cls(settings=settings, shared_cache=shared_cache)

    def cache_for_request(self, *, concurrent_subrequests: bool | None = None) -> CacheProtocol:
        """Return the cache a new top-level request should capture through.

        The shared cache when configured, otherwise a fresh cache owned by the
        request. *concurrent_subrequests* overrides the configured default.
        """
        if self.shared_cache is not None:
            return self.shared_cache
        if concurrent_subrequests is None:
            concurrent_subrequests = self.settings.cache.concurrent_subrequests
        scope = CacheScope.SUBREQUEST if concurrent_subrequests else CacheScope.REQUEST
        return new_cache(scope, verify_parent_child=self.settings.cache.verify_parent_child)

    def capture_for_request(
        self,
        source: PageSourceProtocol,
        *,
        concurrent_subrequests: bool | None = None,
    ) -> CapturePage:
        cache = self.cache_for_request(concurrent_subrequests=concurrent_subrequests)
        return CapturePage(
            cache,
            source,
            max_inheritance_depth=self.settings.capture.max_inheritance_depth,
        )
