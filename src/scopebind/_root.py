from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from ._errors import RootCreationError
from ._settings import ScopeBindSettings


if TYPE_CHECKING:
    from collections.abc import Callable

    from ._scope_node import ScopeNode

    RootFactory = Callable[[], ScopeNode]


logger = logging.getLogger(__name__)


class RootScopeProvider:
    """Lazily creates and caches the process-wide fallback scope.

    The root is built on the first :meth:`get_or_create_root` call, from the
    factory given here or, failing that, ``settings.root_factory``. Check and
    construction happen under one lock, so concurrent callers never build two
    roots. A failed build is logged and reported as ``None``; the cache stays
    empty so a later call may try again.
    """

    def __init__(self, settings: ScopeBindSettings | None = None, *, factory: RootFactory | None = None) -> None:
        self._settings = settings or ScopeBindSettings()
        self._factory = factory
        self._root: ScopeNode | None = None
        self._creating = False
        self._lock = threading.RLock()

    @property
    def cached_root(self) -> ScopeNode | None:
        return self._root

    def set_factory(self, factory: RootFactory | None) -> None:
        with self._lock:
            self._factory = factory

    def get_or_create_root(self) -> ScopeNode | None:
        with self._lock:
            if self._root is not None:
                return self._root
            if self._creating:
                # Re-entered from the factory itself (e.g. a non-root node building).
                return None

            factory = self._factory or self._settings.root_factory
            if factory is None:
                if self._settings.diagnostics_enabled:
                    logger.info("No root scope factory configured")
                return None

            self._creating = True
            try:
                self._root = _build_root(factory)
            except Exception as exc:  # noqa: BLE001
                logger.warning("Error creating the root scope: %s", exc, exc_info=True)
                return None
            finally:
                self._creating = False

            if self._settings.diagnostics_enabled:
                logger.info("Created root scope %r", self._root)
            return self._root

    def set_root(self, scope: ScopeNode | None) -> None:
        """Replace the cached root. Objects already injected keep their values."""
        with self._lock:
            self._root = scope

    def reset(self) -> None:
        self.set_root(None)


def _build_root(factory: RootFactory) -> ScopeNode:
    from ._scope_node import ScopeNode

    try:
        node = factory()
    except Exception as exc:
        msg = f"Root scope factory {factory!r} raised {type(exc).__name__}: {exc}"
        raise RootCreationError(msg) from exc

    if not isinstance(node, ScopeNode):
        msg = f"Root scope factory {factory!r} returned {node!r}, expected a ScopeNode"
        raise RootCreationError(msg)

    node.is_root = True
    if node.container is None:
        node.build()
    if node.container is None:
        msg = f"Root scope {node!r} has no container after build"
        raise RootCreationError(msg)
    return node
