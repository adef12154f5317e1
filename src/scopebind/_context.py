"""Process-wide scope context.

The registry and root provider are shared by every scope node and
auto-injector in the process. Instead of two ambient singletons they live on
one explicit :class:`ScopeContext`, with defined init and teardown so tests
and embedding hosts can swap it out.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ._registry import ScopeRegistry
from ._root import RootScopeProvider
from ._settings import ScopeBindSettings


if TYPE_CHECKING:
    from ._root import RootFactory


@dataclass
class ScopeContext:
    settings: ScopeBindSettings
    registry: ScopeRegistry
    root_provider: RootScopeProvider

    @classmethod
    def create(
        cls,
        settings: ScopeBindSettings | None = None,
        *,
        root_factory: RootFactory | None = None,
    ) -> ScopeContext:
        settings = settings or ScopeBindSettings()
        return cls(
            settings=settings,
            registry=ScopeRegistry(settings),
            root_provider=RootScopeProvider(settings, factory=root_factory),
        )

    def teardown(self) -> None:
        self.root_provider.reset()
        self.registry.clear()


_lock = threading.Lock()
_current: ScopeContext | None = None


def get_context() -> ScopeContext:
    """Return the current context, creating a default one on first use."""
    global _current  # noqa: PLW0603
    with _lock:
        if _current is None:
            _current = ScopeContext.create()
        return _current


def init_context(
    settings: ScopeBindSettings | None = None,
    *,
    root_factory: RootFactory | None = None,
) -> ScopeContext:
    """Install a fresh context, then tear down the one it replaced (if any).

    Teardown takes the root provider lock, and a root factory may call
    :func:`get_context`, so it runs after the module lock is released.
    """
    global _current  # noqa: PLW0603
    fresh = ScopeContext.create(settings, root_factory=root_factory)
    with _lock:
        old, _current = _current, fresh
    if old is not None:
        old.teardown()
    return fresh


def teardown_context() -> None:
    global _current  # noqa: PLW0603
    with _lock:
        old, _current = _current, None
    if old is not None:
        old.teardown()
