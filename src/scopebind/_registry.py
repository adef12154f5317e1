from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from ._errors import ConfigurationError
from ._settings import ScopeBindSettings


if TYPE_CHECKING:
    from ._container import Container
    from ._scope_node import ScopeNode
    from ._tags import ScopeTag


logger = logging.getLogger(__name__)


class ScopeRegistry:
    """Maps each :class:`ScopeTag` to the scope node currently serving it.

    None of the operations raise. Invalid arguments are logged as errors and
    ignored; conflicts and stale unregistrations are logged as warnings.
    """

    def __init__(self, settings: ScopeBindSettings | None = None) -> None:
        self._settings = settings or ScopeBindSettings()
        self._scopes: dict[ScopeTag, ScopeNode] = {}
        self._lock = threading.RLock()

    def register(self, tag: ScopeTag | None, scope: ScopeNode | None) -> None:
        try:
            _require(tag, scope, "register")
        except ConfigurationError as exc:
            logger.error("%s", exc)
            return

        with self._lock:
            existing = self._scopes.get(tag)
            if existing is scope:
                return
            if existing is not None:
                logger.warning(
                    "Overwriting registration for tag %r. Previous scope: %r, new scope: %r",
                    tag,
                    existing,
                    scope,
                )
            self._scopes[tag] = scope

        if self._settings.diagnostics_enabled:
            logger.info("Registered scope %r with tag %r", scope, tag)

    def unregister(self, tag: ScopeTag | None, scope: ScopeNode | None) -> None:
        """Remove the binding for ``tag`` only if it still points at ``scope``.

        A scope torn down after a newer one took over its tag leaves the
        newer binding alone.
        """
        try:
            _require(tag, scope, "unregister")
        except ConfigurationError as exc:
            logger.error("%s", exc)
            return

        with self._lock:
            registered = self._scopes.get(tag)
            if registered is None:
                return
            if registered is not scope:
                logger.warning(
                    "Did not unregister scope %r for tag %r because a different scope (%r) is currently registered",
                    scope,
                    tag,
                    registered,
                )
                return
            del self._scopes[tag]

        if self._settings.diagnostics_enabled:
            logger.info("Unregistered scope %r with tag %r", scope, tag)

    def get_scope(self, tag: ScopeTag | None) -> ScopeNode | None:
        if tag is None:
            return None
        with self._lock:
            return self._scopes.get(tag)

    def get_container(self, tag: ScopeTag | None) -> Container | None:
        scope = self.get_scope(tag)
        return scope.container if scope is not None else None

    def clear(self) -> None:
        with self._lock:
            self._scopes.clear()

    def __contains__(self, tag: object) -> bool:
        with self._lock:
            return tag in self._scopes

    def __len__(self) -> int:
        with self._lock:
            return len(self._scopes)


def _require(tag: ScopeTag | None, scope: ScopeNode | None, action: str) -> None:
    if tag is None:
        msg = f"Cannot {action} with a missing tag."
        raise ConfigurationError(msg)
    if scope is None:
        msg = f"Cannot {action} a missing scope for tag {tag!r}."
        raise ConfigurationError(msg)
