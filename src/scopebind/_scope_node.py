from __future__ import annotations

import logging
from typing import TYPE_CHECKING, cast

from ._container import Container
from ._context import ScopeContext, get_context
from ._hierarchy import Component


if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from ._tags import ScopeTag

    Installer = Callable[[Container], None]


logger = logging.getLogger(__name__)


class ScopeNode(Component):
    """A host component that owns a dependency container.

    The container is built on ``awake()``: installers run against a child of
    the nearest built ancestor scope's container (or the root scope's, or a
    fresh one), and only once it is published does a tagged node register
    itself. Teardown unregisters before the container is disposed, so a
    registry lookup never hands out a container that is going away.
    """

    execution_order = -5000
    handles_own_injection = True

    def __init__(
        self,
        *,
        installers: Iterable[Installer] = (),
        tag: ScopeTag | None = None,
        is_root: bool = False,
        context: ScopeContext | None = None,
    ) -> None:
        super().__init__()
        self.container: Container | None = None
        self.is_root = is_root
        self._installers = list(installers)
        self._tag = tag
        self._context = context

    def __repr__(self) -> str:
        if self._tag is None:
            return f"ScopeNode({self.name!r})"
        return f"ScopeNode({self.name!r}, tag={self._tag!r})"

    @property
    def context(self) -> ScopeContext:
        return self._context or get_context()

    @property
    def tag(self) -> ScopeTag | None:
        return self._tag

    @tag.setter
    def tag(self, tag: ScopeTag | None) -> None:
        if tag is self._tag:
            return
        registry = self.context.registry
        if self.container is not None and self._tag is not None:
            registry.unregister(self._tag, self)
        self._tag = tag
        if self.container is not None and tag is not None:
            registry.register(tag, self)

    def configure(self, installer: Installer) -> ScopeNode:
        """Add an installer. On an already built node it runs right away."""
        self._installers.append(installer)
        if self.container is not None:
            installer(self.container)
        return self

    def awake(self) -> None:
        self.build()

    def build(self) -> Container:
        if self.container is not None:
            return self.container

        parent = self._parent_container()
        container = parent.create_scope() if parent is not None else Container()
        for installer in self._installers:
            installer(container)
        self.container = container

        if self._tag is not None:
            self.context.registry.register(self._tag, self)
        elif self.context.settings.diagnostics_enabled:
            logger.info("Scope %r does not have a tag assigned", self)
        return container

    def _parent_container(self) -> Container | None:
        ancestor = self.host.parent if self.host is not None else None
        while ancestor is not None:
            scope = ancestor.find_component_in_parent(ScopeNode, include_inactive=True)
            if scope is None:
                break
            if scope.container is not None:
                return scope.container
            ancestor = scope.host.parent if scope.host is not None else None

        if self.is_root:
            return None
        root = self.context.root_provider.get_or_create_root()
        if root is None or root is self:
            return None
        return root.container

    def on_destroy(self) -> None:
        if self._tag is not None:
            self.context.registry.unregister(self._tag, self)
        if self.container is not None:
            self.container.dispose()
            self.container = None

    def clone(self) -> ScopeNode:
        dup = cast("ScopeNode", super().clone())
        dup.container = None
        dup._installers = list(self._installers)
        return dup
