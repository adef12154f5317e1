"""Minimal in-memory host object tree.

Objects form a parent/child hierarchy and carry components. A component's
``awake()`` is the lifecycle checkpoint: it fires exactly once, the first
time its host is active in the hierarchy. When a subtree becomes active, all
pending components in it are awoken in ``execution_order`` (stable), so scope
nodes build before the objects that resolve against them.
"""

from __future__ import annotations

import copy
from collections.abc import Iterator
from typing import TypeVar

from ._guard import drop_guard
from ._injection import injection_points


C = TypeVar("C", bound="Component")


class Component:
    execution_order: int = 0
    # Hosts carrying such a component are skipped when an ancestor is injected.
    handles_own_injection: bool = False

    def __init__(self) -> None:
        self.host: HostObject | None = None
        self._awoken = False
        self._destroyed = False

    @property
    def name(self) -> str:
        return self.host.name if self.host is not None else f"<detached {type(self).__name__}>"

    def awake(self) -> None:
        """Lifecycle checkpoint. Override to run once the host is active."""

    def on_destroy(self) -> None:
        """Called once when the host (or an ancestor) is destroyed."""

    def clone(self) -> Component:
        dup = copy.copy(self)
        dup.host = None
        dup._awoken = False
        dup._destroyed = False
        drop_guard(dup)
        # Clones start uninjected: injected members fall back to class defaults.
        for point in injection_points(type(dup)):
            dup.__dict__.pop(point.name, None)
        return dup

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


class HostObject:
    def __init__(self, name: str, parent: HostObject | None = None, *, active: bool = True) -> None:
        self.name = name
        self.parent: HostObject | None = None
        self.children: list[HostObject] = []
        self.components: list[Component] = []
        self.active_self = active
        self.destroyed = False
        if parent is not None:
            self.set_parent(parent)

    def __repr__(self) -> str:
        return f"HostObject({self.name!r})"

    @property
    def active_in_hierarchy(self) -> bool:
        node: HostObject | None = self
        while node is not None:
            if not node.active_self or node.destroyed:
                return False
            node = node.parent
        return True

    def set_parent(self, parent: HostObject | None) -> None:
        if self.parent is not None:
            self.parent.children.remove(self)
        self.parent = parent
        if parent is not None:
            parent.children.append(self)
        self._awaken_pending()

    def add_component(self, component: C) -> C:
        if component.host is not None:
            msg = f"{component!r} is already attached to {component.host!r}"
            raise ValueError(msg)
        component.host = self
        self.components.append(component)
        self._awaken_pending()
        return component

    def get_component(self, kind: type[C]) -> C | None:
        for component in self.components:
            if isinstance(component, kind):
                return component
        return None

    def get_components_in_children(self, kind: type[C]) -> list[C]:
        return [c for node in self.walk() for c in node.components if isinstance(c, kind)]

    def find_component_in_parent(self, kind: type[C], *, include_inactive: bool = False) -> C | None:
        """Return the first ``kind`` component on this object or its nearest ancestor.

        Inactive objects are skipped unless ``include_inactive`` is set.
        """
        node: HostObject | None = self
        while node is not None:
            if include_inactive or node.active_in_hierarchy:
                found = node.get_component(kind)
                if found is not None:
                    return found
            node = node.parent
        return None

    def walk(self) -> Iterator[HostObject]:
        """Depth-first pre-order over this object and its descendants."""
        yield self
        for child in list(self.children):
            yield from child.walk()

    def set_active(self, active: bool) -> None:
        self.active_self = active
        if active:
            self._awaken_pending()

    def clone(self, parent: HostObject | None = None, *, active: bool | None = None) -> HostObject:
        """Copy this subtree without awakening anything.

        The copy's root takes ``active`` when given, else this object's own
        flag; descendants keep theirs.
        """
        dup = HostObject(self.name, active=self.active_self if active is None else active)
        for component in self.components:
            twin = component.clone()
            twin.host = dup
            dup.components.append(twin)
        for child in self.children:
            child_dup = child.clone()
            child_dup.parent = dup
            dup.children.append(child_dup)
        if parent is not None:
            dup.parent = parent
            parent.children.append(dup)
        return dup

    def instantiate(self, parent: HostObject | None = None) -> HostObject:
        """Clone this object as a template and activate it like the template."""
        instance = self.clone(parent, active=False)
        instance.set_active(self.active_self)
        return instance

    def destroy(self) -> None:
        if self.destroyed:
            return
        for child in list(self.children):
            child.destroy()
        for component in self.components:
            if not component._destroyed:
                component._destroyed = True
                if component._awoken:
                    component.on_destroy()
        self.destroyed = True
        if self.parent is not None:
            self.parent.children.remove(self)
            self.parent = None

    def _awaken_pending(self) -> None:
        if not self.active_in_hierarchy:
            return

        pending = [
            component
            for node in self._walk_active()
            for component in node.components
            if not component._awoken and not component._destroyed
        ]
        # sorted() is stable: equal orders keep hierarchy order.
        for component in sorted(pending, key=lambda c: c.execution_order):
            if component._awoken or component.host is None or not component.host.active_in_hierarchy:
                continue
            component._awoken = True
            component.awake()

    def _walk_active(self) -> Iterator[HostObject]:
        yield self
        for child in list(self.children):
            if child.active_self:
                yield from child._walk_active()
