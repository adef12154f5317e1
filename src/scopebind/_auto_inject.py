"""Auto-injection for objects the host builds outside the container.

Resolution order, first match wins:

1. the scope registered under the object's explicit tag;
2. the nearest scope node on the object or its ancestors (inactive included);
3. the lazily created root scope.

A scope only counts if its container is built. The attempt is made once per
object; a failure is terminal and leaves injected members at their defaults.
Nothing raises out of :meth:`AutoInjector.run_checkpoint`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from ._context import ScopeContext, get_context
from ._guard import GuardState, guard_for
from ._hierarchy import Component, HostObject
from ._scope_node import ScopeNode
from ._tags import ScopeTag


logger = logging.getLogger(__name__)


class InjectionStatus(Enum):
    INJECTED = "injected"
    FAILED = "failed"
    SKIPPED = "skipped"  # already processed, by this or another path


class InjectionSource(Enum):
    TAGGED = "tagged"
    ANCESTOR = "ancestor"
    ROOT = "root"


@dataclass(frozen=True)
class ResolutionOutcome:
    status: InjectionStatus
    source: InjectionSource | None = None
    scope: ScopeNode | None = None

    @property
    def succeeded(self) -> bool:
        return self.status is InjectionStatus.INJECTED


class AutoInjector:
    def __init__(self, context: ScopeContext | None = None) -> None:
        self._context = context

    @property
    def context(self) -> ScopeContext:
        return self._context or get_context()

    def run_checkpoint(self, target: object, explicit_tag: ScopeTag | None = None) -> ResolutionOutcome:
        """Inject ``target`` from the first usable scope, at most once.

        ``target`` is a :class:`HostObject` (its whole subtree is injected), a
        :class:`Component` (its host is searched for ancestor scopes), or any
        other object (tag and root lookups only).
        """
        diagnostics = self.context.settings.diagnostics_enabled
        try:
            guard = guard_for(target)
        except TypeError as exc:
            logger.warning("Injection FAILED for %r: cannot track its injection state (%s)", target, exc)
            return ResolutionOutcome(InjectionStatus.FAILED)
        if guard.injected:
            if diagnostics:
                logger.info("%r already processed (%s); skipping auto-injection", target, guard.state.value)
            return ResolutionOutcome(InjectionStatus.SKIPPED)

        # Marked before resolving so a checkpoint re-entered during injection is a no-op.
        guard.mark(GuardState.FAILED)

        selected = self._select_scope(target, explicit_tag)
        if selected is None:
            logger.warning(
                "Injection FAILED for %r. No tagged, ancestor or root scope with a built container was found.",
                target,
            )
            return ResolutionOutcome(InjectionStatus.FAILED)

        source, scope = selected
        try:
            scope.container.inject_into(target)
        except Exception:  # noqa: BLE001
            logger.warning("Injection FAILED for %r using %s scope %r", target, source.value, scope, exc_info=True)
            return ResolutionOutcome(InjectionStatus.FAILED, source, scope)

        guard.mark(GuardState.SUCCEEDED)
        if diagnostics:
            logger.info("Injected %r using %s scope %r", target, source.value, scope)
        return ResolutionOutcome(InjectionStatus.INJECTED, source, scope)

    def _select_scope(
        self, target: object, explicit_tag: ScopeTag | None
    ) -> tuple[InjectionSource, ScopeNode] | None:
        if explicit_tag is not None:
            scope = self.context.registry.get_scope(explicit_tag)
            if _is_usable(scope):
                return InjectionSource.TAGGED, scope
            logger.warning(
                "No live scope registered for tag %r (wanted by %r); falling back to ancestor and root scopes",
                explicit_tag,
                target,
            )

        host = _host_of(target)
        if host is not None:
            scope = host.find_component_in_parent(ScopeNode, include_inactive=True)
            if _is_usable(scope):
                return InjectionSource.ANCESTOR, scope

        try:
            root = self.context.root_provider.get_or_create_root()
        except Exception as exc:  # noqa: BLE001
            logger.warning("Error trying to get the root scope for %r: %s", target, exc)
            root = None
        if _is_usable(root):
            return InjectionSource.ROOT, root

        return None


def _is_usable(scope: ScopeNode | None) -> bool:
    return scope is not None and scope.container is not None and not scope.container.disposed


def _host_of(target: object) -> HostObject | None:
    if isinstance(target, HostObject):
        return target
    if isinstance(target, Component):
        return target.host
    return None


class AutoInject(Component):
    """Attach to a host object to have its subtree injected on ``awake()``."""

    execution_order = -4900
    handles_own_injection = True

    def __init__(self, target_tag: ScopeTag | None = None, *, injector: AutoInjector | None = None) -> None:
        super().__init__()
        self.target_tag = target_tag
        self.last_outcome: ResolutionOutcome | None = None
        self._injector = injector or AutoInjector()

    def awake(self) -> None:
        if self.host is None:
            return
        self.last_outcome = self._injector.run_checkpoint(self.host, self.target_tag)

    def clone(self) -> Component:
        dup = super().clone()
        dup.last_outcome = None
        return dup


class AutoInjectBehaviour(Component):
    """Base class for components whose host is injected before their own ``awake()`` logic.

    Subclasses that override ``awake()`` call ``super().awake()`` first::

        class Consumer(AutoInjectBehaviour):
            service: Injected[TestService] = None

            def awake(self):
                super().awake()
                self.ready = self.service is not None

    """

    execution_order = -4900
    handles_own_injection = True
    target_tag: ScopeTag | None = None

    def __init__(self, *, target_tag: ScopeTag | None = None, injector: AutoInjector | None = None) -> None:
        super().__init__()
        if target_tag is not None:
            self.target_tag = target_tag
        self.last_outcome: ResolutionOutcome | None = None
        self._injector = injector or AutoInjector()

    def awake(self) -> None:
        if self.host is None:
            return
        self.last_outcome = self._injector.run_checkpoint(self.host, self.target_tag)

    def clone(self) -> Component:
        dup = super().clone()
        dup.last_outcome = None
        return dup
