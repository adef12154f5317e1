"""Scope-aware auto-injection for host-created objects.

Objects built by a host framework (placed in a tree, cloned from templates,
attached after the fact) never go through a container's constructor. This
package picks the container that should serve such an object and injects its
fields exactly once, at the object's lifecycle checkpoint.

Exports:
- `Container`: DI container supporting type/factory registration, resolution
  and field injection into existing objects.
- `ScopeNode`: host component owning a container, optionally tagged or root.
- `ScopeTag` / `ScopeRegistry`: address scopes by identity instead of tree position.
- `RootScopeProvider`: lazily created process-wide fallback scope.
- `AutoInjector`, `AutoInject`, `AutoInjectBehaviour`: the once-only
  tag -> ancestor -> root resolution, as a component or as a base class.
- `Injected`: marks members that receive injected values.
"""

from ._auto_inject import (
    AutoInject,
    AutoInjectBehaviour,
    AutoInjector,
    InjectionSource,
    InjectionStatus,
    ResolutionOutcome,
)
from ._container import Container, Lifetime, ScopedContainer
from ._context import ScopeContext, get_context, init_context, teardown_context
from ._errors import ConfigurationError, ResolutionError, RootCreationError, ScopeDisposedError
from ._guard import GuardState, InjectionGuard, guard_for
from ._hierarchy import Component, HostObject
from ._injection import Injected, InjectionPoint, injection_points
from ._registry import ScopeRegistry
from ._root import RootScopeProvider
from ._scope_node import ScopeNode
from ._settings import ScopeBindSettings
from ._tags import ScopeTag


__all__ = [
    "AutoInject",
    "AutoInjectBehaviour",
    "AutoInjector",
    "Component",
    "ConfigurationError",
    "Container",
    "GuardState",
    "HostObject",
    "Injected",
    "InjectionGuard",
    "InjectionPoint",
    "InjectionSource",
    "InjectionStatus",
    "Lifetime",
    "ResolutionError",
    "ResolutionOutcome",
    "RootCreationError",
    "RootScopeProvider",
    "ScopeBindSettings",
    "ScopeContext",
    "ScopeDisposedError",
    "ScopeNode",
    "ScopeRegistry",
    "ScopeTag",
    "ScopedContainer",
    "get_context",
    "guard_for",
    "init_context",
    "injection_points",
    "teardown_context",
]
