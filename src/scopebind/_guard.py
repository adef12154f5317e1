"""Per-object injection guard.

The guard is shared by every path that can inject an object: the lifecycle
checkpoint run by :class:`~scopebind.AutoInjector` and explicit helpers such
as :meth:`Container.inject_into` / :meth:`Container.instantiate`. Whoever
injects first marks it, and the checkpoint becomes a verified no-op.
"""

from __future__ import annotations

import threading
import weakref
from dataclasses import dataclass
from enum import Enum


GUARD_ATTR = "__scopebind_guard__"

# Guards for objects without a __dict__ (e.g. __slots__ classes).
_slotted_guards: weakref.WeakKeyDictionary[object, InjectionGuard] = weakref.WeakKeyDictionary()
_slotted_lock = threading.Lock()


class GuardState(Enum):
    UNINJECTED = "uninjected"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class InjectionGuard:
    state: GuardState = GuardState.UNINJECTED

    @property
    def injected(self) -> bool:
        """True once any attempt happened, successful or not. Never reset."""
        return self.state is not GuardState.UNINJECTED

    def mark(self, state: GuardState) -> None:
        if state is GuardState.UNINJECTED:
            msg = "An injection guard cannot be moved back to UNINJECTED"
            raise ValueError(msg)
        # A later success may upgrade a failed attempt (explicit re-injection),
        # but a failure never downgrades a success.
        if self.state is GuardState.SUCCEEDED:
            return
        self.state = state


def guard_for(obj: object) -> InjectionGuard:
    """Return the guard attached to ``obj``, creating it on first access.

    Objects with neither a ``__dict__`` nor weak-reference support cannot
    carry a guard and raise ``TypeError``.
    """
    attrs = getattr(obj, "__dict__", None)
    if attrs is None:
        with _slotted_lock:
            guard = _slotted_guards.get(obj)
            if guard is None:
                guard = InjectionGuard()
                _slotted_guards[obj] = guard
            return guard

    guard = attrs.get(GUARD_ATTR)
    if guard is None:
        guard = InjectionGuard()
        attrs[GUARD_ATTR] = guard
    return guard


def mark_injected(obj: object) -> None:
    guard_for(obj).mark(GuardState.SUCCEEDED)


def drop_guard(obj: object) -> None:
    """Forget the guard of a freshly cloned object (clones start uninjected)."""
    attrs = getattr(obj, "__dict__", None)
    if attrs is not None:
        attrs.pop(GUARD_ATTR, None)
    else:
        with _slotted_lock:
            _slotted_guards.pop(obj, None)
