from __future__ import annotations

import inspect
import logging
import threading
import typing
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from typing import (
    TYPE_CHECKING,
    Any,
    ParamSpec,
    Protocol,
    TypeVar,
    get_type_hints,
    overload,
)

from ._errors import ResolutionError, ScopeDisposedError
from ._guard import mark_injected
from ._hierarchy import HostObject
from ._injection import injection_points


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Mapping

    T = TypeVar("T")
    P = ParamSpec("P")

    Token = type[T] | str


class Lifetime(Enum):
    SINGLETON = "singleton"
    TRANSIENT = "transient"


@dataclass
class Registration:
    factory: Callable[..., object] | None
    impl: type | None
    lifetime: Lifetime
    cached_instance: object | None = None  # cached singleton


class Container:
    """Object resolver bound to a scope node.

    - register types, factories or pre-built instances
    - resolve with constructor injection (auto-wiring concrete classes)
    - inject fields into objects it did not construct
    - child scopes that fall back to their parent
    """

    def __init__(self) -> None:
        self._registrations: dict[Any, Registration] = {}
        self._lock = threading.RLock()
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    @overload
    def register(
        self,
        token: type[T],
        impl: type[T],
        *,
        factory: None = ...,
        lifetime: Lifetime = Lifetime.SINGLETON,
    ) -> None: ...

    @overload
    def register(
        self,
        token: type[T],
        impl: None = ...,
        *,
        factory: Callable[P, T],
        lifetime: Lifetime = Lifetime.SINGLETON,
    ) -> None: ...

    @overload
    def register(
        self,
        token: str,
        impl: type | None = ...,
        *,
        factory: Callable[..., Any] | None = ...,
        lifetime: Lifetime = Lifetime.SINGLETON,
    ) -> None: ...

    def register(
        self,
        token: Token[T],
        impl: type | None = None,
        *,
        factory: Callable[..., Any] | None = None,
        lifetime: Lifetime = Lifetime.SINGLETON,
    ) -> None:
        """Register a concrete type or a factory for a token.

        Example:
          container.register(TestService, lifetime=Lifetime.SINGLETON)
          container.register(IFoo, FooImpl)
          container.register("db", factory=create_db)

        A class token with neither ``impl`` nor ``factory`` registers itself.
        """
        if impl is not None and factory is not None:
            msg = "Provide either `impl` or `factory`, not both."
            raise ValueError(msg)

        if impl is None and factory is None:
            if not inspect.isclass(token):
                msg = "Either `impl` or `factory` must be provided."
                raise ValueError(msg)
            impl = token

        if impl is not None and inspect.isclass(token):
            self._validate_impl(cls=token, impl=impl)

        with self._lock:
            self._ensure_alive()
            self._registrations[token] = Registration(factory=factory, impl=impl, lifetime=lifetime)

    def register_instance(
        self,
        token: Token[T],
        instance: object,
        *,
        replace: bool = False,
    ) -> None:
        """Register a pre-built instance (always singleton)."""
        if inspect.isclass(token):
            self._validate_impl(cls=token, impl=type(instance))

        with self._lock:
            self._ensure_alive()
            if not replace and token in self._registrations:
                msg = f"Token {token!r} is already registered. Pass replace=True to overwrite."
                raise KeyError(msg)
            self._registrations[token] = Registration(
                factory=None,
                impl=None,
                lifetime=Lifetime.SINGLETON,
                cached_instance=instance,
            )

    def is_registered(self, token: Any) -> bool:
        with self._lock:
            return token in self._registrations

    @overload
    def resolve(self, token: type[T], **overrides: Any) -> T: ...

    @overload
    def resolve(self, token: str, **overrides: Any) -> object: ...

    def resolve(self, token: Token[T], **overrides: Any) -> object:
        """Resolve the token to an instance.

        - If a registration exists: use it (factory/impl).
        - If no registration and token is a concrete class: attempt auto-wiring by type hints.
        `overrides` lets you explicitly supply constructor args.
        """
        with self._lock:
            self._ensure_alive()
            reg = self._registrations.get(token)

            if reg and reg.lifetime == Lifetime.SINGLETON and reg.cached_instance is not None:
                return reg.cached_instance

            if reg and reg.factory:
                instance = reg.factory(self, **overrides)
            elif reg and reg.impl:
                instance = self._construct(reg.impl, **overrides)
            elif inspect.isclass(token) and not _is_protocol(token):
                instance = self._construct(token, **overrides)
            else:
                msg = f"No registration found for token: {token!r}"
                raise KeyError(msg)

            if reg and reg.factory and inspect.isclass(token):
                self._check_factory_result(token, instance)

            if reg and reg.lifetime == Lifetime.SINGLETON:
                reg.cached_instance = instance

            return instance

    def _construct(self, cls: type[T], **overrides: Any) -> T:
        return Constructor(self).construct(cls, **overrides)

    def resolve_param(
        self,
        cls: type[T],
        name: str,
        p: inspect.Parameter,
        bound: inspect.BoundArguments,
        hints: dict[str, Any],
    ) -> Any:
        """Resolving param.

        Resolution precedence:
        1. explicit override
        2. type-based registration
        3. name-based registration
        4. default
        5. error.
        """
        if p.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            return inspect.Signature.empty

        if name in bound.arguments:
            return bound.arguments[name]

        ann = hints.get(name, inspect.Signature.empty)
        if ann is not inspect.Signature.empty and self._can_resolve_type(ann):
            try:
                return self.resolve(ann)
            except KeyError:
                if self.is_registered(name):
                    return self.resolve(name)

        if self.is_registered(name):
            return self.resolve(name)

        if p.default is not inspect.Parameter.empty:
            return p.default

        ann_repr = getattr(ann, "__name__", repr(ann)) if ann is not inspect.Signature.empty else "no-annotation"
        msg = (
            f"Cannot satisfy constructor parameter '{name}' for {cls.__name__}'. "
            f"No override/registration/default found (annotation: {ann_repr})."
        )
        raise ResolutionError(msg)

    def _can_resolve_type(self, ann: Any) -> bool:
        if self.is_registered(ann):
            return True
        return inspect.isclass(ann) and getattr(ann, "__module__", "") != "builtins"

    def create_scope(self) -> ScopedContainer:
        """Create a scope that prefers its own registrations/instances, falls back to parent."""
        return ScopedContainer(self, _from_parent=True)

    def inject_into(self, target: object) -> None:
        """Assign resolved values onto the injection points of an existing object.

        A :class:`HostObject` target has every component of its subtree
        injected, except below descendants that own a scope node or their own
        auto-inject checkpoint; those are left to their own checkpoint.
        Failures are logged per member and absorbed; the member keeps its
        default. The guards of everything injected are marked afterwards,
        whichever path called this.
        """
        if isinstance(target, HostObject):
            nodes = list(_injection_subtree(target))
            for node in nodes:
                for component in list(node.components):
                    self._inject_members(component)
            for node in nodes:
                mark_injected(node)
            return

        self._inject_members(target)
        try:
            mark_injected(target)
        except TypeError as exc:
            logger.warning("Injected %r but cannot track its injection state (%s)", target, exc)

    def _inject_members(self, obj: object) -> None:
        for point in injection_points(type(obj)):
            try:
                value = self.resolve(point.token)
            except Exception:  # noqa: BLE001
                logger.warning(
                    "Could not inject '%s' into %r (token %r); leaving it unset",
                    point.name,
                    obj,
                    point.token,
                    exc_info=True,
                )
                continue
            setattr(obj, point.name, value)

    def instantiate(self, template: HostObject, parent: HostObject | None = None) -> HostObject:
        """Clone ``template`` under ``parent``, inject it, then activate it.

        Injection happens while the clone is still inactive, so every
        component sees its dependencies in ``awake()`` and auto-injection
        checkpoints on the clone are no-ops.
        """
        instance = template.clone(parent, active=False)
        self.inject_into(instance)
        instance.set_active(template.active_self)
        return instance

    def dispose(self) -> None:
        with self._lock:
            self._registrations.clear()
            self._disposed = True

    def _ensure_alive(self) -> None:
        if self._disposed:
            msg = "Container has been disposed"
            raise ScopeDisposedError(msg)

    def _check_factory_result(self, token: type, instance: object) -> None:
        if _is_protocol(token):
            if _is_runtime_checkable_protocol(token) and not isinstance(instance, token):
                msg = f"Resolved instance {type(instance).__name__} does not implement runtime protocol {token.__name__}"
                raise TypeError(msg)
        elif not isinstance(instance, token):
            msg = f"Resolved instance {type(instance).__name__} is not an instance of {token.__name__}"
            raise TypeError(msg)

    def _validate_impl(self, cls: type, impl: type) -> None:
        """Validate that 'impl' implements 'cls'.

        - For normal classes/ABCs: require issubclass(impl, cls).
        - For runtime-checkable Protocols: require every protocol member on impl.
        - Other Protocols are structural only and accepted as-is.
        """
        if not _is_protocol(cls):
            if not issubclass(impl, cls):
                msg = f"Implementation {impl.__name__} must be a subclass of {cls.__name__}"
                raise TypeError(msg)
            return

        if cls in getattr(impl, "__mro__", ()) or not _is_runtime_checkable_protocol(cls):
            return

        missing = [name for name in _protocol_members(cls) if not hasattr(impl, name)]
        if missing:
            msg = f"Implementation {impl.__name__} does not conform to protocol {cls.__name__}: missing {', '.join(missing)}"
            raise TypeError(msg)


class ScopedContainer(Container):
    """A child container that looks up in itself first, then falls back to a parent container."""

    def __init__(self, parent: Container, *, _from_parent: bool = False) -> None:
        if not _from_parent:
            msg = "ScopedContainer instances must be created via Container.create_scope()"
            raise RuntimeError(msg)
        super().__init__()
        self._parent = parent

    @property
    def parent(self) -> Container:
        return self._parent

    @overload
    def resolve(self, token: type[T], **overrides: Any) -> T: ...

    @overload
    def resolve(self, token: str, **overrides: Any) -> object: ...

    def resolve(self, token: Token[T], **overrides: Any) -> object:
        """Resolve the token to an instance.

        Resolves the token using registrations in this scope. If the token is not
        registered locally, resolution falls back to the parent container.
        """
        with self._lock:
            self._ensure_alive()
            if token not in self._registrations:
                return self._parent.resolve(token, **overrides)

            return super().resolve(token, **overrides)

    def is_registered(self, token: Any) -> bool:
        return super().is_registered(token) or self._parent.is_registered(token)


class Constructor:
    def __init__(self, resolver: Container) -> None:
        self._resolver = resolver

    def construct(self, cls: type[T], **overrides: Any) -> T:
        if not any("__init__" in klass.__dict__ for klass in cls.__mro__[:-1]):
            return cls()

        sig = inspect.signature(cls)
        params = sig.parameters

        overrides = overrides or {}
        overrides.pop("self", None)

        kw_overrides, posonly_overrides = self._split_positional_only(overrides, params)

        bound = self._bind_explicit(sig, kw_overrides, cls)

        for name, value in posonly_overrides.items():
            bound.arguments[name] = value

        self._fill_missing_arguments(cls, sig, bound)

        args, kwargs = self._materialize_call(sig, bound)
        return cls(*args, **kwargs)

    def _materialize_call(
        self, sig: inspect.Signature, bound: inspect.BoundArguments
    ) -> tuple[list[Any], dict[str, Any]]:
        args: list[Any] = []
        kwargs: dict[str, Any] = {}

        for name, p in sig.parameters.items():
            if p.kind is p.POSITIONAL_ONLY:
                args.append(bound.arguments[name])
            elif p.kind is p.VAR_POSITIONAL:
                args.extend(tuple(bound.arguments.get(name, ())))
            elif p.kind in (p.POSITIONAL_OR_KEYWORD, p.KEYWORD_ONLY):
                kwargs[name] = bound.arguments[name]
            elif p.kind is p.VAR_KEYWORD:
                kwargs.update(bound.arguments.get(name, {}))

        return args, kwargs

    def _fill_missing_arguments(self, cls: type[T], sig: inspect.Signature, bound: inspect.BoundArguments) -> None:
        hints = _get_init_type_hints(cls)

        for name, p in sig.parameters.items():
            if p.kind in (p.VAR_POSITIONAL, p.VAR_KEYWORD):
                continue

            if name not in bound.arguments:
                value = self._resolver.resolve_param(cls, name, p, bound, hints)
                if value is not inspect.Signature.empty:
                    bound.arguments[name] = value

    def _split_positional_only(
        self,
        overrides: dict[str, Any],
        params: Mapping[str, inspect.Parameter],
    ) -> tuple[dict[str, Any], dict[str, Any]]:
        pos_only = {name for name, p in params.items() if p.kind is inspect.Parameter.POSITIONAL_ONLY}

        return (
            {k: v for k, v in overrides.items() if k not in pos_only},
            {k: v for k, v in overrides.items() if k in pos_only},
        )

    def _bind_explicit(self, sig: inspect.Signature, kw: dict[str, Any], cls: type[T]) -> inspect.BoundArguments:
        try:
            return sig.bind_partial(**kw)
        except TypeError as e:
            msg = f"Overrides don't match {cls.__name__} signature: {e}"
            raise TypeError(msg) from e


def _injection_subtree(root: HostObject) -> Iterator[HostObject]:
    yield root
    for child in list(root.children):
        if any(c.handles_own_injection for c in child.components):
            continue
        yield from _injection_subtree(child)


if hasattr(typing, "is_protocol"):
    # https://docs.python.org/3/library/typing.html#typing.is_protocol
    def _is_protocol(tp: Any) -> bool:
        return inspect.isclass(tp) and typing.is_protocol(tp)

else:

    def _is_protocol(tp: Any) -> bool:
        return inspect.isclass(tp) and bool(getattr(tp, "_is_protocol", False)) and tp is not Protocol


def _is_runtime_checkable_protocol(tp: type) -> bool:
    return bool(getattr(tp, "_is_runtime_protocol", False))


def _protocol_members(proto_cls: type) -> list[str]:
    attrs = getattr(proto_cls, "__protocol_attrs__", None)
    if attrs is None:
        attrs = {*proto_cls.__dict__, *proto_cls.__dict__.get("__annotations__", {})}
    return sorted(name for name in attrs if not name.startswith("_"))


def _get_init_type_hints(cls: type[T]) -> dict[str, Any]:
    try:
        init = inspect.getattr_static(cls, "__init__")
        hints = get_type_hints(init)
    except TypeError:
        hints = {}
    except NameError as exc:
        logger.warning("'%s' name error retrieving %s (%s) type hints", exc.name, cls.__name__, cls.__qualname__)
        hints = {}

    return hints
