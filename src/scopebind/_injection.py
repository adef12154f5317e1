from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Annotated, Any, TypeVar, Union, get_args, get_origin, get_type_hints


logger = logging.getLogger(__name__)

T = TypeVar("T")


class InjectMarker:
    """Metadata attached by ``Injected[T]`` to flag a member for field injection."""

    def __repr__(self) -> str:
        return "InjectMarker()"


INJECT = InjectMarker()


if TYPE_CHECKING:
    Injected = Union[T, T]  # noqa: UP007,PYI016
else:

    class Injected:
        """Mark a class attribute for field injection.

        ``Injected[T]`` becomes ``Annotated[T, INJECT]`` at runtime::

            class Consumer(Component):
                service: Injected[TestService] = None

        """

        def __class_getitem__(cls, item: Any) -> Any:
            return Annotated[item, INJECT]


@dataclass(frozen=True)
class InjectionPoint:
    name: str
    token: Any


@functools.cache
def injection_points(cls: type) -> tuple[InjectionPoint, ...]:
    """Collect the members of ``cls`` that receive values on injection.

    Two sources, both walked over the MRO:

    1. class attribute annotations wrapped in ``Injected[...]``;
    2. an explicit ``__inject__ = {"member": token}`` mapping, which also
       allows string tokens and wins over an annotation for the same member.

    The result is computed once per class.
    """
    points: dict[str, Any] = {}

    for name, ann in _get_class_type_hints(cls).items():
        if get_origin(ann) is Annotated:
            token, *metadata = get_args(ann)
            if any(isinstance(m, InjectMarker) for m in metadata):
                points[name] = token

    for klass in reversed(cls.__mro__):
        points.update(klass.__dict__.get("__inject__", {}))

    return tuple(InjectionPoint(name=name, token=token) for name, token in points.items())


def _get_class_type_hints(cls: type) -> dict[str, Any]:
    try:
        return get_type_hints(cls, include_extras=True)
    except NameError as exc:
        logger.warning(
            "'%s' name error retrieving %s (%s) member annotations; skipping annotated injection points",
            exc.name,
            cls.__name__,
            cls.__qualname__,
        )
    except TypeError:
        pass
    return {}
