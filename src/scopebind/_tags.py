from __future__ import annotations


class ScopeTag:
    """Addresses a scope independently of where it sits in the host tree.

    Tags compare and hash by identity; ``name`` is only a label for logs.
    Two tags with the same name are different tags.
    """

    __slots__ = ("name",)

    def __init__(self, name: str = "") -> None:
        self.name = name

    def __repr__(self) -> str:
        return f"ScopeTag({self.name!r})"
