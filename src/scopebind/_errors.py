from __future__ import annotations


class ResolutionError(RuntimeError):
    pass


class ConfigurationError(ValueError):
    """An absent tag or scope was handed to the scope registry."""


class RootCreationError(RuntimeError):
    """The root scope factory failed or produced something unusable."""


class ScopeDisposedError(RuntimeError):
    pass
