from __future__ import annotations

from pydantic import ImportString
from pydantic_settings import BaseSettings, SettingsConfigDict


class ScopeBindSettings(BaseSettings):
    """Process-wide configuration, read from ``SCOPEBIND_*`` environment variables."""

    model_config = SettingsConfigDict(env_prefix="SCOPEBIND_", validate_assignment=True)

    # Informational (success-path) messages are only logged when this is on.
    # Warnings and errors are always logged.
    diagnostics_enabled: bool = False

    # Zero-argument callable returning the root ScopeNode, e.g.
    # SCOPEBIND_ROOT_FACTORY=myapp.scopes.build_root
    root_factory: ImportString | None = None
