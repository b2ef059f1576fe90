"""
Core module for application configuration, scoring and session lifecycle.

Services are not imported at package level to avoid circular imports with
ieltsmock.models (which reads settings from ieltsmock.core.config).
Import them directly: from ieltsmock.core.sessions import TestSessionService
"""
from .config import settings

__all__ = ["settings"]
