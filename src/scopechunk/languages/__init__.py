"""Language profiles and the registry that resolves them."""

from .profiles import BUILTIN_PROFILES, DEFAULT_PROFILE, LanguageProfile
from .registry import LanguageProfileOverride, LanguageRegistry, build_registry, default_registry

__all__ = [
    "BUILTIN_PROFILES",
    "DEFAULT_PROFILE",
    "LanguageProfile",
    "LanguageProfileOverride",
    "LanguageRegistry",
    "build_registry",
    "default_registry",
]
