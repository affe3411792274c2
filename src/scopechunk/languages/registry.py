"""
Language profile lookup.

Profiles are resolved from an explicit language hint (name or alias) first,
then from the file name and finally from its extension. Anything else maps to
the default profile, which has no scope keywords and therefore sends the whole
file through line-window splitting.
"""

from __future__ import annotations

import dataclasses
from pathlib import PurePath
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from ..errors import ConfigurationError
from ..logger import get_logger
from .profiles import (
    BUILTIN_PROFILES,
    CLASS,
    DEFAULT_PROFILE,
    FUNCTION,
    NAMESPACE,
    RAW_STRING_FORMS,
    LanguageProfile,
)

log = get_logger(__name__)

_SCOPE_KINDS = {NAMESPACE, CLASS, FUNCTION}


def _normalize(key: str) -> str:
    return key.strip().lower().lstrip(".")


class LanguageProfileOverride(BaseModel):
    """User supplied changes to a profile, keyed by language or extension."""

    model_config = ConfigDict(extra="forbid")

    base: Optional[str] = None
    name: Optional[str] = None
    extensions: Optional[List[str]] = None
    aliases: Optional[List[str]] = None
    line_comments: Optional[List[str]] = None
    block_comments: Optional[List[Tuple[str, str]]] = None
    string_delimiters: Optional[List[str]] = None
    char_delimiters: Optional[List[str]] = None
    multiline_strings: Optional[List[str]] = None
    raw_strings: Optional[List[Tuple[str, str]]] = None
    escape_char: Optional[str] = None
    scope_keywords: Optional[Dict[str, str]] = None
    scope_join: Optional[str] = None
    directive_prefix: Optional[str] = None
    newline_terminates: Optional[bool] = None
    char_literal_max: Optional[int] = None

    @field_validator("scope_keywords")
    @classmethod
    def _check_kinds(cls, value: Optional[Dict[str, str]]) -> Optional[Dict[str, str]]:
        if value is None:
            return value
        for keyword, kind in value.items():
            if kind not in _SCOPE_KINDS:
                raise ValueError(
                    f"scope keyword {keyword!r} maps to {kind!r}; expected one of {sorted(_SCOPE_KINDS)}"
                )
        return value

    @field_validator("raw_strings")
    @classmethod
    def _check_raw_forms(cls, value: Optional[List[Tuple[str, str]]]) -> Optional[List[Tuple[str, str]]]:
        for prefix, form in value or []:
            if form not in RAW_STRING_FORMS:
                raise ValueError(
                    f"raw string prefix {prefix!r} uses form {form!r}; expected one of {list(RAW_STRING_FORMS)}"
                )
        return value

    @field_validator("char_literal_max")
    @classmethod
    def _check_char_max(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value < 1:
            raise ValueError("char_literal_max must be at least 1")
        return value

    def profile_fields(self) -> Dict[str, Any]:
        """Return the overridden profile fields as profile-ready values."""
        fields: Dict[str, Any] = {}
        for key, value in self.model_dump(exclude={"base"}, exclude_none=True).items():
            if key == "scope_keywords":
                fields[key] = tuple(value.items())
            elif key in ("block_comments", "raw_strings"):
                fields[key] = tuple(tuple(pair) for pair in value)
            elif key in ("extensions", "aliases"):
                fields[key] = tuple(_normalize(item) for item in value)
            elif isinstance(value, list):
                fields[key] = tuple(value)
            else:
                fields[key] = value
        return fields


class LanguageRegistry:
    """Read-only mapping from language names, aliases and file names to profiles."""

    def __init__(
        self,
        profiles: Iterable[LanguageProfile] = BUILTIN_PROFILES,
        default: LanguageProfile = DEFAULT_PROFILE,
    ) -> None:
        self.default = default
        self._profiles: Dict[str, LanguageProfile] = {}
        self._by_name: Dict[str, LanguageProfile] = {}
        self._by_extension: Dict[str, LanguageProfile] = {}
        self._by_filename: Dict[str, LanguageProfile] = {}
        for profile in profiles:
            self._register(profile)

    def _register(self, profile: LanguageProfile) -> None:
        self._profiles[profile.name] = profile
        for key in (profile.name, *profile.aliases):
            self._by_name[_normalize(key)] = profile
        for extension in profile.extensions:
            self._by_extension[_normalize(extension)] = profile
        for filename in profile.filenames:
            self._by_filename[filename.lower()] = profile

    def profiles(self) -> List[LanguageProfile]:
        return list(self._profiles.values())

    def get(self, language: str) -> Optional[LanguageProfile]:
        """Look up a profile by name or alias."""
        return self._by_name.get(_normalize(language))

    def is_supported(self, language: str) -> bool:
        return self.get(language) is not None

    def lookup(self, identifier: Optional[str] = None, hint: Optional[str] = None) -> Optional[LanguageProfile]:
        """Return the matching profile, or None when nothing matches."""
        if hint:
            profile = self.get(hint)
            if profile is not None:
                return profile
            log.debug("language_hint_unknown", hint=hint)
        if not identifier:
            return None
        path = PurePath(identifier)
        profile = self._by_filename.get(path.name.lower())
        if profile is not None:
            return profile
        suffixes = [suffix.lower() for suffix in path.suffixes]
        # Longest compound suffix first so "tar.gz"-style keys can be registered.
        for index in range(len(suffixes)):
            profile = self._by_extension.get(_normalize("".join(suffixes[index:])))
            if profile is not None:
                return profile
        return None

    def resolve(self, identifier: Optional[str] = None, hint: Optional[str] = None) -> LanguageProfile:
        """Return the matching profile, falling back to the default profile."""
        profile = self.lookup(identifier, hint)
        return profile if profile is not None else self.default

    def with_overrides(self, overrides: Mapping[str, Any]) -> "LanguageRegistry":
        """
        Return a new registry with ``overrides`` applied.

        A key naming an existing language updates that profile. Any other key is
        treated as a file extension: it is added to the ``base`` profile (the
        default profile when no base is given), and when the override changes
        more than the base, a new profile named after the key is created.
        """
        registry = LanguageRegistry(self.profiles(), self.default)
        for raw_key, raw_override in overrides.items():
            key = _normalize(raw_key)
            try:
                override = (
                    raw_override
                    if isinstance(raw_override, LanguageProfileOverride)
                    else LanguageProfileOverride.model_validate(raw_override)
                )
            except ValidationError as exc:
                raise ConfigurationError(f"invalid profile override for {raw_key!r}: {exc}") from exc
            registry._apply(key, override)
        return registry

    def _apply(self, key: str, override: LanguageProfileOverride) -> None:
        fields = override.profile_fields()
        existing = self.get(key)
        if existing is not None and override.base is None:
            updated = dataclasses.replace(existing, **fields)
            if updated.name != existing.name:
                self._profiles.pop(existing.name, None)
            self._register(updated)
            log.debug("language_profile_updated", language=updated.name)
            return

        if override.base is not None:
            base = self.get(override.base)
            if base is None:
                raise ConfigurationError(f"unknown base language {override.base!r} for override {key!r}")
        else:
            base = self.default

        if fields.keys() - {"extensions"}:
            fields.setdefault("name", key)
            fields.setdefault("extensions", ())
            fields.setdefault("aliases", ())
            profile = dataclasses.replace(base, **fields)
        else:
            extra = tuple(ext for ext in fields.get("extensions", ()) if ext not in base.extensions)
            profile = dataclasses.replace(base, extensions=base.extensions + extra)
        extension = _normalize(key)
        if extension not in profile.extensions:
            profile = dataclasses.replace(profile, extensions=profile.extensions + (extension,))
        self._register(profile)
        log.debug("language_profile_registered", key=key, language=profile.name)


default_registry = LanguageRegistry()


def build_registry(overrides: Optional[Mapping[str, Any]] = None) -> LanguageRegistry:
    """Return the default registry, with ``overrides`` applied when given."""
    if not overrides:
        return default_registry
    return default_registry.with_overrides(overrides)
