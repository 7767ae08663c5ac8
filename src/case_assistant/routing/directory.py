from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import regex

from case_assistant.config import SETTINGS, Settings
from case_assistant.db.settings_store import ConfigStore, read_json_key

logger = logging.getLogger(__name__)

REGEX_LITERAL = re.compile(r"/(.*)/([gimsuy]*)")

_FLAG_MAP = {
    "i": regex.IGNORECASE,
    "m": regex.MULTILINE,
    "s": regex.DOTALL,
}

DEFAULT_DYN_NAME_BOOST = 0.72
DEFAULT_DYN_ALIAS_BOOST = 0.08
DEFAULT_RULE_NEG_PENALTY = 0.12
DEFAULT_DYN_NEG_PENALTY = 0.12


class InvalidPatternError(ValueError):
    pass


@dataclass(frozen=True)
class UserPattern:
    """An operator-supplied alias or negative: a literal substring or a `/regex/flags` literal."""

    raw: str
    source: str | None = None
    flags: str = ""

    @classmethod
    def parse(cls, raw: str) -> "UserPattern":
        match = REGEX_LITERAL.fullmatch(raw)
        if match:
            return cls(raw=raw, source=match.group(1), flags=match.group(2))
        return cls(raw=raw)

    @property
    def is_regex(self) -> bool:
        return self.source is not None

    @property
    def label(self) -> str:
        if self.is_regex:
            return f"/{self.source}/{self.flags}"
        return self.raw

    def matches(self, original: str, lowered: str, settings: Settings = SETTINGS) -> bool:
        """
        Regex literals are searched in the original text, literals in the lower-cased text.

        Raises InvalidPatternError when the expression does not compile, is too long,
        or exceeds the matching time budget.
        """
        if not self.is_regex:
            return self.raw in lowered

        if len(self.source) > settings.max_pattern_length:
            raise InvalidPatternError(f"pattern exceeds {settings.max_pattern_length} characters")

        flags = 0
        for flag in self.flags:
            flags |= _FLAG_MAP.get(flag, 0)
        try:
            compiled = regex.compile(self.source, flags)
        except regex.error as exc:
            raise InvalidPatternError(str(exc)) from exc

        try:
            return compiled.search(original, timeout=settings.regex_timeout_seconds) is not None
        except TimeoutError as exc:
            raise InvalidPatternError("matching timed out") from exc


@dataclass(frozen=True)
class DirectoryEntry:
    name: str
    aliases: tuple[UserPattern, ...] = ()
    negatives: tuple[UserPattern, ...] = ()


@dataclass(frozen=True)
class RuleOverride:
    base: float | None = None
    weight: float | None = None


@dataclass(frozen=True)
class TuningConfig:
    rule_include: Mapping[str, bool] = field(default_factory=dict)
    rule_overrides: Mapping[str, RuleOverride] = field(default_factory=dict)
    dyn_name: bool = True
    dyn_aliases: bool = True
    dyn_negatives: bool = True
    dyn_name_boost: float = DEFAULT_DYN_NAME_BOOST
    dyn_alias_boost: float = DEFAULT_DYN_ALIAS_BOOST
    rule_neg_penalty: float = DEFAULT_RULE_NEG_PENALTY
    dyn_neg_penalty: float = DEFAULT_DYN_NEG_PENALTY

    def __post_init__(self) -> None:
        # Signs are fixed by the algorithm; only the magnitude is tunable.
        for name in ("dyn_name_boost", "dyn_alias_boost", "rule_neg_penalty", "dyn_neg_penalty"):
            object.__setattr__(self, name, abs(float(getattr(self, name))))

    def is_rule_enabled(self, department: str) -> bool:
        return self.rule_include.get(department) is not False

    @classmethod
    def from_mapping(cls, raw: Any) -> "TuningConfig":
        """
        Build a config from either the stored system-defaults shape
        (`dynName`, `dynNameBoost`, `ruleNegPenalty`, ...) or the debug options shape
        (`enableDynamicName`, `boosts: {dynName, dynAlias}`, `penalties: {ruleNeg, dynNeg}`).
        Fields with the wrong type fall back to their defaults.
        """
        if not isinstance(raw, Mapping):
            return cls()

        boosts = raw.get("boosts") if isinstance(raw.get("boosts"), Mapping) else {}
        penalties = raw.get("penalties") if isinstance(raw.get("penalties"), Mapping) else {}

        return cls(
            rule_include=_parse_rule_include(raw.get("ruleInclude")),
            rule_overrides=_parse_rule_overrides(raw.get("ruleOverrides")),
            dyn_name=_toggle(raw, "dynName", "enableDynamicName"),
            dyn_aliases=_toggle(raw, "dynAliases", "enableDynamicAliases"),
            dyn_negatives=_toggle(raw, "dynNegatives", "enableDynamicNegatives"),
            dyn_name_boost=_number(raw.get("dynNameBoost"), boosts.get("dynName"), DEFAULT_DYN_NAME_BOOST),
            dyn_alias_boost=_number(raw.get("dynAliasBoost"), boosts.get("dynAlias"), DEFAULT_DYN_ALIAS_BOOST),
            rule_neg_penalty=_number(raw.get("ruleNegPenalty"), penalties.get("ruleNeg"), DEFAULT_RULE_NEG_PENALTY),
            dyn_neg_penalty=_number(raw.get("dynNegPenalty"), penalties.get("dynNeg"), DEFAULT_DYN_NEG_PENALTY),
        )

    def to_dict(self) -> dict[str, Any]:
        overrides: dict[str, dict[str, float]] = {}
        for department, override in self.rule_overrides.items():
            values = {}
            if override.base is not None:
                values["base"] = override.base
            if override.weight is not None:
                values["weight"] = override.weight
            overrides[department] = values

        return {
            "ruleInclude": dict(self.rule_include),
            "ruleOverrides": overrides,
            "dynName": self.dyn_name,
            "dynAliases": self.dyn_aliases,
            "dynNegatives": self.dyn_negatives,
            "dynNameBoost": self.dyn_name_boost,
            "dynAliasBoost": self.dyn_alias_boost,
            "ruleNegPenalty": self.rule_neg_penalty,
            "dynNegPenalty": self.dyn_neg_penalty,
        }


@dataclass(frozen=True)
class RoutingConfig:
    directory: tuple[DirectoryEntry, ...] = ()
    tuning: TuningConfig = field(default_factory=TuningConfig)


def parse_directory(raw: Any) -> tuple[DirectoryEntry, ...]:
    """
    Normalise a department directory payload.

    Accepts a JSON string or an already decoded list. Items are either mappings
    `{name, aliases?, negatives?}` or bare department names. Everything is lower-cased;
    items without a usable name are skipped.
    """
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.warning("Department directory is not valid JSON: %s", exc)
            return ()

    if not isinstance(raw, list):
        if raw is not None:
            logger.warning("Department directory must be a list, got %s", type(raw).__name__)
        return ()

    entries: list[DirectoryEntry] = []
    for item in raw:
        if isinstance(item, str):
            name = item.lower()
            aliases: tuple[UserPattern, ...] = ()
            negatives: tuple[UserPattern, ...] = ()
        elif isinstance(item, Mapping):
            name = str(item.get("name") or "").lower()
            aliases = _parse_patterns(item.get("aliases"))
            negatives = _parse_patterns(item.get("negatives"))
        else:
            logger.debug("Skipping directory item of type %s", type(item).__name__)
            continue

        if not name:
            continue
        entries.append(DirectoryEntry(name=name, aliases=aliases, negatives=negatives))

    return tuple(entries)


class DirectoryResolver:
    """Reads the department directory and tuning presets from the configuration store."""

    def __init__(self, store: ConfigStore, settings: Settings = SETTINGS) -> None:
        self.store = store
        self.settings = settings

    def load_directory(self) -> tuple[DirectoryEntry, ...]:
        return parse_directory(read_json_key(self.store, self.settings.departments_key, default=[]))

    def load_system_defaults(self) -> TuningConfig:
        return TuningConfig.from_mapping(read_json_key(self.store, self.settings.system_defaults_key))

    def load_tuning_defaults(self) -> TuningConfig:
        return TuningConfig.from_mapping(read_json_key(self.store, self.settings.tuning_defaults_key))

    def has_system_defaults(self) -> bool:
        return self.store.get(self.settings.system_defaults_key) is not None

    def has_tuning_defaults(self) -> bool:
        return self.store.get(self.settings.tuning_defaults_key) is not None

    def snapshot(self) -> RoutingConfig:
        return RoutingConfig(directory=self.load_directory(), tuning=self.load_system_defaults())


def _parse_patterns(raw: Any) -> tuple[UserPattern, ...]:
    if not isinstance(raw, list):
        return ()
    values = [str(value if value is not None else "").lower() for value in raw]
    return tuple(UserPattern.parse(value) for value in values if value)


def _parse_rule_include(raw: Any) -> dict[str, bool]:
    if not isinstance(raw, Mapping):
        return {}
    return {str(department): value for department, value in raw.items() if isinstance(value, bool)}


def _parse_rule_overrides(raw: Any) -> dict[str, RuleOverride]:
    if not isinstance(raw, Mapping):
        return {}
    overrides: dict[str, RuleOverride] = {}
    for department, values in raw.items():
        if not isinstance(values, Mapping):
            continue
        overrides[str(department)] = RuleOverride(
            base=_number(values.get("base"), None, None),
            weight=_number(values.get("weight"), None, None),
        )
    return overrides


def _toggle(raw: Mapping[str, Any], *keys: str) -> bool:
    return not any(raw.get(key) is False for key in keys)


def _number(primary: Any, secondary: Any, default: float | None) -> float | None:
    for value in (primary, secondary):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
    return default
