from __future__ import annotations

import json

import pytest

from case_assistant.db.settings_store import InMemoryConfigStore
from case_assistant.routing.directory import (
    DirectoryResolver,
    InvalidPatternError,
    TuningConfig,
    UserPattern,
    parse_directory,
)


def test_parse_directory_normalises_entries() -> None:
    raw = json.dumps(
        [
            {"name": "IT Support", "aliases": ["Helpdesk", "/VPN\\s+down/i", None, ""], "negatives": ["Social"]},
            "Legal Office",
            42,
            {"name": ""},
            {"aliases": ["orphan"]},
            {"name": "Archive", "aliases": "not-a-list"},
        ]
    )

    entries = parse_directory(raw)

    assert [entry.name for entry in entries] == ["it support", "legal office", "archive"]
    support = entries[0]
    assert [alias.raw for alias in support.aliases] == ["helpdesk", "/vpn\\s+down/i"]
    assert support.aliases[1].is_regex
    assert [negative.raw for negative in support.negatives] == ["social"]
    assert entries[2].aliases == ()


def test_parse_directory_tolerates_malformed_payloads() -> None:
    assert parse_directory("{not json") == ()
    assert parse_directory({"name": "x"}) == ()
    assert parse_directory(None) == ()


def test_user_pattern_detects_regex_literals() -> None:
    pattern = UserPattern.parse("/abc+/gi")

    assert pattern.is_regex
    assert pattern.source == "abc+"
    assert pattern.flags == "gi"
    assert pattern.label == "/abc+/gi"
    assert pattern.matches("xxABCCC", "xxabccc")

    literal = UserPattern.parse("abc/")
    assert not literal.is_regex
    assert literal.matches("ABC/", "abc/")


def test_user_pattern_rejects_invalid_and_oversized_expressions() -> None:
    with pytest.raises(InvalidPatternError):
        UserPattern.parse("/[/i").matches("text", "text")

    with pytest.raises(InvalidPatternError):
        UserPattern.parse("/" + "a" * 400 + "/").matches("text", "text")


def test_tuning_config_reads_debug_options_shape() -> None:
    tuning = TuningConfig.from_mapping(
        {
            "enableDynamicName": False,
            "boosts": {"dynAlias": 0.2},
            "penalties": {"dynNeg": -0.5, "ruleNeg": 0.3},
            "ruleInclude": {"الخزينة": False, "التدقيق": "no"},
            "ruleOverrides": {"الديوان": {"base": 0.9}},
        }
    )

    assert tuning.dyn_name is False
    assert tuning.dyn_aliases is True
    assert tuning.dyn_alias_boost == pytest.approx(0.2)
    assert tuning.dyn_neg_penalty == pytest.approx(0.5)
    assert tuning.rule_neg_penalty == pytest.approx(0.3)
    assert not tuning.is_rule_enabled("الخزينة")
    assert tuning.is_rule_enabled("التدقيق")
    assert tuning.rule_overrides["الديوان"].base == pytest.approx(0.9)
    assert tuning.rule_overrides["الديوان"].weight is None


def test_tuning_config_magnitudes_are_absolute_and_defaults_survive_bad_types() -> None:
    tuning = TuningConfig.from_mapping({"ruleNegPenalty": -0.3, "dynNameBoost": "high", "dynName": "no"})

    assert tuning.rule_neg_penalty == pytest.approx(0.3)
    assert tuning.dyn_name_boost == pytest.approx(0.72)
    assert tuning.dyn_name is True
    assert TuningConfig(dyn_alias_boost=-0.08).dyn_alias_boost == pytest.approx(0.08)
    assert TuningConfig.from_mapping("garbage") == TuningConfig()


def test_tuning_config_exports_stored_shape() -> None:
    exported = TuningConfig.from_mapping({"dynAliases": False, "ruleOverrides": {"الخزينة": {"weight": 0.1}}}).to_dict()

    assert exported["dynAliases"] is False
    assert exported["ruleOverrides"] == {"الخزينة": {"weight": 0.1}}
    assert exported["dynNameBoost"] == pytest.approx(0.72)
    assert TuningConfig.from_mapping(exported).dyn_aliases is False


def test_resolver_snapshot_reads_store_and_degrades_on_bad_json() -> None:
    store = InMemoryConfigStore(
        {
            "departments_list": [{"name": "قسم الدخل"}],
            "routing_system_defaults": {"dynNameBoost": 0.9},
        }
    )
    snapshot = DirectoryResolver(store).snapshot()

    assert [entry.name for entry in snapshot.directory] == ["قسم الدخل"]
    assert snapshot.tuning.dyn_name_boost == pytest.approx(0.9)

    store.set("departments_list", "[{broken")
    store.set("routing_system_defaults", "{broken")
    degraded = DirectoryResolver(store).snapshot()

    assert degraded.directory == ()
    assert degraded.tuning == TuningConfig()
