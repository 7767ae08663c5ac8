from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from typing import Any

from case_assistant.config import SETTINGS, Settings
from case_assistant.data_models import (
    PatternKind,
    RegexDiagnostic,
    RoutingEvaluation,
    RoutingSuggestion,
    ScoredCandidate,
)
from case_assistant.db.settings_store import ConfigStore, InMemoryConfigStore
from case_assistant.nlp.patterns import (
    COMPLAINT_PATTERN,
    COMPLAINT_REASON,
    DEPARTMENT_RULES,
    DIRECT_MENTION_REASON,
    DYNAMIC_MATCH_REASON,
    GENERAL_DEPARTMENT,
    GENERAL_REASON,
    IT_DEPARTMENT,
    LEGAL_DEPARTMENT,
    TECHNICAL_FAULT_PATTERN,
    TECHNICAL_FAULT_REASON,
    DepartmentRule,
)
from case_assistant.routing.directory import (
    DirectoryEntry,
    DirectoryResolver,
    InvalidPatternError,
    TuningConfig,
    UserPattern,
)

logger = logging.getLogger(__name__)

# A directory entry must clear this score to become a routing candidate.
DYNAMIC_CANDIDATE_THRESHOLD = 0.5
SELF_REFERENCE_BOOST = 0.05
MAX_WINNER_ALIAS_BOOST = 0.06
MAX_WINNER_NEGATIVE_PENALTY = 0.12

CONFIDENCE_FLOOR = 0.5
CONFIDENCE_CEILING = 1.0

COMPLAINT_CONFIDENCE = 0.65
TECHNICAL_FAULT_CONFIDENCE = 0.66
DIRECT_MENTION_CONFIDENCE = 0.62
GENERAL_CONFIDENCE = 0.6


@dataclass(frozen=True)
class _Winner:
    department: str
    reason: str
    score: float


def effective_rules(
    rules: Iterable[DepartmentRule],
    tuning: TuningConfig,
) -> list[DepartmentRule]:
    """Drop disabled rule families and apply base/weight overrides, leaving patterns untouched."""
    resolved: list[DepartmentRule] = []
    for rule in rules:
        if not tuning.is_rule_enabled(rule.department):
            continue
        override = tuning.rule_overrides.get(rule.department)
        if override is not None:
            rule = replace(
                rule,
                base=override.base if override.base is not None else rule.base,
                weight=override.weight if override.weight is not None else rule.weight,
            )
        resolved.append(rule)
    return resolved


def evaluate_routing(
    text: str | None,
    directory: Iterable[DirectoryEntry] = (),
    tuning: TuningConfig | None = None,
    *,
    rules: Iterable[DepartmentRule] = DEPARTMENT_RULES,
    winner_adjustments: bool = False,
    settings: Settings = SETTINGS,
) -> RoutingEvaluation:
    """
    Score every rule family and directory entry against `text` and pick one department.

    `winner_adjustments` enables the production-only second pass over the winning
    department (self-reference boost plus the capped alias/negative adjustment).
    """
    original = text or ""
    lowered = original.lower()
    tuning = tuning or TuningConfig()
    directory = tuple(directory)

    candidates: list[ScoredCandidate] = []
    diagnostics: list[RegexDiagnostic] = []
    best: _Winner | None = None

    for rule in effective_rules(rules, tuning):
        candidate = _score_rule(rule, original, tuning)
        if candidate is None:
            continue
        candidates.append(candidate)
        if best is None or candidate.score > best.score:
            best = _Winner(candidate.department, rule.reason, candidate.score)

    dynamic: list[ScoredCandidate] = []
    for entry in directory:
        candidate = _score_entry(entry, original, lowered, tuning, diagnostics, settings)
        if candidate.score > DYNAMIC_CANDIDATE_THRESHOLD:
            dynamic.append(candidate)
            candidates.append(candidate)

    if dynamic:
        top = max(dynamic, key=lambda item: item.score)
        if best is None or top.score > best.score:
            best = _Winner(top.department, DYNAMIC_MATCH_REASON, top.score)

    if best is not None:
        score = best.score
        if winner_adjustments:
            score = _adjust_winner(best.department, score, lowered, directory, tuning)
        result = RoutingSuggestion(
            department=best.department,
            reason=best.reason,
            confidence=_clamp(score),
        )
    else:
        result = _fallback(lowered, directory)

    candidates.sort(key=lambda item: item.score, reverse=True)
    return RoutingEvaluation(result=result, candidates=candidates, invalid_regex=diagnostics)


def suggest_department(
    text: str | None,
    directory: Iterable[DirectoryEntry] = (),
    tuning: TuningConfig | None = None,
    settings: Settings = SETTINGS,
) -> RoutingSuggestion:
    return evaluate_routing(text, directory, tuning, winner_adjustments=True, settings=settings).result


def debug_suggest(
    text: str | None,
    directory: Iterable[DirectoryEntry] = (),
    tuning: TuningConfig | None = None,
    settings: Settings = SETTINGS,
) -> RoutingEvaluation:
    return evaluate_routing(text, directory, tuning, winner_adjustments=False, settings=settings)


class DepartmentRouter:
    """Routing entry points bound to a configuration store."""

    def __init__(self, store: ConfigStore | None = None, settings: Settings = SETTINGS) -> None:
        self.store = store if store is not None else InMemoryConfigStore()
        self.settings = settings
        self.resolver = DirectoryResolver(self.store, settings)

    def suggest(self, text: str | None) -> RoutingSuggestion:
        config = self.resolver.snapshot()
        suggestion = suggest_department(text, config.directory, config.tuning, settings=self.settings)
        logger.debug(
            "Routed to %s (confidence=%.2f, directory=%s entries)",
            suggestion.department,
            suggestion.confidence,
            len(config.directory),
        )
        return suggestion

    def debug(
        self,
        text: str | None,
        options: TuningConfig | Mapping[str, Any] | None = None,
    ) -> RoutingEvaluation:
        tuning = options if isinstance(options, TuningConfig) else TuningConfig.from_mapping(options)
        evaluation = debug_suggest(text, self.resolver.load_directory(), tuning, settings=self.settings)
        if evaluation.invalid_regex:
            logger.info("Debug routing skipped %s invalid directory patterns", len(evaluation.invalid_regex))
        return evaluation


def _score_rule(rule: DepartmentRule, original: str, tuning: TuningConfig) -> ScoredCandidate | None:
    score = rule.base
    matches: list[str] = []
    negative_hits: list[str] = []
    penalties: list[str] = []

    for pattern in rule.positives:
        if pattern.search(original):
            score += rule.weight
            matches.append(pattern.pattern)

    for pattern in rule.negatives:
        if pattern.search(original):
            score -= tuning.rule_neg_penalty
            negative_hits.append(pattern.pattern)
            penalties.append("neg")

    # Negative hits alone never make a rule a candidate.
    if not matches:
        return None

    return ScoredCandidate(
        department=rule.department,
        score=score,
        source="rule",
        reason=rule.reason,
        rule_matches=matches,
        negative_hits=negative_hits,
        penalties=penalties,
    )


def _score_entry(
    entry: DirectoryEntry,
    original: str,
    lowered: str,
    tuning: TuningConfig,
    diagnostics: list[RegexDiagnostic],
    settings: Settings,
) -> ScoredCandidate:
    candidate = ScoredCandidate(department=entry.name, score=0.0, source="dynamic")

    if tuning.dyn_name and entry.name in lowered:
        candidate.score += tuning.dyn_name_boost
        candidate.boosts.append("name")

    if tuning.dyn_aliases:
        for alias in entry.aliases:
            if _matches(entry, alias, "alias", original, lowered, diagnostics, settings):
                candidate.score += tuning.dyn_alias_boost
                candidate.alias_hits.append(alias.label)

    if tuning.dyn_negatives:
        for negative in entry.negatives:
            if _matches(entry, negative, "negative", original, lowered, diagnostics, settings):
                candidate.score -= tuning.dyn_neg_penalty
                candidate.negative_hits.append(negative.label)
                candidate.penalties.append("neg")

    return candidate


def _matches(
    entry: DirectoryEntry,
    pattern: UserPattern,
    kind: PatternKind,
    original: str,
    lowered: str,
    diagnostics: list[RegexDiagnostic],
    settings: Settings,
) -> bool:
    try:
        return pattern.matches(original, lowered, settings)
    except InvalidPatternError as exc:
        logger.debug("Skipping %s pattern %r of %s: %s", kind, pattern.raw, entry.name, exc)
        diagnostics.append(
            RegexDiagnostic(department=entry.name, pattern=pattern.raw, error=str(exc), kind=kind)
        )
        return False


def _adjust_winner(
    department: str,
    score: float,
    lowered: str,
    directory: tuple[DirectoryEntry, ...],
    tuning: TuningConfig,
) -> float:
    # Applied on top of candidate scoring, so a directory alias can count twice for the winner.
    label = department.lower()

    if tuning.dyn_name and label in lowered and any(entry.name in lowered for entry in directory):
        score += SELF_REFERENCE_BOOST

    matched = next(
        (entry for entry in directory if entry.name in label or label in entry.name),
        None,
    )
    if matched is None:
        return score

    if tuning.dyn_aliases and any(alias.raw in lowered for alias in matched.aliases):
        score += min(MAX_WINNER_ALIAS_BOOST, tuning.dyn_alias_boost / 2)
    if tuning.dyn_negatives and any(negative.raw in lowered for negative in matched.negatives):
        score -= min(MAX_WINNER_NEGATIVE_PENALTY, tuning.dyn_neg_penalty)
    return score


def _fallback(lowered: str, directory: tuple[DirectoryEntry, ...]) -> RoutingSuggestion:
    if COMPLAINT_PATTERN.search(lowered):
        return RoutingSuggestion(LEGAL_DEPARTMENT, COMPLAINT_REASON, COMPLAINT_CONFIDENCE)
    if TECHNICAL_FAULT_PATTERN.search(lowered):
        return RoutingSuggestion(IT_DEPARTMENT, TECHNICAL_FAULT_REASON, TECHNICAL_FAULT_CONFIDENCE)

    direct = next((entry.name for entry in directory if entry.name in lowered), None)
    if direct:
        return RoutingSuggestion(" ".join(direct.split()), DIRECT_MENTION_REASON, DIRECT_MENTION_CONFIDENCE)

    return RoutingSuggestion(GENERAL_DEPARTMENT, GENERAL_REASON, GENERAL_CONFIDENCE)


def _clamp(score: float) -> float:
    return max(CONFIDENCE_FLOOR, min(CONFIDENCE_CEILING, score))
