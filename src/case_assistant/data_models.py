from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Literal

Intent = Literal["status", "payment", "documents", "deadline", "greeting", "unknown"]
CandidateSource = Literal["rule", "dynamic"]
PatternKind = Literal["alias", "negative"]


@dataclass(frozen=True)
class AutoReply:
    intent: Intent
    answer: str
    confidence: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class RoutingSuggestion:
    department: str
    reason: str
    confidence: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ScoredCandidate:
    department: str
    score: float
    source: CandidateSource
    reason: str | None = None
    rule_matches: list[str] = field(default_factory=list)
    alias_hits: list[str] = field(default_factory=list)
    negative_hits: list[str] = field(default_factory=list)
    boosts: list[str] = field(default_factory=list)
    penalties: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class RegexDiagnostic:
    department: str
    pattern: str
    error: str
    kind: PatternKind

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class RoutingEvaluation:
    result: RoutingSuggestion
    candidates: list[ScoredCandidate] = field(default_factory=list)
    invalid_regex: list[RegexDiagnostic] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "result": self.result.to_dict(),
            "candidates": [candidate.to_dict() for candidate in self.candidates],
            "invalidRegex": [diagnostic.to_dict() for diagnostic in self.invalid_regex],
        }


@dataclass(frozen=True)
class PeakPrediction:
    hour: int
    label: str
    confidence: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class RoutingSample:
    text: str
    ts: str = field(default_factory=lambda: datetime.now().astimezone().isoformat())

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
