from __future__ import annotations

from case_assistant.data_models import AutoReply
from case_assistant.nlp.patterns import (
    EMPTY_QUERY_ANSWER,
    INTENT_RULES,
    UNKNOWN_INTENT_ANSWER,
    IntentRule,
)

MATCH_CONFIDENCE = 0.85
UNKNOWN_CONFIDENCE = 0.5
EMPTY_CONFIDENCE = 0.2


class IntentClassifier:
    """
    Canned-answer classifier for common citizen inquiries.

    Rules are scanned in declaration order and the first rule with a hit wins, so an
    inquiry mentioning both a request status and a payment is answered as a status query.
    """

    def __init__(self, rules: tuple[IntentRule, ...] = INTENT_RULES) -> None:
        self.rules = rules

    def predict(self, message: str | None) -> AutoReply:
        text = (message or "").strip()
        if not text:
            return AutoReply(intent="unknown", answer=EMPTY_QUERY_ANSWER, confidence=EMPTY_CONFIDENCE)

        for rule in self.rules:
            if any(pattern.search(text) for pattern in rule.patterns):
                return AutoReply(intent=rule.intent, answer=rule.answer, confidence=MATCH_CONFIDENCE)

        return AutoReply(intent="unknown", answer=UNKNOWN_INTENT_ANSWER, confidence=UNKNOWN_CONFIDENCE)


_DEFAULT_CLASSIFIER = IntentClassifier()


def auto_reply(message: str | None) -> AutoReply:
    return _DEFAULT_CLASSIFIER.predict(message)
