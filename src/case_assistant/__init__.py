from case_assistant.analytics.peaks import predict_peaks
from case_assistant.nlp.intent import auto_reply
from case_assistant.routing.scoring import DepartmentRouter, debug_suggest, suggest_department

__all__ = [
    "DepartmentRouter",
    "auto_reply",
    "debug_suggest",
    "predict_peaks",
    "suggest_department",
]
