"""
Static pattern library shared by the auto-reply classifier and the department router.

Both tables are plain data evaluated uniformly by a single function each; adding a
department or an intent means adding a row, not a class.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from case_assistant.data_models import Intent


@dataclass(frozen=True)
class IntentRule:
    intent: Intent
    patterns: tuple[re.Pattern[str], ...]
    answer: str


@dataclass(frozen=True)
class DepartmentRule:
    department: str
    reason: str
    positives: tuple[re.Pattern[str], ...]
    negatives: tuple[re.Pattern[str], ...] = field(default_factory=tuple)
    base: float = 0.7
    weight: float = 0.06


def _rx(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern, re.IGNORECASE)


# Declaration order is the match order: the first rule with any hit wins.
INTENT_RULES: tuple[IntentRule, ...] = (
    IntentRule(
        intent="status",
        patterns=(_rx(r"\b(حالة|متابعة|وصلت|رقم الطلب|تتبع)\b"),),
        answer=(
            "لمتابعة حالة طلبك، يرجى استخدام صفحة تتبّع الطلبات وإدخال رقم الطلب. "
            "أو أرسل لنا رقم الطلب لنساعدك مباشرة."
        ),
    ),
    IntentRule(
        intent="payment",
        patterns=(_rx(r"\b(دفع|رسوم|سداد|فاتورة|تحصيل)\b"),),
        answer=(
            "بالنسبة للمدفوعات والرسوم، يمكنك مراجعة قسم الخزينة أو الدفع الإلكتروني إن كان مفعّلًا. "
            "زودنا برقم الفاتورة إن توفر."
        ),
    ),
    IntentRule(
        intent="documents",
        patterns=(_rx(r"\b(وثائق|مستندات|أوراق|مطلوبة)\b"),),
        answer="المستندات تختلف حسب نوع المعاملة. اذكر نوع الطلب وسنرسل لك قائمة المستندات المطلوبة بالتفصيل.",
    ),
    IntentRule(
        intent="deadline",
        patterns=(_rx(r"\b(مهلة|موعد|آخر|تاريخ|يوم)\b"),),
        answer="لمواعيد التسليم والمُهل، يرجى تحديد نوع الخدمة وسنزوّدك بالموعد النظامي والإجراءات.",
    ),
    IntentRule(
        intent="greeting",
        patterns=(_rx(r"\b(مرحبا|السلام|صباح الخير|مساء الخير)\b"),),
        answer="مرحبًا بك! كيف يمكنني مساعدتك اليوم؟",
    ),
)

EMPTY_QUERY_ANSWER = "يرجى توضيح الاستفسار."
UNKNOWN_INTENT_ANSWER = "سأحول استفسارك للقسم المناسب بعد تحديد نوع الخدمة."


DEPARTMENT_RULES: tuple[DepartmentRule, ...] = (
    DepartmentRule(
        department="الموارد البشرية",
        reason="شؤون الموظفين: رواتب، إجازات، دوام، تعيينات",
        positives=(
            _rx(r"راتب|رواتب|تعويض|علاوة|سلفة"),
            _rx(r"دوام|تأخير|توقيع|بصمة"),
            _rx(r"إجازة|استقالة|تثبيت|توظيف|تعيين|وظيفة|مسابقة"),
        ),
        negatives=(_rx(r"منحة دراسية|منحة طلاب|تأمين صحي خارجي"),),
        base=0.78,
        weight=0.07,
    ),
    DepartmentRule(
        department="الخزينة",
        reason="تحصيل مالي: دفع، رسوم، فواتير، ضريبة، إيصال",
        positives=(
            _rx(r"دفع|سداد|تحصيل|إيصال|قبض"),
            _rx(r"رسوم|غرامة|ضريبة|طابع"),
            _rx(r"فاتورة|فواتير"),
        ),
        negatives=(_rx(r"إعفاء جمركي|إعفاء صحي"),),
        base=0.8,
        weight=0.08,
    ),
    DepartmentRule(
        department="الشؤون القانونية",
        reason="قضايا ونزاعات: دعوى، شكوى قانونية، مخالفة، محضر",
        positives=(_rx(r"دعوى|مذكرة|محضر|مخالفة|قانون|استئناف|تبليغ"),),
        negatives=(_rx(r"مخالفة فنية كهرباء|عطل شبكة"),),
        base=0.76,
        weight=0.09,
    ),
    DepartmentRule(
        department="تكنولوجيا المعلومات",
        reason="أعطال تقنية: نظام، موقع، تطبيق، شبكة، حاسوب",
        positives=(
            _rx(r"نظام|منصة|موقع|تطبيق|خدمة إلكترونية"),
            _rx(r"عطل|يتوقف|لا يعمل|تجميد|بطيء"),
            _rx(r"شبكة|اتصال|حاسوب|طابعة|كهرباء|سيرفر"),
            _rx(r"otp|رمز|بريد إلكتروني"),
        ),
        negatives=(_rx(r"شبكة اجتماعية|موقع خارجي لا يتبع المديرية"),),
        base=0.79,
        weight=0.08,
    ),
    DepartmentRule(
        department="التدقيق",
        reason="مطابقة وتحقق: تدقيق، مراجعة، تحليل، تسوية",
        positives=(_rx(r"تدقيق|مطابقة|تسوية|تحليل|فحص|تحقق"),),
        negatives=(_rx(r"تدقيق لغوي|مراجعة نص"),),
        base=0.74,
        weight=0.07,
    ),
    DepartmentRule(
        department="الديوان",
        reason="كتب واردة وصادرة وأرشفة",
        positives=(_rx(r"صادر|وارد|رقم كتاب|ختم|تأشير|أرشفة|ديوان"),),
        base=0.73,
        weight=0.07,
    ),
    DepartmentRule(
        department="الخدمة المواطنية",
        reason="نوافذ خدمة المواطنين: معاملات عامة واستعلامات",
        positives=(_rx(r"معاملة|استعلام|سير المعاملة|تتبع الطلب"),),
        base=0.7,
        weight=0.06,
    ),
)

DEPARTMENT_LABELS: tuple[str, ...] = tuple(rule.department for rule in DEPARTMENT_RULES)

# Fallback chain used when neither rules nor directory entries produce a candidate.
COMPLAINT_PATTERN = _rx(r"شكوى|تظلم|اعتراض")
TECHNICAL_FAULT_PATTERN = _rx(r"عطل|لا يعمل|توقف|شبكة|سيرفر")

LEGAL_DEPARTMENT = "الشؤون القانونية"
IT_DEPARTMENT = "تكنولوجيا المعلومات"
GENERAL_DEPARTMENT = "إدارة الاستعلامات والشكاوى"

COMPLAINT_REASON = "صياغة شكوى/اعتراض - تحويل قانوني مبدئي"
TECHNICAL_FAULT_REASON = "مؤشرات عطل تقني"
DIRECT_MENTION_REASON = "ذكر مباشر لاسم القسم في النص"
GENERAL_REASON = "تصنيف عام/غير واضح"
DYNAMIC_MATCH_REASON = "ذكر مباشر للاسم/المرادفات"
