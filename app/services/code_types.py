"""Code type taxonomy and plan naming.

Code types arrive as single strings that pack a category and a billing
period together, e.g. ``choose_single_subject_yearly``. ``parse_code_type``
splits them into explicit fields so the rest of the service never has to
match on prefixes.
"""

from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo

from app.core.config import settings

GENERAL = "general"
CHOOSE_SINGLE_SUBJECT = "choose_single_subject"
TRIAL = "trial"

KNOWN_CATEGORIES = (CHOOSE_SINGLE_SUBJECT, GENERAL, TRIAL)
PERIODS = ("weekly", "monthly", "quarterly", "yearly")

CUSTOM_PLAN_NAME = "اشتراك مخصص"

PLAN_NAMES = {
    (GENERAL, "monthly"): "اشتراك شهري عام",
    (GENERAL, "quarterly"): "اشتراك ربع سنوي عام",
    (GENERAL, "yearly"): "اشتراك سنوي عام",
    (CHOOSE_SINGLE_SUBJECT, "monthly"): "اشتراك شهري لمادة واحدة",
    (CHOOSE_SINGLE_SUBJECT, "quarterly"): "اشتراك ربع سنوي لمادة واحدة",
    (CHOOSE_SINGLE_SUBJECT, "yearly"): "اشتراك سنوي لمادة واحدة",
}

ARABIC_MONTHS = (
    "يناير", "فبراير", "مارس", "أبريل", "مايو", "يونيو",
    "يوليو", "أغسطس", "سبتمبر", "أكتوبر", "نوفمبر", "ديسمبر",
)
ARABIC_DIGITS = str.maketrans("0123456789", "٠١٢٣٤٥٦٧٨٩")


@dataclass(frozen=True)
class CodeType:
    raw: str
    category: str
    period: Optional[str]

    @property
    def requires_partition_choice(self) -> bool:
        # Only the prefixed form; a bare "choose_single_subject" carries no choice.
        return self.raw.startswith(CHOOSE_SINGLE_SUBJECT + "_")


def parse_code_type(value: Optional[str]) -> CodeType:
    raw = (value or "").strip()
    period = None
    head = raw
    for candidate in PERIODS:
        if raw.endswith("_" + candidate):
            period = candidate
            head = raw[: -len(candidate) - 1]
            break

    for category in KNOWN_CATEGORIES:
        if head == category or raw.startswith(category + "_"):
            return CodeType(raw=raw, category=category, period=period)

    return CodeType(raw=raw, category=head, period=period)


def requires_partition_choice(value: Optional[str]) -> bool:
    return parse_code_type(value).requires_partition_choice


def subject_plan_name(subject_name: str) -> str:
    return f"اشتراك لمادة {subject_name}"


def plan_name_for(
    code_type: Optional[str],
    code_subject_name: Optional[str] = None,
    chosen_subject_name: Optional[str] = None,
) -> str:
    """Human readable plan name.

    A chosen subject beats the code's pre-bound subject, which beats the
    generic name derived from the type.
    """
    if chosen_subject_name:
        return subject_plan_name(chosen_subject_name)
    if code_subject_name:
        return subject_plan_name(code_subject_name)

    parsed = parse_code_type(code_type)
    if not parsed.raw:
        return CUSTOM_PLAN_NAME

    known = PLAN_NAMES.get((parsed.category, parsed.period))
    if known:
        return known

    words = [w[:1].upper() + w[1:] for w in parsed.raw.replace("_", " ").split()]
    return " ".join(words) or CUSTOM_PLAN_NAME


def format_arabic_date(value: datetime, tz: Optional[tzinfo] = None) -> str:
    """Long Arabic date with Arabic-Indic digits, e.g. ``١ فبراير ٢٠٢٤``.

    The calendar day is taken in ``tz``, defaulting to the configured
    ``DISPLAY_TIMEZONE``. Naive values are read as UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    local = value.astimezone(tz or ZoneInfo(settings.DISPLAY_TIMEZONE))
    text = f"{local.day} {ARABIC_MONTHS[local.month - 1]} {local.year}"
    return text.translate(ARABIC_DIGITS)
