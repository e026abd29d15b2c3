"""
Heuristic field extractors for bank-statement text.

Each field is extracted by an ordered list of pattern rules. Rules are tried
in order and the first one that yields a valid value wins, so more specific
(currency-marked, labeled) conventions sit before generic fallbacks. A rule
that fails on unexpected input is logged and skipped; it never aborts the
extraction of its own field or of the other fields.

All extractors expect text already passed through ``normalize_text``.
"""

import re
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Callable, Dict, Generic, Iterable, List, Optional, Pattern, Sequence, TypeVar

import structlog

from ledgerline.extraction.models import (
    MAX_DESCRIPTION_LENGTH,
    NO_MATCH,
    FieldMatch,
    TransactionCategory,
)
from ledgerline.extraction.normalization import non_empty_lines

logger = structlog.get_logger(__name__)

T = TypeVar("T")

# Confidence weights earned by each field
AMOUNT_WEIGHT = 0.3
DATE_WEIGHT = 0.3
DESCRIPTION_WEIGHT = 0.2
DESCRIPTION_FALLBACK_WEIGHT = 0.1
CATEGORY_WEIGHT = 0.2


# =============================================================================
# Rule machinery
# =============================================================================

@dataclass(frozen=True)
class PatternRule(Generic[T]):
    """A named pattern and the function that turns one of its matches into a value."""

    name: str
    pattern: Pattern[str]
    build: Callable[[re.Match], Optional[T]]

    def apply(self, text: str) -> Optional[T]:
        """Return the value of the first occurrence that builds a valid value."""
        for match in self.pattern.finditer(text):
            value = self.build(match)
            if value is not None:
                return value
        return None


def first_match(
    field_name: str,
    rules: Sequence[PatternRule[T]],
    text: str,
    weight: float,
) -> FieldMatch[T]:
    """
    Evaluate ``rules`` in order and return the first value found.

    Args:
        field_name: Field being extracted, for logging.
        rules: Ordered rules; earlier rules take precedence.
        text: Normalized text.
        weight: Confidence weight earned on a match.

    Returns:
        FieldMatch with the value and the winning rule, or NO_MATCH.
    """
    for rule in rules:
        try:
            value = rule.apply(text)
        except Exception as e:
            logger.warning("regex_rule_failed", field=field_name, rule=rule.name, error=str(e))
            continue
        if value is not None:
            return FieldMatch(value=value, weight=weight, rule=rule.name)
    return NO_MATCH


# =============================================================================
# Amount
# =============================================================================

# Grouped (Indian 1,00,000 or western 1,000,000) or plain digits, optional decimals
_NUMBER = r"\d+(?:,\d{2,3})*(?:\.\d+)?(?!\d|,\d)"
_RUPEE = r"(?:₹|\bRs\.?|\bINR)"


def _to_amount(match: re.Match) -> Optional[Decimal]:
    """Strip grouping separators and take the absolute value."""
    raw = match.group("number").replace(",", "")
    try:
        value = Decimal(raw)
    except InvalidOperation:
        return None
    if not value.is_finite():
        return None
    return abs(value)


AMOUNT_RULES: List[PatternRule[Decimal]] = [
    PatternRule(
        "currency_symbol_prefix",  # ₹1,00,000.00, Rs. 1,234.56, INR 500
        re.compile(rf"{_RUPEE}\s*-?\s*(?P<number>{_NUMBER})", re.IGNORECASE),
        _to_amount,
    ),
    PatternRule(
        "currency_code_suffix",  # 1,234.56 INR, 500 Rs
        re.compile(rf"(?<![\d.,])-?(?P<number>{_NUMBER})\s*(?:INR\b|Rs\b\.?|₹)", re.IGNORECASE),
        _to_amount,
    ),
    PatternRule(
        "labeled_amount",  # Amount: -420.00
        re.compile(rf"\bAmount\s*:\s*(?:[₹$€£]|Rs\.?|INR)?\s*-?\s*(?P<number>{_NUMBER})", re.IGNORECASE),
        _to_amount,
    ),
    PatternRule(
        "currency_symbol_fallback",  # $1,234.56
        re.compile(rf"[$€£]\s*-?\s*(?P<number>{_NUMBER})"),
        _to_amount,
    ),
    PatternRule(
        "bare_signed_decimal",  # -1,234.56
        re.compile(rf"(?:^|(?<=\s))-?(?P<number>{_NUMBER})(?=\s|$)", re.MULTILINE),
        _to_amount,
    ),
]


# =============================================================================
# Date
# =============================================================================

MONTH_NUMBERS: Dict[str, int] = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}

_MONTH = r"(?P<month>Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)[a-z]*\.?"


def _year(raw: str) -> Optional[int]:
    """Four-digit years as-is, two-digit years in 2000-2099."""
    if len(raw) == 4:
        return int(raw)
    if len(raw) == 2:
        return 2000 + int(raw)
    return None


def _make_date(year: Optional[int], month: int, day: int) -> Optional[date]:
    if year is None:
        return None
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _month_name_date(match: re.Match) -> Optional[date]:
    month = MONTH_NUMBERS[match.group("month")[:3].lower()]
    return _make_date(_year(match.group("year")), month, int(match.group("day")))


def _day_first_date(match: re.Match) -> Optional[date]:
    """DD/MM/YYYY; falls back to MM/DD/YYYY only when day-first is impossible."""
    first, second = int(match.group("first")), int(match.group("second"))
    year = _year(match.group("year"))
    return _make_date(year, second, first) or _make_date(year, first, second)


def _year_first_date(match: re.Match) -> Optional[date]:
    return _make_date(int(match.group("year")), int(match.group("month")), int(match.group("day")))


DATE_RULES: List[PatternRule[date]] = [
    PatternRule(
        "day_month_name_year",  # 11 Dec 2025, 11-Dec-2025
        re.compile(rf"\b(?P<day>\d{{1,2}})(?:st|nd|rd|th)?[\s\-]+{_MONTH}[\s\-,]+(?P<year>\d{{4}})\b", re.IGNORECASE),
        _month_name_date,
    ),
    PatternRule(
        "month_name_day_year",  # Dec 11, 2025
        re.compile(rf"\b{_MONTH}\s+(?P<day>\d{{1,2}})(?:st|nd|rd|th)?,?\s+(?P<year>\d{{4}})\b", re.IGNORECASE),
        _month_name_date,
    ),
    PatternRule(
        "numeric_day_first",  # 15/12/2024, 15-12-24
        re.compile(r"\b(?P<first>\d{1,2})(?P<sep>[/\-])(?P<second>\d{1,2})(?P=sep)(?P<year>\d{4}|\d{2})\b"),
        _day_first_date,
    ),
    PatternRule(
        "iso_year_first",  # 2024-12-15, 2024/12/15
        re.compile(r"\b(?P<year>\d{4})(?P<sep>[/\-])(?P<month>\d{1,2})(?P=sep)(?P<day>\d{1,2})\b"),
        _year_first_date,
    ),
    PatternRule(
        "labeled_date",  # Date: 11 Dec 25
        re.compile(rf"\bDate\s*:\s*(?P<day>\d{{1,2}})[\s\-]+{_MONTH}[\s\-]+(?P<year>\d{{4}}|\d{{2}})\b", re.IGNORECASE),
        _month_name_date,
    ),
]


def mask_dates(text: str) -> str:
    """Blank out date-like spans so their digits are not read as amounts."""
    for rule in DATE_RULES:
        text = rule.pattern.sub(lambda m: " " * len(m.group(0)), text)
    return text


# =============================================================================
# Category
# =============================================================================

# Checked in this order; the first category with any keyword present wins.
CATEGORY_KEYWORDS: Dict[TransactionCategory, List[str]] = {
    TransactionCategory.FOOD_AND_DINING: [
        "restaurant", "food", "coffee", "cafe", "pizza", "burger", "dining", "lunch",
        "dinner", "breakfast", "swiggy", "zomato", "starbucks", "mcdonald", "kfc",
        "domino", "subway",
    ],
    TransactionCategory.SHOPPING: [
        "amazon", "flipkart", "myntra", "walmart", "target", "store", "shop", "retail",
        "purchase", "mall", "market", "reliance", "dmart",
    ],
    TransactionCategory.TRANSPORTATION: [
        "uber", "ola", "rapido", "lyft", "gas", "fuel", "parking", "transit", "taxi",
        "train", "bus", "metro", "petrol", "diesel",
    ],
    TransactionCategory.ENTERTAINMENT: [
        "movie", "theater", "netflix", "hotstar", "prime", "spotify", "game", "concert",
        "ticket", "bookmyshow", "pvr", "inox",
    ],
    TransactionCategory.UTILITIES: [
        "electric", "electricity", "water", "internet", "phone", "utility", "bill",
        "airtel", "jio", "bsnl", "vodafone", "mseb", "bescom",
    ],
    TransactionCategory.HEALTHCARE: [
        "pharmacy", "doctor", "medical", "hospital", "health", "dental", "apollo",
        "fortis", "medplus", "clinic",
    ],
    TransactionCategory.INCOME: [
        "salary", "payroll", "refund", "cashback", "dividend", "interest credit",
    ],
    TransactionCategory.TRANSFER: [
        "transfer", "payment", "upi", "neft", "imps", "rtgs", "paytm", "phonepe", "gpay",
        "googlepay", "venmo", "paypal", "zelle", "cashapp",
    ],
}


# =============================================================================
# Extractors
# =============================================================================

def extract_amount(text: str) -> FieldMatch[Decimal]:
    """Extract the transaction amount as a non-negative Decimal."""
    return first_match("amount", AMOUNT_RULES, mask_dates(text), AMOUNT_WEIGHT)


def extract_date(text: str) -> FieldMatch[date]:
    """Extract the transaction date."""
    return first_match("date", DATE_RULES, text, DATE_WEIGHT)


def extract_description(text: str) -> FieldMatch[str]:
    """
    Pick the first line carrying alphabetic content as the description.

    When every line is numeric/symbolic, the first line is used with a lower
    weight since it is unlikely to be a real description.
    """
    try:
        lines = non_empty_lines(text)
        for line in lines:
            if any(ch.isalpha() for ch in line):
                return FieldMatch(
                    value=line[:MAX_DESCRIPTION_LENGTH],
                    weight=DESCRIPTION_WEIGHT,
                    rule="first_alphabetic_line",
                )
        if lines:
            return FieldMatch(
                value=lines[0][:MAX_DESCRIPTION_LENGTH],
                weight=DESCRIPTION_FALLBACK_WEIGHT,
                rule="first_line",
            )
    except Exception as e:
        logger.warning("regex_rule_failed", field="description", rule="first_alphabetic_line", error=str(e))
    return NO_MATCH


def extract_category(text: str) -> FieldMatch[TransactionCategory]:
    """Classify by keyword; first category in priority order with a hit wins."""
    lowered = text.lower()
    for category, keywords in CATEGORY_KEYWORDS.items():
        try:
            hit = _contains_any(lowered, keywords)
        except Exception as e:
            logger.warning("regex_rule_failed", field="category", rule=category.value, error=str(e))
            continue
        if hit:
            return FieldMatch(value=category, weight=CATEGORY_WEIGHT, rule=category.value)
    return NO_MATCH


def _contains_any(text: str, keywords: Iterable[str]) -> bool:
    return any(keyword in text for keyword in keywords)
