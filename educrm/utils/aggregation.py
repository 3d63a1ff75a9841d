"""
Aggregation Module

Pure functions that reduce fetched record lists into summary numbers and
groupings (counts by status, by country, by counselor).

Empty-data convention: a ratio over an empty set is never NaN or Infinity.
Rates fall back to EMPTY_RATE, sentiment to NEUTRAL_SENTIMENT and SLA
compliance to FULL_COMPLIANCE. Reports and prompts rely on these exact values.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable, Hashable, Iterable, Optional, Sequence, TypeVar

R = TypeVar("R")
K = TypeVar("K", bound=Hashable)

EMPTY_RATE = 0.0
NEUTRAL_SENTIMENT = 50.0
FULL_COMPLIANCE = 100.0

ENROLLED = "enrolled"
NEGATIVE = "negative"


def get_value(record: Any, name: str, default: Any = None) -> Any:
    """Read a field from a model or a plain dict."""
    if isinstance(record, dict):
        return record.get(name, default)
    return getattr(record, name, default)


def round_half_up(value: float, digits: int = 1) -> float:
    """Round like ``Number.toFixed``: halves go away from zero (66.65 -> 66.7)."""
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def ratio(numerator: float, denominator: float) -> float:
    """Unrounded percentage ``numerator / denominator * 100``.

    Returns EMPTY_RATE when the denominator is zero.
    """
    if not denominator:
        return EMPTY_RATE
    return numerator / denominator * 100


def compute_rate(numerator: float, denominator: float, digits: int = 1) -> float:
    """Percentage ``numerator / denominator * 100`` rounded to ``digits``.

    Returns EMPTY_RATE when the denominator is zero.

    Examples:
        >>> compute_rate(3, 10)
        30.0
        >>> compute_rate(2, 3)
        66.7
        >>> compute_rate(0, 0)
        0.0
    """
    if not denominator:
        return EMPTY_RATE
    return round_half_up(ratio(numerator, denominator), digits)


def safe_average(values: Iterable[float]) -> float:
    """Arithmetic mean guarded with ``max(count, 1)``; empty input gives 0."""
    items = list(values)
    return sum(items) / max(len(items), 1)


def sentiment_score(records: Iterable[Any]) -> float:
    """Share of non-negative sentiments among records that carry one.

    Computed as ``(total - negative) / total * 100``. Returns NEUTRAL_SENTIMENT
    when no record has a sentiment.
    """
    sentiments = [get_value(r, "sentiment") for r in records]
    rated = [s for s in sentiments if s]
    if not rated:
        return NEUTRAL_SENTIMENT
    negative = sum(1 for s in rated if s == NEGATIVE)
    return (len(rated) - negative) / len(rated) * 100


def group_by(records: Iterable[R], key_fn: Callable[[R], K]) -> dict[K, list[R]]:
    """Group records by key, preserving first-seen key order."""
    groups: dict[K, list[R]] = {}
    for record in records:
        groups.setdefault(key_fn(record), []).append(record)
    return groups


def count_by(records: Iterable[R], key_fn: Callable[[R], K]) -> dict[K, int]:
    """Count records per key, preserving first-seen key order.

    With a key function defined for every record, the counts sum to the number
    of records.
    """
    counts: dict[K, int] = {}
    for record in records:
        key = key_fn(record)
        counts[key] = counts.get(key, 0) + 1
    return counts


def count_multi(records: Iterable[R], values_fn: Callable[[R], Optional[Iterable[K]]]) -> dict[K, int]:
    """Count every value of an array-valued field (e.g. preferred_countries)."""
    counts: dict[K, int] = {}
    for record in records:
        for value in values_fn(record) or []:
            counts[value] = counts.get(value, 0) + 1
    return counts


def reduce_metric(records: Iterable[R], predicate: Callable[[R], bool]) -> int:
    """Number of records satisfying ``predicate``."""
    return sum(1 for record in records if predicate(record))


def field(name: str) -> Callable[[Any], Any]:
    """Key function reading an attribute (None when absent)."""
    return lambda record: get_value(record, name)


def conversion_rate(applications: Sequence[Any], digits: int = 1) -> float:
    """Percentage of applications in the enrolled state."""
    enrolled = reduce_metric(applications, lambda a: get_value(a, "status") == ENROLLED)
    return compute_rate(enrolled, len(applications), digits)


def response_rate(outreaches: Sequence[Any], responded_status: str = "responded") -> float:
    """Percentage of outreach emails that reached the responded state."""
    responded = reduce_metric(outreaches, lambda o: get_value(o, "status") == responded_status)
    return compute_rate(responded, len(outreaches))


def sla_compliance(chats: Sequence[Any]) -> float:
    """Percentage of conversations without an SLA violation.

    Returns FULL_COMPLIANCE when there are no conversations.
    """
    if not chats:
        return FULL_COMPLIANCE
    violations = reduce_metric(chats, lambda c: bool(get_value(c, "sla_violated", False)))
    return compute_rate(len(chats) - violations, len(chats))


def counselor_keys(counselor: Any) -> set[str]:
    """Ids a student's ``counselor_id`` may hold for this counselor.

    Older records link students to the counselor record id, newer ones to the
    counselor's user id.
    """
    return {k for k in (get_value(counselor, "id"), get_value(counselor, "user_id")) if k}


def assigned_to(records: Iterable[R], counselor: Any, field_name: str = "counselor_id") -> list[R]:
    """Records whose ``field_name`` points at ``counselor``."""
    keys = counselor_keys(counselor)
    return [r for r in records if get_value(r, field_name) in keys]
