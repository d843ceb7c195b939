"""A/R aging buckets for outstanding claim balances."""

import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..utils.formatters import parse_date

logger = logging.getLogger(__name__)

# (label, inclusive upper bound in days); the last band is open-ended
AGING_BUCKETS: List[Tuple[str, Optional[int]]] = [
    ("0-30", 30),
    ("31-60", 60),
    ("61-90", 90),
    ("91-120", 120),
    ("120+", None),
]


def aging_bucket(days_outstanding: int) -> str:
    """Return the aging band label for a number of days outstanding."""
    for label, upper in AGING_BUCKETS:
        if upper is None or days_outstanding <= upper:
            return label
    return AGING_BUCKETS[-1][0]


def _claim_amount(claim: Dict[str, Any]) -> float:
    for key in ("balance", "total_charges", "totalCharges"):
        value = claim.get(key)
        if value not in (None, ""):
            try:
                return float(value)
            except (TypeError, ValueError):
                logger.warning(f"Invalid {key} on claim {claim.get('claim_id', '')}: {value}")
                return 0.0
    return 0.0


def _claim_age_date(claim: Dict[str, Any]) -> Optional[date]:
    for key in ("last_payment_date", "service_date", "serviceDate", "created_at"):
        parsed = parse_date(claim.get(key))
        if parsed is not None:
            return parsed
    return None


def build_aging_report(claims: Iterable[Dict[str, Any]], as_of: Optional[date] = None) -> Dict[str, Any]:
    """Bucket outstanding claims by age.

    Age is measured from the last payment date, falling back to the
    service date. Claims without a usable date are skipped.

    Args:
        claims: Claim dictionaries with balance/total_charges and a date
        as_of: Reference date (default: today)

    Returns:
        Dictionary with per-bucket count/amount/percentage, totals and
        the number of skipped claims
    """
    as_of = as_of or date.today()
    buckets = {label: {"count": 0, "amount": 0.0} for label, _ in AGING_BUCKETS}
    skipped = 0

    for claim in claims:
        age_date = _claim_age_date(claim)
        if age_date is None:
            skipped += 1
            continue

        days = max(0, (as_of - age_date).days)
        bucket = buckets[aging_bucket(days)]
        bucket["count"] += 1
        bucket["amount"] += _claim_amount(claim)

    total_amount = sum(b["amount"] for b in buckets.values())
    for bucket in buckets.values():
        bucket["amount"] = round(bucket["amount"], 2)
        bucket["percentage"] = round(bucket["amount"] / total_amount * 100, 1) if total_amount else 0.0

    if skipped:
        logger.warning(f"Skipped {skipped} claims without a usable date")

    return {
        "as_of": as_of.isoformat(),
        "buckets": buckets,
        "total_count": sum(b["count"] for b in buckets.values()),
        "total_amount": round(total_amount, 2),
        "skipped": skipped,
    }
