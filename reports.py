"""
Report aggregation.

Each report is a pure fold over a list of stored documents and is recomputed on
every request.

Note on the hamper report: categories are de-duplicated per hamper, so the
values of ``hampers_by_category`` count hampers, not items. A hamper holding
items from several categories is counted once under each of them, which means
the values can add up to more than ``total_hampers``.
"""

from collections import Counter
from datetime import datetime, timezone
from typing import Iterable, Optional

from schemas import DeliveryReport, DeliveryStatus, HamperReport, RecipientReport


def _day(value) -> Optional[str]:
    """Calendar day (UTC) of a stored timestamp as YYYY-MM-DD."""
    if not value:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.date().isoformat()


def delivery_report(deliveries: Iterable[dict]) -> DeliveryReport:
    deliveries = list(deliveries)
    by_status = Counter(d.get("status") for d in deliveries)
    by_date = Counter()
    for delivery in deliveries:
        day = _day(delivery.get("delivery_date") or delivery.get("scheduled_date"))
        if day:
            by_date[day] += 1

    return DeliveryReport(
        total_deliveries=len(deliveries),
        delivered_count=by_status[DeliveryStatus.DELIVERED.value],
        pending_count=by_status[DeliveryStatus.PENDING.value],
        failed_count=by_status[DeliveryStatus.FAILED.value],
        deliveries_by_date=dict(by_date),
    )


def recipient_report(recipients: Iterable[dict]) -> RecipientReport:
    recipients = list(recipients)
    # Cities are compared verbatim, no case folding or trimming
    by_city = Counter(r["address"]["city"] for r in recipients)
    return RecipientReport(total_recipients=len(recipients), recipients_by_city=dict(by_city))


def hamper_report(hampers: Iterable[dict]) -> HamperReport:
    hampers = list(hampers)
    by_category = Counter()
    for hamper in hampers:
        categories = {item.get("category") for item in hamper.get("contents") or []}
        categories.discard(None)
        categories.discard("")
        by_category.update(categories)
    return HamperReport(total_hampers=len(hampers), hampers_by_category=dict(by_category))
