from datetime import datetime, timezone

import reports


def _delivery(status, delivery_date=None, scheduled_date=None):
    return {"status": status, "delivery_date": delivery_date, "scheduled_date": scheduled_date}


def _hamper(*categories):
    return {"name": "H", "contents": [{"name": f"item{i}", "quantity": 1, "category": c}
                                      for i, c in enumerate(categories)]}


def _recipient(city):
    return {"first_name": "A", "last_name": "B", "address": {"city": city}}


def test_empty_collections_give_zero_reports():
    assert reports.delivery_report([]).model_dump() == {
        "total_deliveries": 0,
        "delivered_count": 0,
        "pending_count": 0,
        "failed_count": 0,
        "deliveries_by_date": {},
    }
    assert reports.recipient_report([]).model_dump() == {"total_recipients": 0, "recipients_by_city": {}}
    assert reports.hamper_report([]).model_dump() == {"total_hampers": 0, "hampers_by_category": {}}


def test_delivery_report_counts_statuses():
    report = reports.delivery_report([
        _delivery("DELIVERED"),
        _delivery("DELIVERED"),
        _delivery("PENDING"),
        _delivery("FAILED"),
        _delivery("IN_TRANSIT"),
        _delivery("CANCELLED"),
    ])

    assert report.total_deliveries == 6
    assert report.delivered_count == 2
    assert report.pending_count == 1
    assert report.failed_count == 1
    assert report.delivered_count + report.pending_count + report.failed_count <= report.total_deliveries


def test_delivery_report_groups_by_delivery_date_then_scheduled_date():
    report = reports.delivery_report([
        _delivery("DELIVERED",
                  delivery_date=datetime(2023, 5, 15, 11, 30, tzinfo=timezone.utc),
                  scheduled_date=datetime(2023, 5, 14, 10, 0, tzinfo=timezone.utc)),
        _delivery("PENDING", scheduled_date=datetime(2023, 5, 15, 14, 0, tzinfo=timezone.utc)),
        _delivery("FAILED", scheduled_date=datetime(2023, 5, 16, 9, 0, tzinfo=timezone.utc)),
        _delivery("PENDING"),
    ])

    assert report.deliveries_by_date == {"2023-05-15": 2, "2023-05-16": 1}
    # Undated deliveries still count towards the totals
    assert report.total_deliveries == 4
    assert report.pending_count == 2


def test_delivery_report_buckets_by_utc_day():
    report = reports.delivery_report([
        _delivery("DELIVERED", delivery_date="2023-05-15T23:30:00-02:00"),
        _delivery("DELIVERED", delivery_date="2023-05-15T10:00:00Z"),
    ])
    assert report.deliveries_by_date == {"2023-05-16": 1, "2023-05-15": 1}


def test_recipient_report_groups_by_exact_city():
    report = reports.recipient_report([
        _recipient("Cape Town"),
        _recipient("Cape Town"),
        _recipient("Durban"),
        _recipient("cape town"),
    ])

    assert report.total_recipients == 4
    assert report.recipients_by_city == {"Cape Town": 2, "Durban": 1, "cape town": 1}


def test_hamper_report_counts_each_category_once_per_hamper():
    report = reports.hamper_report([_hamper("Hygiene", "Hygiene", "Hygiene")])
    assert report.hampers_by_category == {"Hygiene": 1}


def test_hamper_report_ignores_uncategorised_items():
    report = reports.hamper_report([_hamper(None, "", "Grains"), _hamper(None)])

    assert report.total_hampers == 2
    assert report.hampers_by_category == {"Grains": 1}


def test_hamper_category_counts_can_exceed_total():
    report = reports.hamper_report([
        _hamper("Grains", "Protein", "Oils"),
        _hamper("Grains", "Hygiene"),
    ])

    assert report.total_hampers == 2
    assert report.hampers_by_category == {"Grains": 2, "Protein": 1, "Oils": 1, "Hygiene": 1}
    assert sum(report.hampers_by_category.values()) > report.total_hampers
