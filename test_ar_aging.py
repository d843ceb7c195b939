#!/usr/bin/env python3
"""Test A/R aging buckets."""

import sys
from datetime import date, timedelta
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from rcm_edi.reports.ar_aging import aging_bucket, build_aging_report

AS_OF = date(2024, 6, 30)


def days_ago(days):
    return (AS_OF - timedelta(days=days)).isoformat()


def test_bucket_boundaries():
    assert aging_bucket(0) == "0-30"
    assert aging_bucket(30) == "0-30"
    assert aging_bucket(31) == "31-60"
    assert aging_bucket(60) == "31-60"
    assert aging_bucket(61) == "61-90"
    assert aging_bucket(90) == "61-90"
    assert aging_bucket(91) == "91-120"
    assert aging_bucket(120) == "91-120"
    assert aging_bucket(121) == "120+"
    assert aging_bucket(1000) == "120+"


def test_aging_report():
    claims = [
        {"claim_id": "A", "balance": 100.0, "service_date": days_ago(10)},
        {"claim_id": "B", "balance": 50.0, "service_date": days_ago(45)},
        {"claim_id": "C", "totalCharges": 25.0, "serviceDate": days_ago(75)},
        {"claim_id": "D", "total_charges": "25.00", "service_date": days_ago(100)},
        # Last payment date takes precedence over the service date
        {"claim_id": "E", "balance": 300.0, "service_date": days_ago(400),
         "last_payment_date": days_ago(5)},
        {"claim_id": "F", "balance": 500.0},
    ]
    report = build_aging_report(claims, as_of=AS_OF)

    assert report["as_of"] == "2024-06-30"
    assert report["total_count"] == 5
    assert report["total_amount"] == 500.0
    assert report["skipped"] == 1

    buckets = report["buckets"]
    assert list(buckets) == ["0-30", "31-60", "61-90", "91-120", "120+"]
    assert buckets["0-30"] == {"count": 2, "amount": 400.0, "percentage": 80.0}
    assert buckets["31-60"] == {"count": 1, "amount": 50.0, "percentage": 10.0}
    assert buckets["61-90"]["count"] == 1
    assert buckets["91-120"]["amount"] == 25.0
    assert buckets["120+"] == {"count": 0, "amount": 0.0, "percentage": 0.0}


def test_empty_report():
    report = build_aging_report([], as_of=AS_OF)

    assert report["total_count"] == 0
    assert report["total_amount"] == 0.0
    assert all(b["percentage"] == 0.0 for b in report["buckets"].values())


def test_future_dates_count_as_current():
    report = build_aging_report([{"balance": 10, "service_date": "2024-07-15"}], as_of=AS_OF)

    assert report["buckets"]["0-30"]["count"] == 1
