"""Gateway vocabulary normalization: status words, payment modes, event types"""

import pytest

from schoolpay.orders.base import PaymentMode, PaymentStatus, normalize_payment_mode
from schoolpay.webhooks.audit import derive_event_type
from schoolpay.webhooks.status_mapping import GATEWAY_STATUS_MAP, map_gateway_status


@pytest.mark.parametrize("raw, expected", [
    ("success", PaymentStatus.SUCCESS),
    ("completed", PaymentStatus.SUCCESS),
    ("paid", PaymentStatus.SUCCESS),
    ("failed", PaymentStatus.FAILED),
    ("error", PaymentStatus.FAILED),
    ("cancelled", PaymentStatus.CANCELLED),
    ("canceled", PaymentStatus.CANCELLED),
    ("pending", PaymentStatus.PENDING),
    ("processing", PaymentStatus.PENDING),
])
def test_known_gateway_words(raw, expected):
    assert map_gateway_status(raw) == expected


@pytest.mark.parametrize("raw", ["SUCCESS", "Success", "  paid ", "COMPLETED\n"])
def test_matching_ignores_case_and_whitespace(raw):
    assert map_gateway_status(raw) == PaymentStatus.SUCCESS


@pytest.mark.parametrize("raw", ["refunded", "", "   ", "weird_state", None, 42, {"status": "paid"}, ["paid"]])
def test_anything_else_is_pending(raw):
    assert map_gateway_status(raw) == PaymentStatus.PENDING


def test_mapping_never_invents_a_status():
    """Every possible output is a canonical status"""
    canonical = set(PaymentStatus)
    for word in list(GATEWAY_STATUS_MAP) + ["unknown", "PAID", "chargeback"]:
        assert map_gateway_status(word) in canonical


@pytest.mark.parametrize("raw, expected", [
    ("upi", PaymentMode.UPI),
    ("UPI", PaymentMode.UPI),
    ("Credit Card", PaymentMode.CARD),
    ("debit_card", PaymentMode.CARD),
    ("card", PaymentMode.CARD),
    ("Net Banking", PaymentMode.NETBANKING),
    ("net_banking", PaymentMode.NETBANKING),
    ("netbanking", PaymentMode.NETBANKING),
    ("wallet", PaymentMode.WALLET),
    ("crypto", PaymentMode.UNKNOWN),
    (None, PaymentMode.UNKNOWN),
    (7, PaymentMode.UNKNOWN),
])
def test_payment_mode_normalization(raw, expected):
    assert normalize_payment_mode(raw) == expected


def test_event_type_from_raw_status():
    assert derive_event_type({"status": "success"}) == "payment_success"
    assert derive_event_type({"status": " failed "}) == "payment_failed"


def test_event_type_without_status():
    assert derive_event_type({}) == "payment_unknown"
    assert derive_event_type({"status": 3}) == "payment_unknown"
    assert derive_event_type(["not", "an", "object"]) == "payment_unknown"
