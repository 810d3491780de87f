from datetime import datetime, timezone
from enum import Enum
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PaymentStatus(str, Enum):
    """Canonical payment status stored on every OrderStatus row"""
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"


class PaymentMode(str, Enum):
    CARD = "card"
    UPI = "upi"
    NETBANKING = "netbanking"
    WALLET = "wallet"
    UNKNOWN = "unknown"


# Gateway spellings seen in the wild, keyed after lowercasing and trimming
_PAYMENT_MODE_ALIASES = {
    "card": PaymentMode.CARD,
    "credit_card": PaymentMode.CARD,
    "credit card": PaymentMode.CARD,
    "debit_card": PaymentMode.CARD,
    "debit card": PaymentMode.CARD,
    "upi": PaymentMode.UPI,
    "netbanking": PaymentMode.NETBANKING,
    "net_banking": PaymentMode.NETBANKING,
    "net banking": PaymentMode.NETBANKING,
    "wallet": PaymentMode.WALLET,
}


def normalize_payment_mode(raw: Optional[str]) -> PaymentMode:
    """Map a gateway payment method onto PaymentMode, UNKNOWN when unrecognized"""
    if not isinstance(raw, str):
        return PaymentMode.UNKNOWN
    return _PAYMENT_MODE_ALIASES.get(raw.strip().lower(), PaymentMode.UNKNOWN)


def enum_values(enum_cls):
    """values_callable for SQLAlchemy Enum columns so the lowercase value is persisted"""
    return [member.value for member in enum_cls]
