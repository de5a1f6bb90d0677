"""
Signed redemption codes.

A customer generates a code for an amount; a business scans it and redeems
the points with ``LedgerOperations.redeem_code``. The code is the payload
signed with ``django.core.signing`` so it cannot be forged or altered, and it
expires after ``DJ_LOYALTY['REDEMPTION_CODE_MAX_AGE']`` seconds. Rendering it
as a QR image is left to the caller.
"""
import time
from dataclasses import dataclass
from decimal import Decimal

from django.core import signing

from .conf import loyalty_settings
from .exceptions import InvalidRequest
from .scopes import Scope
from .utils import verify_amount

SALT = "dj_loyalty.redemption"


@dataclass(frozen=True)
class RedemptionPayload:
    user_id: str
    scope: Scope
    points_amount: Decimal
    timestamp: int


def build_redemption_payload(user_id, scope, points_amount, timestamp=None):
    if user_id in (None, ""):
        raise InvalidRequest("user_id is required.")
    return {
        "user_id": str(user_id),
        "scope": Scope.coerce(scope).label,
        "points_amount": str(verify_amount(points_amount)),
        "timestamp": timestamp if timestamp is not None else int(time.time() * 1000),
    }


def encode_redemption_code(payload):
    return signing.dumps(payload, salt=SALT, compress=True)


def decode_redemption_code(code, max_age=None):
    if not code:
        raise InvalidRequest("Redemption code is required.")
    max_age = max_age if max_age is not None else loyalty_settings.REDEMPTION_CODE_MAX_AGE
    try:
        data = signing.loads(code, salt=SALT, max_age=max_age)
    except signing.SignatureExpired:
        raise InvalidRequest("Redemption code has expired.") from None
    except signing.BadSignature:
        raise InvalidRequest("Invalid redemption code.") from None

    try:
        return RedemptionPayload(
            user_id=str(data["user_id"]),
            scope=Scope.from_label(data["scope"]),
            points_amount=verify_amount(data["points_amount"]),
            timestamp=int(data["timestamp"]),
        )
    except (KeyError, TypeError, ValueError):
        raise InvalidRequest("Malformed redemption code.") from None


def redemption_marker(code):
    """The code's signature, stored on the redeem transaction so it is spent once."""
    return code.rsplit(signing.Signer().sep, 1)[-1]


def generate_redemption_code(user_id, scope, points_amount):
    """Returns ``(payload, code)`` for a customer-initiated redemption."""
    payload = build_redemption_payload(user_id, scope, points_amount)
    return payload, encode_redemption_code(payload)
