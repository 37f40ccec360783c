"""
Classification of trading venue responses.

The venue reports "nothing to claim" as an error body rather than a
distinct status, so claim responses are matched against known phrases.
"""

import json
from dataclasses import dataclass
from typing import Any, Optional, Tuple

from fee_flywheel.services.reinvest.core.types import ClaimOutcome, ClaimStatus, TradeOutcome


NOTHING_TO_CLAIM_PHRASES: Tuple[str, ...] = (
    "no fees",
    "nothing to claim",
    "no creator fee",
    "no rewards",
    "no claimable",
)

SIGNATURE_KEYS = ("signature", "txSignature", "transaction")

MAX_ERROR_LENGTH = 500


@dataclass
class VenueResponse:
    """Raw HTTP response from the venue."""
    status_code: int
    body: str


def _parse_json(body: str) -> Optional[Any]:
    try:
        return json.loads(body)
    except (TypeError, ValueError):
        return None


def _mentions_nothing_to_claim(text: str) -> bool:
    lowered = text.lower()
    return any(phrase in lowered for phrase in NOTHING_TO_CLAIM_PHRASES)


def _error_fields(data: Any) -> list:
    """Collect error messages embedded in a JSON payload."""
    if not isinstance(data, dict):
        return []
    errors = []
    raw_errors = data.get("errors")
    if isinstance(raw_errors, list):
        errors.extend(str(e) for e in raw_errors if e)
    elif raw_errors:
        errors.append(str(raw_errors))
    if data.get("error"):
        errors.append(str(data["error"]))
    return errors


def extract_signature(data: Any) -> Optional[str]:
    if not isinstance(data, dict):
        return None
    for key in SIGNATURE_KEYS:
        value = data.get(key)
        if isinstance(value, str) and value:
            return value
    return None


def _truncate(text: str) -> str:
    return text if len(text) <= MAX_ERROR_LENGTH else text[:MAX_ERROR_LENGTH] + "..."


def classify_claim_response(status_code: int, body: str) -> ClaimOutcome:
    """
    Map a collectCreatorFee response onto exactly one ClaimStatus.

    - non-2xx or embedded errors mentioning an empty fee vault -> NOTHING_TO_CLAIM
    - any other non-2xx or embedded errors -> FAILED
    - otherwise -> ACCEPTED (signature optional and untrusted)
    """
    body = body or ""
    data = _parse_json(body)

    if not 200 <= status_code < 300:
        if _mentions_nothing_to_claim(body):
            return ClaimOutcome(status=ClaimStatus.NOTHING_TO_CLAIM)
        return ClaimOutcome(
            status=ClaimStatus.FAILED,
            error=f"Claim failed: {status_code} - {_truncate(body)}"
        )

    errors = _error_fields(data)
    if errors:
        joined = ", ".join(errors)
        if _mentions_nothing_to_claim(joined):
            return ClaimOutcome(status=ClaimStatus.NOTHING_TO_CLAIM)
        return ClaimOutcome(status=ClaimStatus.FAILED, error=f"Claim rejected: {_truncate(joined)}")

    return ClaimOutcome(status=ClaimStatus.ACCEPTED, signature=extract_signature(data))


def parse_trade_response(status_code: int, body: str, amount) -> TradeOutcome:
    """
    Parse a buy/transfer response defensively.

    A non-JSON success body is kept as an opaque raw payload. A success
    status carrying a non-empty `errors` list is still a failure.
    """
    body = body or ""
    if not 200 <= status_code < 300:
        return TradeOutcome(
            success=False,
            amount=amount,
            error=f"HTTP {status_code} - {_truncate(body)}",
            raw=body
        )

    data = _parse_json(body)
    if data is None:
        return TradeOutcome(success=True, amount=amount, raw={"raw": body})

    if isinstance(data, dict):
        errors = data.get("errors")
        if isinstance(errors, list) and errors:
            return TradeOutcome(
                success=False,
                amount=amount,
                error=f"Validation error: {', '.join(str(e) for e in errors)}",
                raw=data
            )
        if data.get("error"):
            return TradeOutcome(success=False, amount=amount, error=str(data["error"]), raw=data)

    return TradeOutcome(success=True, amount=amount, signature=extract_signature(data), raw=data)
