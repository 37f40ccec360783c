"""
Test classification of venue responses against recorded bodies.
"""

import pytest
from decimal import Decimal

from fee_flywheel.services.reinvest.core.types import ClaimStatus
from fee_flywheel.services.reinvest.venue.responses import (
    classify_claim_response,
    parse_trade_response,
)


CLAIM_FIXTURES = [
    # (http status, body, expected status, expected signature)
    (200, '{"signature": "4sGjMW1sUnHzSxGspuhpqLDx6wiyjNtZ"}', ClaimStatus.ACCEPTED, "4sGjMW1sUnHzSxGspuhpqLDx6wiyjNtZ"),
    (200, '{"txSignature": "3kXv9fE2"}', ClaimStatus.ACCEPTED, "3kXv9fE2"),
    (200, '{"signature": "abc", "amount": 12.5}', ClaimStatus.ACCEPTED, "abc"),
    (200, "OK", ClaimStatus.ACCEPTED, None),
    (400, '{"error": "No fees to claim"}', ClaimStatus.NOTHING_TO_CLAIM, None),
    (400, "Nothing to claim", ClaimStatus.NOTHING_TO_CLAIM, None),
    (400, '{"error": "No creator fees available for this token"}', ClaimStatus.NOTHING_TO_CLAIM, None),
    (500, '{"message": "no rewards pending"}', ClaimStatus.NOTHING_TO_CLAIM, None),
    (200, '{"errors": ["Nothing to claim for mint"]}', ClaimStatus.NOTHING_TO_CLAIM, None),
    (200, '{"error": "NO FEES TO CLAIM"}', ClaimStatus.NOTHING_TO_CLAIM, None),
    (200, '{"errors": ["Invalid API key"]}', ClaimStatus.FAILED, None),
    (403, '{"error": "Unauthorized"}', ClaimStatus.FAILED, None),
    (500, "Internal Server Error", ClaimStatus.FAILED, None),
    (502, "", ClaimStatus.FAILED, None),
]


@pytest.mark.parametrize("status_code,body,expected,signature", CLAIM_FIXTURES)
def test_classify_claim_response(status_code, body, expected, signature):
    """Each recorded claim body maps to exactly one status."""
    outcome = classify_claim_response(status_code, body)

    assert outcome.status is expected
    assert outcome.signature == signature
    if expected is ClaimStatus.FAILED:
        assert not outcome.success
        assert outcome.error
    else:
        assert outcome.success
        assert outcome.claimed == (expected is ClaimStatus.ACCEPTED)


def test_claim_failure_error_includes_status_and_body():
    outcome = classify_claim_response(500, "upstream timeout")

    assert outcome.error == "Claim failed: 500 - upstream timeout"


def test_claim_failure_error_is_truncated():
    outcome = classify_claim_response(500, "x" * 2000)

    assert len(outcome.error) < 600
    assert outcome.error.endswith("...")


TRADE_FIXTURES = [
    # (http status, body, success, signature, error fragment)
    (200, '{"signature": "5abc"}', True, "5abc", None),
    (200, '{"transaction": "tx-1"}', True, "tx-1", None),
    (200, '{"errors": []}', True, None, None),
    (200, "not-json-but-ok", True, None, None),
    (200, '{"errors": ["slippage exceeded", "retry"]}', False, None, "Validation error: slippage exceeded, retry"),
    (200, '{"error": "Insufficient SOL balance"}', False, None, "Insufficient SOL balance"),
    (502, "Bad gateway", False, None, "HTTP 502 - Bad gateway"),
    (400, '{"errors": ["bad mint"]}', False, None, "HTTP 400"),
]


@pytest.mark.parametrize("status_code,body,success,signature,error", TRADE_FIXTURES)
def test_parse_trade_response(status_code, body, success, signature, error):
    outcome = parse_trade_response(status_code, body, Decimal("0.024"))

    assert outcome.success is success
    assert outcome.signature == signature
    assert outcome.amount == Decimal("0.024")
    if error:
        assert error in outcome.error
    else:
        assert outcome.error is None


def test_non_json_success_keeps_raw_payload():
    outcome = parse_trade_response(200, "<html>ok</html>", Decimal("0.01"))

    assert outcome.raw == {"raw": "<html>ok</html>"}
