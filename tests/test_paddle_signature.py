"""
Tests for Paddle-Signature parsing and verification.

Tests cover:
- Header parsing (ts, multiple h1 values, malformed headers)
- Timestamp tolerance window
- Hash mismatch and tampered bodies
- Event parsing and event-kind dispatch
"""

import pytest

from app.billing.paddle import (
    PaddleEventKind,
    SignatureError,
    extract_plan_name,
    parse_event,
    parse_signature_header,
    placeholder_email,
    sign_payload,
    verify_paddle_signature,
)
from app.core.errors import ValidationFailed
from app.core.security import hmac_sha256_hex

SECRET = "pdl_ntfset_secret"
TS = 1_700_000_000
BODY = b'{"event_id":"evt_01","event_type":"subscription.created","data":{}}'


def header_for(body: bytes = BODY, ts: int = TS, secret: str = SECRET) -> str:
    return sign_payload(secret, body, ts)


class TestParseSignatureHeader:

    def test_parses_timestamp_and_signatures(self):
        parsed = parse_signature_header("ts=123;h1=abc;h1=def")
        assert parsed.timestamp == "123"
        assert parsed.signatures == ["abc", "def"]

    def test_tolerates_whitespace(self):
        parsed = parse_signature_header(" ts=123 ; h1=abc ")
        assert parsed.timestamp == "123"
        assert parsed.signatures == ["abc"]

    @pytest.mark.parametrize("header", ["", "h1=abc", "ts=123", "ts=123;h1=", "garbage"])
    def test_rejects_incomplete_headers(self, header):
        with pytest.raises(SignatureError) as exc_info:
            parse_signature_header(header)
        assert exc_info.value.status_code == 400
        assert exc_info.value.detail == "Invalid Paddle-Signature format"


class TestVerifyPaddleSignature:

    def test_valid_signature(self):
        verify_paddle_signature(header_for(), BODY, SECRET, 300, now=TS + 10)

    def test_any_rotated_signature_is_accepted(self):
        good = header_for().split("h1=")[1]
        header = f"ts={TS};h1={'0' * 64};h1={good}"
        verify_paddle_signature(header, BODY, SECRET, 300, now=TS)

    def test_non_numeric_timestamp(self):
        header = f"ts=yesterday;h1={'0' * 64}"
        with pytest.raises(SignatureError, match="Invalid signature timestamp"):
            verify_paddle_signature(header, BODY, SECRET, 300, now=TS)

    @pytest.mark.parametrize("ts", ["nan", "inf", "-inf", "1e400"])
    def test_non_finite_timestamp(self, ts):
        header = f"ts={ts};h1={'0' * 64}"
        with pytest.raises(SignatureError, match="Invalid signature timestamp"):
            verify_paddle_signature(header, BODY, SECRET, 300, now=TS)

    def test_fractional_timestamp_is_accepted(self):
        signed = hmac_sha256_hex(SECRET, f"{TS}.5:".encode() + BODY)
        header = f"ts={TS}.5;h1={signed}"
        verify_paddle_signature(header, BODY, SECRET, 300, now=TS + 10)

    def test_fractional_timestamp_outside_window(self):
        signed = hmac_sha256_hex(SECRET, f"{TS}.5:".encode() + BODY)
        header = f"ts={TS}.5;h1={signed}"
        with pytest.raises(SignatureError, match="Signature timestamp outside allowed window"):
            verify_paddle_signature(header, BODY, SECRET, 300, now=TS + 301)

    @pytest.mark.parametrize("skew", [301, -301, 3600])
    def test_valid_hash_outside_window_is_rejected(self, skew):
        with pytest.raises(SignatureError, match="Signature timestamp outside allowed window"):
            verify_paddle_signature(header_for(), BODY, SECRET, 300, now=TS + skew)

    @pytest.mark.parametrize("skew", [300, -300, 0])
    def test_window_edges_are_inclusive(self, skew):
        verify_paddle_signature(header_for(), BODY, SECRET, 300, now=TS + skew)

    def test_tampered_body_is_rejected(self):
        tampered = BODY.replace(b"subscription.created", b"subscription.updated")
        with pytest.raises(SignatureError, match="Invalid signature hash"):
            verify_paddle_signature(header_for(BODY), tampered, SECRET, 300, now=TS)

    def test_wrong_secret_is_rejected(self):
        with pytest.raises(SignatureError, match="Invalid signature hash"):
            verify_paddle_signature(header_for(secret="other"), BODY, SECRET, 300, now=TS)

    def test_signed_payload_is_timestamp_colon_body(self):
        expected = hmac_sha256_hex(SECRET, f"{TS}:".encode() + BODY)
        assert header_for() == f"ts={TS};h1={expected}"


class TestParseEvent:

    def test_valid_event(self):
        event = parse_event({"event_id": "evt_1", "event_type": "customer.created", "data": {"id": "ctm_1"}})
        assert event.event_id == "evt_1"
        assert event.kind == PaddleEventKind.customer
        assert event.data == {"id": "ctm_1"}

    def test_missing_data_becomes_empty(self):
        event = parse_event({"event_id": "evt_1", "event_type": "subscription.updated"})
        assert event.data == {}
        assert event.kind == PaddleEventKind.subscription

    @pytest.mark.parametrize(
        "payload",
        [
            {"event_type": "customer.created"},
            {"event_id": "evt_1"},
            {"event_id": "", "event_type": "customer.created"},
            {"event_id": 42, "event_type": "customer.created"},
        ],
    )
    def test_missing_identifiers(self, payload):
        with pytest.raises(ValidationFailed, match="Missing event_id or event_type"):
            parse_event(payload)

    def test_non_object_payload(self):
        with pytest.raises(ValidationFailed, match="Invalid JSON payload"):
            parse_event(["not", "an", "object"])


class TestEventKind:

    @pytest.mark.parametrize(
        "event_type,kind",
        [
            ("customer.created", PaddleEventKind.customer),
            ("customer.updated", PaddleEventKind.customer),
            ("subscription.activated", PaddleEventKind.subscription),
            ("subscription.canceled", PaddleEventKind.subscription),
            ("transaction.completed", PaddleEventKind.other),
            ("customer", PaddleEventKind.other),
            ("customers.created", PaddleEventKind.other),
        ],
    )
    def test_prefix_dispatch(self, event_type, kind):
        assert PaddleEventKind.from_event_type(event_type) == kind


class TestPayloadHelpers:

    def test_plan_name_from_first_item(self):
        data = {"items": [{"price": {"name": "Pro Monthly"}}, {"price": {"name": "Add-on"}}]}
        assert extract_plan_name(data) == "Pro Monthly"

    @pytest.mark.parametrize(
        "data",
        [{}, {"items": []}, {"items": ["x"]}, {"items": [{"price": None}]}, {"items": [{"price": {"name": ""}}]}],
    )
    def test_plan_name_missing(self, data):
        assert extract_plan_name(data) is None

    def test_placeholder_email_is_lowercased(self):
        assert placeholder_email("CTM_01ABC") == "ctm_01abc@pending.paddle.local"
