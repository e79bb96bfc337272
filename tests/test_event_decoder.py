"""
Event Decoder Tests
===================
"""

import json

import pytest

from app.core.errors import InvalidEventShape, MalformedPayload
from app.schemas.webhook import RevenueCatEnvironment
from app.services.event_decoder import decode_event


def _body(event: dict, **top_level) -> bytes:
    return json.dumps({"api_version": "1.0", "event": event, **top_level}).encode("utf-8")


def _email(value="a@b.com") -> dict:
    return {"$email": {"value": value, "updated_at_ms": 1700000000000}}


class TestDecodeValidEvents:

    def test_decodes_full_event(self):
        event = decode_event(
            _body(
                {
                    "id": "evt_1",
                    "type": "RENEWAL",
                    "app_user_id": "rc-user-1",
                    "product_id": "pro_monthly",
                    "transaction_id": "tx_2",
                    "original_transaction_id": "tx_1",
                    "expiration_at_ms": 1800000000000,
                    "environment": "SANDBOX",
                    "subscriber_attributes": _email("Cook@Example.com"),
                }
            )
        )

        assert event.event_id == "evt_1"
        assert event.event_type == "RENEWAL"
        assert event.subject_identity == "Cook@Example.com"
        assert event.app_user_id == "rc-user-1"
        assert event.product_id == "pro_monthly"
        assert event.transaction_id == "tx_2"
        assert event.original_transaction_id == "tx_1"
        assert event.expiration_at_ms == 1800000000000
        assert event.environment is RevenueCatEnvironment.SANDBOX
        assert event.api_version == "1.0"

    def test_app_user_id_is_enough_to_identify_event(self):
        event = decode_event(
            _body({"type": "RENEWAL", "app_user_id": "u1", "subscriber_attributes": _email()})
        )

        assert event.event_id is None
        assert event.expiration_at_ms is None

    def test_unknown_event_type_survives_decoding(self):
        event = decode_event(
            _body({"id": "e", "type": "SUBSCRIBER_ALIAS", "subscriber_attributes": _email()})
        )

        assert event.event_type == "SUBSCRIBER_ALIAS"

    def test_ignores_unknown_fields(self):
        event = decode_event(
            _body(
                {
                    "id": "e",
                    "type": "EXPIRATION",
                    "subscriber_attributes": {**_email(), "$displayName": {"value": None}},
                    "takehome_percentage": 0.7,
                    "is_family_share": False,
                    "country_code": "US",
                },
                extra_top_level={"anything": 1},
            )
        )

        assert event.event_type == "EXPIRATION"

    def test_unknown_environment_is_dropped(self):
        event = decode_event(
            _body(
                {
                    "id": "e",
                    "type": "RENEWAL",
                    "environment": "STAGING",
                    "subscriber_attributes": _email(),
                }
            )
        )

        assert event.environment is None

    def test_event_is_immutable(self):
        event = decode_event(
            _body({"id": "e", "type": "RENEWAL", "subscriber_attributes": _email()})
        )

        with pytest.raises(Exception):
            event.event_type = "EXPIRATION"


class TestMalformedPayload:

    @pytest.mark.parametrize("raw", [b"", b"not json", b"{\"event\":", b"\xff\xfe"])
    def test_rejects_non_json(self, raw):
        with pytest.raises(MalformedPayload):
            decode_event(raw)


class TestInvalidEventShape:

    @pytest.mark.parametrize(
        "raw",
        [
            b"[]",
            b"\"RENEWAL\"",
            b"{}",
            b"{\"event\": null}",
            b"{\"event\": []}",
        ],
    )
    def test_rejects_missing_event_object(self, raw):
        with pytest.raises(InvalidEventShape):
            decode_event(raw)

    @pytest.mark.parametrize(
        "event",
        [
            {"id": "e", "subscriber_attributes": _email()},
            {"id": "e", "type": "", "subscriber_attributes": _email()},
            {"id": "e", "type": 7, "subscriber_attributes": _email()},
            {"type": "RENEWAL", "subscriber_attributes": _email()},
            {"id": 12, "type": "RENEWAL", "subscriber_attributes": _email()},
            {"id": "e", "type": "RENEWAL"},
            {"id": "e", "type": "RENEWAL", "subscriber_attributes": {}},
            {"id": "e", "type": "RENEWAL", "subscriber_attributes": _email("")},
            {"id": "e", "type": "RENEWAL", "subscriber_attributes": _email(None)},
            {"id": "e", "type": "RENEWAL", "subscriber_attributes": {"$email": "a@b.com"}},
            {
                "id": "e",
                "type": "CANCELLATION",
                "expiration_at_ms": "soon",
                "subscriber_attributes": _email(),
            },
            {
                "id": "e",
                "type": "CANCELLATION",
                "expiration_at_ms": True,
                "subscriber_attributes": _email(),
            },
        ],
    )
    def test_rejects_missing_or_mistyped_fields(self, event):
        with pytest.raises(InvalidEventShape):
            decode_event(_body(event))
