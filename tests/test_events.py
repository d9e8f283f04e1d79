"""
Unit tests for realtime event parsing.

Payloads come off a shared channel, so anything that does not validate must
raise MalformedEventError rather than reach the store.
"""

import json

import pytest

from core.exceptions import MalformedEventError
from models.events import (
    ErrorEvent,
    PendingEvent,
    ProcessingEvent,
    SuccessEvent,
    build_event_payload,
    parse_event,
)
from models.file import Dimensions, FileStatus


BASE = {"sessionId": "sess-1", "fileId": "file-1"}


class TestParseEvent:
    """Test parsing of well-formed payloads."""

    @pytest.mark.parametrize("status,cls", [
        ("pending", PendingEvent),
        ("processing", ProcessingEvent),
    ])
    def test_in_flight_statuses(self, status, cls):
        event = parse_event({**BASE, "status": status})

        assert isinstance(event, cls)
        assert event.session_id == "sess-1"
        assert event.file_id == "file-1"
        assert event.file_status is FileStatus(status)

    def test_success_event(self):
        event = parse_event({
            **BASE,
            "status": "success",
            "massGrams": 12.5,
            "dimensions": {"x": 20, "y": 30, "z": 10},
        })

        assert isinstance(event, SuccessEvent)
        assert event.mass_grams == 12.5
        assert event.dimensions.to_dimensions() == Dimensions(20, 30, 10)

    def test_success_measurements_are_optional(self):
        event = parse_event({**BASE, "status": "success", "massGrams": 50})

        assert isinstance(event, SuccessEvent)
        assert event.mass_grams == 50
        assert event.dimensions is None

    def test_error_event_blank_message_defaults(self):
        event = parse_event({**BASE, "status": "error", "errorMessage": "   "})

        assert isinstance(event, ErrorEvent)
        assert event.error_message == "File processing failed"

    def test_accepts_json_string_and_bytes(self):
        raw = json.dumps({**BASE, "status": "processing"})

        assert isinstance(parse_event(raw), ProcessingEvent)
        assert isinstance(parse_event(raw.encode("utf-8")), ProcessingEvent)

    def test_unknown_fields_are_ignored(self):
        event = parse_event({**BASE, "status": "pending", "uploadedBy": "worker-3"})

        assert isinstance(event, PendingEvent)

    def test_build_event_payload_parses_back(self):
        raw = build_event_payload("sess-1", "file-1", "success",
                                  mass_grams=8.0, dimensions=Dimensions(1, 2, 3))
        event = parse_event(raw)

        assert isinstance(event, SuccessEvent)
        assert event.mass_grams == 8.0


class TestMalformedEvents:
    """Test rejection of payloads that do not fit the event union."""

    @pytest.mark.parametrize("payload", [
        "not json",
        b"\xff\xfe",
        "[1, 2, 3]",
        42,
        None,
    ])
    def test_non_object_payloads(self, payload):
        with pytest.raises(MalformedEventError):
            parse_event(payload)

    def test_unknown_status(self):
        with pytest.raises(MalformedEventError) as exc_info:
            parse_event({**BASE, "status": "queued"})

        assert exc_info.value.kind == "malformed_event"

    def test_missing_session_id(self):
        with pytest.raises(MalformedEventError) as exc_info:
            parse_event({"fileId": "file-1", "status": "pending"})

        assert "sessionId" in exc_info.value.reason

    def test_empty_file_id(self):
        with pytest.raises(MalformedEventError):
            parse_event({"sessionId": "sess-1", "fileId": "", "status": "pending"})

    def test_success_with_negative_dimension(self):
        with pytest.raises(MalformedEventError):
            parse_event({
                **BASE,
                "status": "success",
                "massGrams": 5,
                "dimensions": {"x": 1, "y": -2, "z": 1},
            })

    def test_success_with_negative_mass(self):
        with pytest.raises(MalformedEventError):
            parse_event({
                **BASE,
                "status": "success",
                "massGrams": -1,
                "dimensions": {"x": 1, "y": 1, "z": 1},
            })
