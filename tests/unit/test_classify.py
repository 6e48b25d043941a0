"""Tests for genjobs.services.classify: the shared three-way classification.

Every payload source (submit response, poll response, webhook notification)
must classify identically, so most cases are parametrized over all three.
"""

from __future__ import annotations

import pytest

from genjobs.schemas.generation import (
    EmptyOutput,
    Failure,
    GenerationRequest,
    JobHandle,
    MissingJobId,
    Pending,
    Success,
    UnexpectedResponse,
)
from genjobs.services.classify import FALLBACK_FAILURE_MESSAGE, classify_payload
from genjobs.services.webhooks import match_webhook

TOKEN = "trk_test"
SOURCES = ["submit", "poll", "webhook"]


@pytest.fixture
def classify_via(arun, make_client, scripted_api):
    """Classify a payload through the named source."""

    def classify(source: str, payload):
        if source == "webhook":
            notification = dict(payload) if isinstance(payload, dict) else payload
            if isinstance(notification, dict):
                notification["track_id"] = TOKEN
            return match_webhook(notification, TOKEN)

        if source == "submit":
            api = scripted_api(submit_response=payload)
            client = make_client(api)
            return arun(client.submit(GenerationRequest(endpoint="v6/images/text2img")))

        api = scripted_api(poll_default=payload)
        client = make_client(api)
        handle = JobHandle(id="job_1", fetch_url="https://api.test/api/v6/images/fetch/job_1")
        return arun(client.poll(handle))

    return classify


class TestSuccess:
    """status=success with outputs yields Success and nothing else."""

    @pytest.mark.parametrize("source", SOURCES)
    def test_first_output_matches(self, classify_via, source):
        """Success.output is output[0] and the full list is preserved."""
        urls = ["https://x/a.png", "https://x/b.png"]
        result = classify_via(source, {"status": "success", "output": urls})
        assert isinstance(result, Success)
        assert result.output == urls[0]
        assert result.outputs == urls

    @pytest.mark.parametrize("source", SOURCES)
    @pytest.mark.parametrize("payload", [
        {"status": "success", "output": []},
        {"status": "success"},
        {"status": "success", "output": None},
    ])
    def test_empty_output(self, classify_via, source, payload):
        """Missing or empty output is EmptyOutput, never a crash."""
        result = classify_via(source, payload)
        assert isinstance(result, EmptyOutput)

    def test_metadata_keeps_extra_fields(self):
        """Fields other than status/output are kept as metadata."""
        result = classify_payload({
            "status": "success",
            "output": ["https://x/a.png"],
            "id": 42,
            "meta": {"seed": 1},
            "generationTime": 1.5,
        })
        assert isinstance(result, Success)
        assert result.metadata == {"id": 42, "meta": {"seed": 1}, "generationTime": 1.5}

    def test_non_list_output_is_unexpected(self):
        """A string output is not silently wrapped in a list."""
        result = classify_payload({"status": "success", "output": "https://x/a.png"})
        assert isinstance(result, UnexpectedResponse)

    def test_non_string_entries_are_unexpected(self):
        result = classify_payload({"status": "success", "output": [{"url": "x"}]})
        assert isinstance(result, UnexpectedResponse)


class TestFailure:
    """error and failed are synonymous terminal failures."""

    @pytest.mark.parametrize("source", SOURCES)
    @pytest.mark.parametrize("status", ["error", "failed"])
    def test_message_is_carried(self, classify_via, source, status):
        result = classify_via(source, {"status": status, "message": "insufficient balance"})
        assert isinstance(result, Failure)
        assert result.message == "insufficient balance"

    def test_fallback_message(self):
        """Absent message gets the fixed fallback text."""
        result = classify_payload({"status": "failed"})
        assert isinstance(result, Failure)
        assert result.message == FALLBACK_FAILURE_MESSAGE

    def test_misspelled_message_key(self):
        result = classify_payload({"status": "error", "messege": "model not found"})
        assert isinstance(result, Failure)
        assert result.message == "model not found"

    def test_structured_message_is_stringified(self):
        result = classify_payload({"status": "error", "message": {"prompt": ["required"]}})
        assert isinstance(result, Failure)
        assert result.message == '{"prompt": ["required"]}'

    def test_remote_code(self):
        result = classify_payload({"status": "error", "message": "x", "code": 402})
        assert isinstance(result, Failure)
        assert result.remote_code == 402


class TestPending:
    """status=processing yields a Pending handle or MissingJobId."""

    @pytest.mark.parametrize("source", ["submit", "poll"])
    def test_handle_id_matches(self, classify_via, source):
        result = classify_via(source, {"status": "processing", "id": "job_9", "eta": 30})
        assert isinstance(result, Pending)
        assert result.handle.id == "job_9"
        assert result.handle.eta == 30.0

    @pytest.mark.parametrize("source", ["submit", "poll"])
    def test_missing_id(self, classify_via, source):
        result = classify_via(source, {"status": "processing", "eta": 30})
        assert isinstance(result, MissingJobId)

    def test_numeric_id_is_stringified(self):
        result = classify_payload({"status": "processing", "id": 12345})
        assert isinstance(result, Pending)
        assert result.handle.id == "12345"

    def test_eta_is_optional(self):
        result = classify_payload({"status": "processing", "id": "job_1"})
        assert isinstance(result, Pending)
        assert result.handle.eta is None

    def test_fetch_result_becomes_fetch_url(self):
        result = classify_payload({
            "status": "processing",
            "id": "job_1",
            "fetch_result": "https://remote/api/v6/images/fetch/job_1",
        })
        assert isinstance(result, Pending)
        assert result.handle.fetch_url == "https://remote/api/v6/images/fetch/job_1"

    def test_webhook_processing_is_unexpected(self, classify_via):
        """A pending webhook notification is anomalous."""
        result = classify_via("webhook", {"status": "processing", "id": "job_1"})
        assert isinstance(result, UnexpectedResponse)


class TestUnexpected:
    """Unrecognized or malformed payloads are never guessed at."""

    @pytest.mark.parametrize("source", SOURCES)
    @pytest.mark.parametrize("payload", [
        {"status": "queued", "id": "job_1"},
        {"status": "SUCCESS", "output": ["https://x/a.png"]},
        {"output": ["https://x/a.png"]},
        {"status": 1},
        ["not", "an", "object"],
    ])
    def test_unrecognized(self, classify_via, source, payload):
        result = classify_via(source, payload)
        assert isinstance(result, UnexpectedResponse)
