"""
Sync Portal Client Tests

Covers the caller side of the protocol without a network:
- backoff schedule
- response interpretation (202, 200, 400-with-status, 404, errors)
- polling until a terminal status, with a grace window for early 404s
"""

import asyncio
from types import SimpleNamespace

import pytest

import client.sync_client as sync_client
from client.sync_client import PollPolicy, SyncPollTimeout, SyncPortalClient, SyncPortalError


class FakeTime:
    """Clock advanced by the fake sleep."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def monotonic(self):
        return self.now

    async def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_time(monkeypatch):
    fake = FakeTime()
    monkeypatch.setattr(sync_client, "time", SimpleNamespace(monotonic=fake.monotonic))
    monkeypatch.setattr(sync_client, "asyncio", SimpleNamespace(sleep=fake.sleep))
    return fake


def scripted(responses):
    """Build a fake ``_request`` that replays (status, body) pairs."""
    calls = []

    async def _request(method, path, headers=None):
        calls.append((method, path, headers))
        return responses.pop(0)

    return _request, calls


class TestPollPolicy:
    """Backoff schedule."""

    def test_exponential_delays(self):
        policy = PollPolicy(base_delay=1.0, exponential_base=2.0, max_delay=30.0)

        assert [policy.get_delay(n) for n in range(6)] == [1.0, 2.0, 4.0, 8.0, 16.0, 30.0]

    def test_delay_is_capped(self):
        assert PollPolicy(max_delay=5.0).get_delay(10) == 5.0


class TestResponses:
    """Interpretation of portal responses."""

    def test_submit_sends_sync_headers(self):
        client = SyncPortalClient("http://portal/", "t")
        client._request, calls = scripted([
            (202, {"success": True, "id": "C1K7abc", "status_url": "/status/C1K7abc"}),
        ])

        body = asyncio.run(client.submit("C1", "orders", contact_id="K7"))

        assert body["id"] == "C1K7abc"
        method, path, headers = calls[0]
        assert (method, path) == ("POST", "/Sync")
        assert headers == {"COMPANY-ID": "C1", "TABLE-NAME": "orders", "CONTACT-ID": "K7"}

    def test_submit_rejection_raises(self):
        client = SyncPortalClient("http://portal", "t")
        client._request, _ = scripted([(400, {"error": "Missing or invalid required headers."})])

        with pytest.raises(SyncPortalError) as exc_info:
            asyncio.run(client.submit("C1", ""))

        assert exc_info.value.status_code == 400
        assert "Missing or invalid required headers." in str(exc_info.value)

    def test_status_404_is_none(self):
        client = SyncPortalClient("http://portal", "t")
        client._request, _ = scripted([(404, {"error": "Transaction not found."})])

        assert asyncio.run(client.get_status("C1abc")) is None

    def test_failed_transaction_is_a_body(self):
        failed = {"id": "C1abc", "status": "failed", "state": "takeover"}
        client = SyncPortalClient("http://portal", "t")
        client._request, _ = scripted([(400, failed)])

        assert asyncio.run(client.get_status("C1abc")) == failed

    def test_missing_id_400_raises(self):
        client = SyncPortalClient("http://portal", "t")
        client._request, _ = scripted([(400, {"error": "Missing transaction ID."})])

        with pytest.raises(SyncPortalError):
            asyncio.run(client.get_status(""))

    def test_server_error_raises(self):
        client = SyncPortalClient("http://portal", "t")
        client._request, _ = scripted([(500, {"error": "Internal Server Error during status check."})])

        with pytest.raises(SyncPortalError) as exc_info:
            asyncio.run(client.get_status("C1abc"))

        assert exc_info.value.status_code == 500

    def test_status_path_is_escaped(self):
        client = SyncPortalClient("http://portal", "t")
        client._request, calls = scripted([(404, {})])

        asyncio.run(client.get_status("C1/x"))

        assert calls[0][1] == "/status/C1%2Fx"

    def test_request_without_session_raises(self):
        client = SyncPortalClient("http://portal", "t")

        with pytest.raises(SyncPortalError):
            asyncio.run(client._request("GET", "/live"))


class TestWaitForCompletion:
    """Polling loop."""

    def test_polls_until_terminal(self, fake_time):
        client = SyncPortalClient("http://portal", "t")
        client._request, calls = scripted([
            (200, {"status": "processing", "state": "new"}),
            (200, {"status": "processing", "state": "process"}),
            (200, {"status": "successful", "state": "successful"}),
        ])

        final = asyncio.run(client.wait_for_completion("C1abc", PollPolicy(base_delay=1.0)))

        assert final["status"] == "successful"
        assert len(calls) == 3
        assert fake_time.sleeps == [1.0, 2.0]

    def test_failed_is_terminal(self, fake_time):
        client = SyncPortalClient("http://portal", "t")
        client._request, _ = scripted([(400, {"status": "failed", "state": "failed"})])

        final = asyncio.run(client.wait_for_completion("C1abc"))

        assert final["state"] == "failed"
        assert fake_time.sleeps == []

    def test_early_404_is_tolerated(self, fake_time):
        client = SyncPortalClient("http://portal", "t")
        client._request, _ = scripted([
            (404, {"error": "Transaction not found."}),
            (404, {"error": "Transaction not found."}),
            (200, {"status": "successful", "state": "successful"}),
        ])

        final = asyncio.run(client.wait_for_completion(
            "C1abc", PollPolicy(base_delay=1.0, not_found_grace_seconds=10.0),
        ))

        assert final["status"] == "successful"

    def test_404_after_grace_raises(self, fake_time):
        client = SyncPortalClient("http://portal", "t")
        client._request, _ = scripted([(404, {})] * 10)

        with pytest.raises(SyncPortalError) as exc_info:
            asyncio.run(client.wait_for_completion(
                "C1abc", PollPolicy(base_delay=1.0, not_found_grace_seconds=5.0),
            ))

        assert exc_info.value.status_code == 404
        assert not isinstance(exc_info.value, SyncPollTimeout)

    def test_deadline(self, fake_time):
        client = SyncPortalClient("http://portal", "t")
        client._request, _ = scripted([(200, {"status": "processing", "state": "pending"})] * 20)

        with pytest.raises(SyncPollTimeout):
            asyncio.run(client.wait_for_completion(
                "C1abc", PollPolicy(base_delay=1.0, max_delay=4.0, deadline_seconds=20.0),
            ))

        assert fake_time.now >= 20.0
