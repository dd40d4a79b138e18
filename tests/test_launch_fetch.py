#!/usr/bin/env python3
"""Tests for the upstream launch client and its error handling."""

from unittest.mock import MagicMock

import pytest
import requests
from requests.adapters import HTTPAdapter

from error_handling import ErrorCategory, UpstreamError
from launch_fetch import LaunchClient, create_session

API_URL = "https://ll.example.org/2.3.0/launches/upcoming/"


def mock_response(status_code=200, json_data=None, json_error=None, reason="OK"):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.reason = reason
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = json_data
    return response


class TestLaunchClient:

    def make_client(self, response=None, error=None):
        session = MagicMock(spec=requests.Session)
        if error is not None:
            session.get.side_effect = error
        else:
            session.get.return_value = response
        return LaunchClient(API_URL, timeout=12, user_agent="Test/1.0", session=session), session

    def test_fetch_batch_success(self):
        launches = [{"id": "a"}, {"id": "b"}]
        client, session = self.make_client(mock_response(json_data={"count": 2, "results": launches}))

        assert client.fetch_batch(100) == launches
        session.get.assert_called_once_with(
            API_URL,
            params={"limit": 100},
            headers={"User-Agent": "Test/1.0"},
            timeout=12,
        )

    def test_empty_results_is_success(self):
        client, _ = self.make_client(mock_response(json_data={"results": []}))
        assert client.fetch_batch(100) == []

    def test_connection_error(self):
        client, _ = self.make_client(error=requests.ConnectionError("Network error"))

        with pytest.raises(UpstreamError) as exc_info:
            client.fetch_batch(100)
        assert exc_info.value.error_info.category == ErrorCategory.NETWORK
        assert isinstance(exc_info.value.original_exception, requests.ConnectionError)

    def test_timeout(self):
        client, _ = self.make_client(error=requests.Timeout("read timed out"))

        with pytest.raises(UpstreamError) as exc_info:
            client.fetch_batch(100)
        assert "timed out" in str(exc_info.value)

    @pytest.mark.parametrize("status_code", [404, 429, 500, 503])
    def test_non_success_status(self, status_code):
        client, _ = self.make_client(mock_response(status_code=status_code, reason="Nope"))

        with pytest.raises(UpstreamError) as exc_info:
            client.fetch_batch(100)
        assert str(status_code) in str(exc_info.value)
        assert exc_info.value.error_info.details["status_code"] == status_code

    def test_non_json_body(self):
        client, _ = self.make_client(mock_response(json_error=ValueError("Expecting value")))

        with pytest.raises(UpstreamError) as exc_info:
            client.fetch_batch(100)
        assert exc_info.value.error_info.category == ErrorCategory.VALIDATION

    @pytest.mark.parametrize(
        "body", [{"detail": "throttled"}, {"results": None}, {"results": "x"}, [1, 2]]
    )
    def test_missing_results_list(self, body):
        client, _ = self.make_client(mock_response(json_data=body))

        with pytest.raises(UpstreamError) as exc_info:
            client.fetch_batch(100)
        assert str(exc_info.value) == "Invalid API response structure"


class TestCreateSession:

    def test_no_retries_by_default(self):
        session = create_session()
        adapter = session.get_adapter("https://ll.example.org")
        assert adapter.max_retries.total == 0

    def test_retry_policy_mounted(self):
        session = create_session(max_retries=3, backoff_factor=0.5)
        adapter = session.get_adapter("https://ll.example.org")

        assert isinstance(adapter, HTTPAdapter)
        assert adapter.max_retries.total == 3
        assert adapter.max_retries.backoff_factor == 0.5
        assert 503 in adapter.max_retries.status_forcelist
