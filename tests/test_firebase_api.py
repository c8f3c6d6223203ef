"""
Tests for firebase_api.py - the store adapter over the Realtime Database REST API.

HTTP calls are mocked; nothing leaves the process.
"""

import random

import pytest
import requests
from unittest.mock import Mock, patch

from rj.adapters.firebase_api import FirebaseStore, PushIdGenerator, PUSH_CHARS, StoreError

CFG = {"firebase_db_url": "https://demo-default-rtdb.firebaseio.com/", "user_agent": "TestAgent"}


def response(status=200, payload=None):
    r = Mock()
    r.status_code = status
    r.json.return_value = payload
    r.text = "" if payload is None else str(payload)
    return r


class TestPushIdGenerator:

    def test_shape(self):
        pid = PushIdGenerator(random.Random(1))(1_700_000_000_000)
        assert len(pid) == 20
        assert all(ch in PUSH_CHARS for ch in pid)

    def test_sorted_by_time(self):
        gen = PushIdGenerator(random.Random(1))
        assert gen(1_000) < gen(2_000) < gen(1_000_000)

    def test_same_millisecond_stays_unique_and_ordered(self):
        gen = PushIdGenerator(random.Random(1))
        ids = [gen(5_000) for _ in range(50)]
        assert len(set(ids)) == 50
        assert ids == sorted(ids)

    def test_time_prefix_shared_within_millisecond(self):
        gen = PushIdGenerator(random.Random(1))
        assert gen(5_000)[:8] == gen(5_000)[:8]


class TestFirebaseStoreInit:

    def test_requires_db_url(self):
        with pytest.raises(StoreError):
            FirebaseStore({})

    def test_trailing_slash_trimmed(self):
        assert FirebaseStore(CFG).db_url == "https://demo-default-rtdb.firebaseio.com"


class TestFetch:

    @patch('rj.adapters.firebase_api.requests.get')
    def test_returns_mapping(self, mock_get):
        mock_get.return_value = response(payload={"a": {"type": "fire"}})
        out = FirebaseStore(CFG).fetch("reports")
        assert out == {"a": {"type": "fire"}}
        url = mock_get.call_args[0][0]
        assert url == "https://demo-default-rtdb.firebaseio.com/reports.json"
        assert mock_get.call_args[1]["headers"]["User-Agent"] == "TestAgent"

    @patch('rj.adapters.firebase_api.requests.get')
    def test_absent_collection_is_empty(self, mock_get):
        mock_get.return_value = response(payload=None)
        assert FirebaseStore(CFG).fetch("reports") == {}

    @patch('rj.adapters.firebase_api.requests.get')
    def test_array_payload_normalised(self, mock_get):
        mock_get.return_value = response(payload=[None, {"type": "fire"}, {"type": "flood"}])
        assert FirebaseStore(CFG).fetch("reports") == {"1": {"type": "fire"}, "2": {"type": "flood"}}

    @patch('rj.adapters.firebase_api.requests.get')
    def test_http_error_raises(self, mock_get):
        mock_get.return_value = response(status=401, payload={"error": "Permission denied"})
        with pytest.raises(StoreError):
            FirebaseStore(CFG).fetch("reports")

    @patch('rj.adapters.firebase_api.requests.get')
    def test_network_error_raises(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("down")
        with pytest.raises(StoreError):
            FirebaseStore(CFG).fetch("reports")

    @patch('rj.adapters.firebase_api.requests.get')
    def test_bearer_token_header(self, mock_get):
        mock_get.return_value = response(payload={})
        FirebaseStore(dict(CFG, access_token="tok")).fetch("users")
        assert mock_get.call_args[1]["headers"]["Authorization"] == "Bearer tok"
        assert mock_get.call_args[1]["params"] == {}

    @patch('rj.adapters.firebase_api.requests.get')
    def test_auth_query_param(self, mock_get):
        mock_get.return_value = response(payload={})
        FirebaseStore(dict(CFG, auth="secret")).fetch("users")
        assert mock_get.call_args[1]["params"] == {"auth": "secret"}
        assert "Authorization" not in mock_get.call_args[1]["headers"]


class TestUpdate:

    @patch('rj.adapters.firebase_api.requests.patch')
    def test_single_multi_path_patch(self, mock_patch):
        mock_patch.return_value = response(payload={})
        FirebaseStore(CFG).update({"reports/a": None, "/reports_trash/a": {"type": "fire"}})
        assert mock_patch.call_count == 1
        url = mock_patch.call_args[0][0]
        assert url == "https://demo-default-rtdb.firebaseio.com/.json"
        assert mock_patch.call_args[1]["json"] == {"reports/a": None, "reports_trash/a": {"type": "fire"}}

    @patch('rj.adapters.firebase_api.requests.patch')
    def test_failure_raises(self, mock_patch):
        mock_patch.return_value = response(status=500)
        with pytest.raises(StoreError):
            FirebaseStore(CFG).update({"reports/a": None})

    @patch('rj.adapters.firebase_api.requests.patch')
    def test_timeout_raises(self, mock_patch):
        mock_patch.side_effect = requests.Timeout("slow")
        with pytest.raises(StoreError):
            FirebaseStore(CFG).update({"reports/a": None})


class TestNewKey:

    @patch('rj.adapters.firebase_api.requests')
    def test_generates_locally(self, mock_requests):
        store = FirebaseStore(CFG)
        a, b = store.new_key("merged_reports"), store.new_key("merged_reports")
        assert a != b and len(a) == 20
        assert not mock_requests.method_calls
