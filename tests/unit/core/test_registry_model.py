"""Tests for the registry document model."""

from __future__ import annotations

import sys

import pytest

from cronus.core.model import (
    INT32_MAX,
    RegistryDocument,
    compute_expiry,
    encode_hostname,
    encode_pid,
)
from cronus.errors import StoreError

NOW = 1_700_000_000


class TestEncodeHostname:
    """Tests for hostname escaping."""

    def test_dots_and_dollars_are_escaped(self) -> None:
        assert encode_hostname("web1.example.com") == "web1_DOT_example_DOT_com"
        assert encode_hostname("$host.local") == "_DOLLAR_host_DOT_local"

    def test_plain_hostname_unchanged(self) -> None:
        assert encode_hostname("build-agent-7") == "build-agent-7"

    def test_pid_encoded_as_string(self) -> None:
        assert encode_pid(4242) == "4242"
        assert encode_pid("4242") == "4242"


class TestComputeExpiry:
    """Tests for lease expiry clamping."""

    def test_minutes_become_seconds(self) -> None:
        assert compute_expiry(NOW, 60) == NOW + 3600

    def test_zero_minutes_expires_now(self) -> None:
        assert compute_expiry(NOW, 0) == NOW

    def test_overflow_clamps_to_int32_max(self) -> None:
        assert compute_expiry(NOW, sys.maxsize) == INT32_MAX

    def test_exact_maximum_is_kept(self) -> None:
        now = INT32_MAX - 60
        assert compute_expiry(now, 1) == INT32_MAX

    def test_just_past_maximum_clamps(self) -> None:
        now = INT32_MAX - 59
        assert compute_expiry(now, 1) == INT32_MAX

    def test_underflow_clamps_to_zero(self) -> None:
        assert compute_expiry(NOW, -sys.maxsize) == 0

    def test_small_negative_stays_in_range(self) -> None:
        assert compute_expiry(NOW, -1) == NOW - 60


class TestRegistryDocument:
    """Tests for RegistryDocument."""

    def test_slot_counts(self) -> None:
        document = RegistryDocument(
            id="job",
            hosts={"a": {"1": NOW, "2": NOW}, "b": {"3": NOW}},
        )

        assert document.slot_count() == 3
        assert document.slot_count("a") == 2
        assert document.slot_count("missing") == 0

    def test_expiry_of(self) -> None:
        document = RegistryDocument(id="job", hosts={"a": {"1": NOW}})

        assert document.expiry_of("a", 1) == NOW
        assert document.expiry_of("a", "2") is None
        assert document.expiry_of("b", "1") is None

    def test_version_ignored_for_equality(self) -> None:
        assert RegistryDocument(id="job", version=1) == RegistryDocument(id="job", version=2)

    def test_from_dict_normalizes_keys_and_values(self) -> None:
        document = RegistryDocument.from_dict(
            {"id": "job", "hosts": {"a": {1: "1700000000"}, "b": []}},
            version=7,
        )

        assert document.hosts == {"a": {"1": NOW}, "b": {}}
        assert document.version == 7

    def test_from_dict_without_hosts(self) -> None:
        assert RegistryDocument.from_dict({"id": "job"}).hosts == {}

    def test_to_dict_copies_hosts(self) -> None:
        document = RegistryDocument(id="job", hosts={"a": {"1": NOW}})

        data = document.to_dict()
        data["hosts"]["a"]["2"] = NOW

        assert data["id"] == "job"
        assert document.hosts == {"a": {"1": NOW}}

    @pytest.mark.parametrize(
        "data",
        [
            {"hosts": {}},
            {"id": "job", "hosts": ["a"]},
            {"id": "job", "hosts": {"a": "1"}},
            {"id": "job", "hosts": {"a": {"1": "soon"}}},
            {"id": "job", "hosts": {"a": {"1": None}}},
        ],
    )
    def test_malformed_documents_raise(self, data: dict[str, object]) -> None:
        with pytest.raises(StoreError):
            RegistryDocument.from_dict(data)
