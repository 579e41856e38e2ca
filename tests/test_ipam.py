"""Tests for host id allocation."""

from __future__ import annotations

import logging

import pytest

from awg_backend.ipam import last_host_id, next_host_id, parse_host_id
from awg_backend.models import PeerRecord


def peers(*allowed):
    return [PeerRecord(f"K{i}=", "P=", a) for i, a in enumerate(allowed)]


@pytest.mark.parametrize("value,expected", [
    ("10.8.1.7/32", 7),
    ("10.8.1.254/32", 254),
    ("10.8.1.12", 12),
    (" 10.8.1.3/32 ", 3),
    ("10.8.1.x/32", None),
    ("", None),
    ("10.8.1.-1/32", None),
    ("10.8.1.300/32", None),
    ("10.8.1.7/32, fd00::7/128", 7),
    ("fd00::7/128", None),
])
def test_parse_host_id(value, expected) -> None:
    assert parse_host_id(value) == expected


def test_empty_store_starts_after_baseline() -> None:
    assert next_host_id([]) == 2


def test_next_is_max_plus_one() -> None:
    assert next_host_id(peers("10.8.1.4/32", "10.8.1.2/32", "10.8.1.9/32")) == 10


def test_gaps_are_not_filled() -> None:
    assert next_host_id(peers("10.8.1.2/32", "10.8.1.5/32")) == 6


def test_low_ids_never_go_below_baseline() -> None:
    assert last_host_id(peers("10.8.1.0/32")) == 1
    assert next_host_id(peers("10.8.1.0/32")) == 2


def test_unparseable_entries_are_skipped(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="awg_backend.ipam"):
        result = next_host_id(peers("garbage", "10.8.1.3/32", "10.8.1.zz/32"))
    assert result == 4
    assert "Failed to parse id: garbage" in caplog.text
