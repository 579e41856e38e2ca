"""Tests for the local snapshot file."""

from __future__ import annotations

from pathlib import Path

from awg_backend.models import CacheSnapshot, ClientMetadata
from awg_backend.state import load_snapshot, save_snapshot


def sample() -> CacheSnapshot:
    return CacheSnapshot(
        records={
            "AAA=": ClientMetadata(name="alice", creation_date="Sat Oct 17 20:35:12 2026", data_sent="1 KiB"),
        },
        pages={"teamA": {"AAA=": ("alice", "[Interface]\nAddress = 10.8.1.2/32\n")}},
        id_to_group={"AAA=": "teamA"},
        group_to_guid={"teamA": "0123456789abcdef0123456789abcdef"},
    )


def test_save_then_load(tmp_path: Path) -> None:
    path = tmp_path / "data" / "state.json"
    save_snapshot(sample(), path)
    assert load_snapshot(path) == sample()


def test_no_temp_file_left(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    save_snapshot(sample(), path)
    save_snapshot(CacheSnapshot(), path)
    assert [p.name for p in tmp_path.iterdir()] == ["state.json"]
    assert load_snapshot(path) == CacheSnapshot()


def test_missing_file_is_empty(tmp_path: Path) -> None:
    assert load_snapshot(tmp_path / "nope.json") == CacheSnapshot()


def test_garbage_is_empty(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    path.write_bytes(b"\x00\x01 not json")
    assert load_snapshot(path) == CacheSnapshot()


def test_wrong_shape_is_empty(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    path.write_text('{"pages": {"teamA": {"AAA=": "oops"}}}', encoding="utf-8")
    assert load_snapshot(path) == CacheSnapshot()
