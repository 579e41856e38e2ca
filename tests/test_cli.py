"""Tests for the command-line front end."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

import cli


@pytest.fixture
def run(registry, monkeypatch, tmp_path: Path):
    monkeypatch.chdir(tmp_path)

    def _run(*argv: str) -> int:
        return cli.main(list(argv), registry_factory=lambda args: registry)

    return _run


def test_no_command_prints_help(run, capsys) -> None:
    assert run() == 0
    assert "usage" in capsys.readouterr().out


def test_add_then_list(run, capsys) -> None:
    assert run("add-peer", "alice", "--group", "teamA") == 0
    assert "Peer ajouté : alice" in capsys.readouterr().out

    assert run("list-peers") == 0
    assert "- alice (pub1=)" in capsys.readouterr().out

    assert run("groups") == 0
    assert "teamA ->" in capsys.readouterr().out

    assert run("stats") == 0
    assert "Never" in capsys.readouterr().out


def test_batch_file(run, capsys, tmp_path: Path) -> None:
    batch = tmp_path / "batch.json"
    batch.write_text(json.dumps([{"name": "alice", "group": "a"}, {"name": "bob", "group": "b"}]))

    assert run("add-peers", str(batch)) == 0
    assert "2/2 peers ajoutés" in capsys.readouterr().out


def test_batch_file_invalid(run, capsys, tmp_path: Path) -> None:
    batch = tmp_path / "batch.json"
    batch.write_text('[{"name": "alice"}]')

    assert run("add-peers", str(batch)) == 0
    assert "Fichier invalide" in capsys.readouterr().out


def test_export_peer(run, tmp_path: Path) -> None:
    run("add-peer", "alice", "--group", "teamA")
    assert run("export-peer", "pub1=") == 0
    assert "Address = 10.8.1.2/32" in (tmp_path / "configs" / "alice.conf").read_text()


def test_export_unknown_peer(run, capsys) -> None:
    assert run("export-peer", "nope=") == 1
    assert "[ERREUR]" in capsys.readouterr().out


def test_failure_shows_cause(run, gateway, capsys) -> None:
    gateway.status = None
    assert run("add-peer", "alice", "--group", "teamA") == 1
    out = capsys.readouterr().out
    assert "[ERREUR] Cannot create peer 'alice'" in out
    assert "interface unavailable" in out


def test_clear_needs_confirmation(run, registry, capsys) -> None:
    run("add-peer", "alice", "--group", "teamA")
    assert run("clear") == 0
    assert len(registry.list_peers()) == 1

    assert run("clear", "--yes") == 0
    assert registry.list_peers() == []


def test_remove_peer(run, registry) -> None:
    run("add-peer", "alice", "--group", "teamA")
    assert run("remove-peer", "pub1=") == 0
    assert registry.list_peers() == []


def test_missing_settings(monkeypatch, tmp_path: Path, capsys) -> None:
    monkeypatch.chdir(tmp_path)
    for key in ("HOST", "DNS", "KEEPALIVE", "MASK"):
        monkeypatch.delenv(key, raising=False)

    assert cli.main(["list-peers"]) == 1
    assert "Missing required env var" in capsys.readouterr().out


def test_generate_qr(run, tmp_path: Path) -> None:
    run("add-peer", "alice", "--group", "teamA")
    assert run("generate-qr", "pub1=") == 0
    assert (tmp_path / "configs" / "alice.png").stat().st_size > 0


@pytest.mark.parametrize("name,expected", [
    ("alice", "alice.conf"),
    ("../../etc/evil", "_.._etc_evil.conf"),
    ("/tmp/x", "_tmp_x.conf"),
    ("..", "peer.conf"),
])
def test_config_path_stays_in_configs(name: str, expected: str) -> None:
    path = cli.config_path(name, ".conf")
    assert path.parent == cli.CONFIGS_DIR
    assert path.name == expected


def test_export_peer_with_slash_in_name(run, tmp_path: Path) -> None:
    run("add-peer", "../evil", "--group", "teamA")
    assert run("export-peer", "pub1=") == 0
    assert (tmp_path / "configs" / "_evil.conf").exists()
    assert not (tmp_path / "evil.conf").exists()
