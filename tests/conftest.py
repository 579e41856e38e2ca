"""Shared test fixtures for awg_backend."""

from __future__ import annotations

import itertools
import threading
from pathlib import Path
from typing import Dict, Optional, Sequence, Set

import pytest

from awg_backend.errors import RemoteUnavailable
from awg_backend.gateway import RemoteGateway
from awg_backend.pages import PageBuilder
from awg_backend.registry import PeerRegistry
from awg_backend.settings import Settings


STATUS = """interface: wg0
  public key: SERVERPUB=
  private key: (hidden)
  listening port: 51820
  jc: 4
  jmin: 40
  jmax: 70
  s1: 10
  s2: 20
  h1: 111
  h2: 222
  h3: 333
  h4: 444

peer: OTHERPUB=
  preshared key: (hidden)
  allowed ips: 10.8.1.9/32
"""

INTERFACE_CONF = """[Interface]
PrivateKey = SERVERPRIV=
Address = 10.8.1.0/24
ListenPort = 51820
Jc = 4
Jmin = 40
Jmax = 70
"""


class FakeGateway(RemoteGateway):
    """In-memory remote store understanding the handful of commands we send."""

    def __init__(self, files: Optional[Dict[str, str]] = None, status: Optional[str] = STATUS):
        self.files: Dict[str, str] = dict(files or {})
        self.status = status
        self.commands = []
        self.writes = []
        self.syncs = 0
        self.unreadable: Set[str] = set()
        self.unwritable: Set[str] = set()
        self.short_keygen_calls: Set[int] = set()
        self._keys = itertools.count(1)
        self._mutex = threading.Lock()

    def run(self, args: Sequence[str]) -> str:
        args = list(args)
        self.commands.append(args)
        if args[:2] == ["wg", "show"]:
            if self.status is None:
                raise RemoteUnavailable("wg show failed")
            return self.status

        script = args[-1]
        if "genkey" in script:
            with self._mutex:
                n = next(self._keys)
            if n in self.short_keygen_calls:
                return f"pub{n}=\n"
            return f"pub{n}=\npriv{n}=\npsk{n}=\n"
        if "syncconf" in script:
            self.syncs += 1
            return ""
        raise RemoteUnavailable(f"unexpected command: {args}")

    def read_file(self, path: str) -> str:
        if path in self.unreadable:
            raise RemoteUnavailable(f"cannot read {path}")
        return self.files.get(path, "")

    def write_file(self, path: str, data: str) -> None:
        if path in self.unwritable:
            raise RemoteUnavailable(f"cannot write {path}")
        self.writes.append(path)
        self.files[path] = data


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        host="203.0.113.7",
        dns="1.1.1.1",
        keepalive="25",
        mask="10.8.1.",
        stored_file=tmp_path / "state.json",
        served_dir=tmp_path / "served",
    )


@pytest.fixture
def gateway(settings: Settings) -> FakeGateway:
    return FakeGateway(files={settings.conf_path: INTERFACE_CONF})


@pytest.fixture
def registry(gateway: FakeGateway, settings: Settings) -> PeerRegistry:
    return PeerRegistry(gateway, settings, pages=PageBuilder(settings.served_dir))
