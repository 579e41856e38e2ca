
# src/awg_backend/models.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Optional, List, Tuple


@dataclass
class InterfaceParams:
    port: int                  # ex: 51820
    jc: int
    jmin: int
    jmax: int
    s1: int
    s2: int
    h1: int
    h2: int
    h3: int
    h4: int
    public_key: str            # clé publique du serveur
    mask: str                  # ex "10.8.1." (l'id est concaténé)

    def tuning(self) -> List[Tuple[str, int]]:
        return [
            ("Jc", self.jc),
            ("Jmin", self.jmin),
            ("Jmax", self.jmax),
            ("S1", self.s1),
            ("S2", self.s2),
            ("H1", self.h1),
            ("H2", self.h2),
            ("H3", self.h3),
            ("H4", self.h4),
        ]


@dataclass
class PeerRecord:
    public_key: str
    preshared_key: str
    allowed_ips: str           # ex "10.8.1.2/32"


@dataclass
class ClientMetadata:
    name: str
    creation_date: str         # ex "Sat Oct 17 20:35:12 2026"
    data_received: Optional[str] = None
    data_sent: Optional[str] = None
    latest_handshake: Optional[str] = None
    allowed_ips: Optional[str] = None


@dataclass
class ServerConf:
    interface_lines: List[str]
    # ordre d'insertion = ordre du document, puis les peers ajoutés
    peers: Dict[str, PeerRecord] = field(default_factory=dict)


@dataclass
class CacheSnapshot:
    records: Dict[str, ClientMetadata] = field(default_factory=dict)
    pages: Dict[str, Dict[str, Tuple[str, str]]] = field(default_factory=dict)
    id_to_group: Dict[str, str] = field(default_factory=dict)
    group_to_guid: Dict[str, str] = field(default_factory=dict)


@dataclass
class ClientArtifacts:
    client_id: str             # = clé publique du client
    host_id: int
    peer: PeerRecord
    metadata: ClientMetadata
    config: str                # config client rendue
    conf: ServerConf           # document serveur ayant servi à l'allocation


@dataclass
class GroupRecord:
    group: str
    guid: str


@dataclass
class PeerSummary:
    uid: str
    name: str


@dataclass
class PeerStats:
    uid: str
    name: str
    recv: str
    sent: str
    last_seen: str
    created: str

    @classmethod
    def from_metadata(cls, uid: str, meta: ClientMetadata) -> "PeerStats":
        return cls(
            uid=uid,
            name=meta.name,
            recv=meta.data_received or "0 KiB",
            sent=meta.data_sent or "0 KiB",
            last_seen=meta.latest_handshake or "Never",
            created=meta.creation_date,
        )
