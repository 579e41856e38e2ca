# src/awg_backend/conf.py
"""
Lecture / écriture du document serveur (wg0.conf).

Le document est une suite de sections `[Interface]` / `[Peer]` suivies de
lignes `Clé = Valeur`. Les lignes vides et les commentaires `#` sont ignorés.

La section `[Interface]` n'est jamais interprétée : ses lignes sont
conservées telles quelles et ré-émises à l'identique. Chaque `[Peer]` doit
fournir PublicKey, PresharedKey et AllowedIPs, sinon la section est
abandonnée (avec un warning) sans faire échouer le reste du document.
Les lignes inconnues sont loggées puis ignorées, y compris celles qui
précèdent la première section.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional, Tuple

from .errors import MalformedDocument
from .models import PeerRecord, ServerConf

logger = logging.getLogger("awg_backend.conf")

PEER_FIELDS = {
    "PublicKey": "public_key",
    "PresharedKey": "preshared_key",
    "AllowedIPs": "allowed_ips",
}


class ConfStatus(str, Enum):
    ABSENT = "absent"      # pas de [Interface] : store non initialisé
    OK = "ok"
    PARTIAL = "partial"    # au moins un [Peer] abandonné


@dataclass
class ConfParse:
    status: ConfStatus
    conf: Optional[ServerConf] = None
    skipped: int = 0


# ---------- Passe 1 : découpage en sections ----------

def split_sections(text: str) -> Iterator[Tuple[str, List[str]]]:
    section: Optional[str] = None
    lines: List[str] = []

    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue

        if line.startswith("[") and line.endswith("]"):
            if section is not None:
                yield section, lines
            section = line[1:-1].strip()
            lines = []
        elif section is None:
            logger.warning("Ignoring line outside of any section: %s", line)
        else:
            lines.append(line)

    if section is not None:
        yield section, lines


# ---------- Passe 2 : extraction des champs ----------

def parse_peer_section(lines: List[str]) -> Optional[PeerRecord]:
    values = {}
    for line in lines:
        if "=" not in line:
            # clé connue sans valeur : la section est inexploitable
            if line.split(None, 1)[0] in PEER_FIELDS:
                logger.warning("Peer field without '=': %s", line)
                return None
            logger.error("Unknown line: %s", line)
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        if key not in PEER_FIELDS:
            logger.error("Unknown line: %s", line)
            continue
        values[PEER_FIELDS[key]] = value.strip()

    if len(values) != len(PEER_FIELDS):
        return None
    return PeerRecord(**values)


def parse_server_conf(text: str) -> ConfParse:
    interface: Optional[List[str]] = None
    peers = {}
    skipped = 0

    for section, lines in split_sections(text):
        if section == "Interface":
            if interface is not None:
                raise MalformedDocument("More than one [Interface] section")
            interface = lines
        elif section == "Peer":
            peer = parse_peer_section(lines)
            if peer is None:
                logger.warning("Failed to parse peer section, dropped: %s", lines)
                skipped += 1
                continue
            peers[peer.public_key] = peer
        else:
            logger.warning("Ignoring unknown section [%s]", section)

    if interface is None:
        return ConfParse(status=ConfStatus.ABSENT)

    return ConfParse(
        status=ConfStatus.PARTIAL if skipped else ConfStatus.OK,
        conf=ServerConf(interface_lines=interface, peers=peers),
        skipped=skipped,
    )


# ---------- Rendu ----------

def render_peer(p: PeerRecord) -> List[str]:
    return [
        "[Peer]",
        f"PublicKey = {p.public_key}",
        f"PresharedKey = {p.preshared_key}",
        f"AllowedIPs = {p.allowed_ips}",
    ]


def render_server_conf(conf: ServerConf) -> str:
    lines = ["[Interface]", *conf.interface_lines, ""]

    for p in conf.peers.values():
        lines += render_peer(p)
        lines.append("")  # blank

    return "\n".join(lines).strip() + "\n"
