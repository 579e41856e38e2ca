# src/awg_backend/ipam.py
from __future__ import annotations
import ipaddress
import logging
from typing import Iterable, Optional

from .models import PeerRecord

logger = logging.getLogger("awg_backend.ipam")

# .1 est laissé au serveur
BASELINE_ID = 1


def parse_host_id(allowed_ips: str) -> Optional[int]:
    """
    '10.8.1.7/32' -> 7. Retourne None si la valeur n'est pas exploitable.
    """
    # seule la première entrée compte (ex "10.8.1.7/32, fd00::7/128")
    first = allowed_ips.split(",", 1)[0].strip()
    try:
        ip = ipaddress.ip_interface(first).ip
    except ValueError:
        return None
    if ip.version != 4:
        return None
    return ip.packed[-1]


def last_host_id(peers: Iterable[PeerRecord]) -> int:
    last = BASELINE_ID
    for p in peers:
        host_id = parse_host_id(p.allowed_ips)
        if host_id is None:
            logger.warning("Failed to parse id: %s", p.allowed_ips)
            continue
        last = max(last, host_id)
    return last


def next_host_id(peers: Iterable[PeerRecord]) -> int:
    """
    Prochain id libre = max(ids existants, 1) + 1.
    Les trous laissés par une suppression ne sont pas recyclés.
    """
    return last_host_id(peers) + 1
