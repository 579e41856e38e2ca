# src/awg_backend/wireguard.py
from __future__ import annotations
import logging
import shlex
from datetime import datetime
from typing import Dict, Optional, Tuple

from .clients_table import render_clients_table
from .conf import parse_server_conf, render_server_conf
from .errors import (
    IdUnavailable,
    IncompleteCredential,
    MalformedDocument,
    RemoteUnavailable,
)
from .gateway import RemoteGateway
from .ipam import next_host_id
from .models import (
    ClientArtifacts,
    ClientMetadata,
    InterfaceParams,
    PeerRecord,
    ServerConf,
)
from .settings import Settings

logger = logging.getLogger("awg_backend.wireguard")

CREATION_DATE_FORMAT = "%a %b %d %H:%M:%S %Y"

TUNING_KEYS = ("jc", "jmin", "jmax", "s1", "s2", "h1", "h2", "h3", "h4")

# Rien n'est écrit sur disque : les trois clés sortent sur stdout
# dans l'ordre publique / privée / preshared.
KEYGEN_SCRIPT = (
    "umask 077"
    " && priv=$(wg genkey)"
    ' && printf "%s\\n" "$priv" | wg pubkey'
    ' && printf "%s\\n" "$priv"'
    " && wg genpsk"
)


# ---------- Paramètres de l'interface (toujours lus en live) ----------

def parse_interface_status(text: str) -> Dict[str, str]:
    """
    Bloc `interface:` de `wg show <iface>` -> {clé en minuscules: valeur}.
    Les blocs `peer:` sont ignorés.
    """
    values: Dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or ":" not in line:
            continue
        key, value = line.split(":", 1)
        key = key.strip().lower()
        if key == "peer":
            break
        values[key] = value.strip()
    return values


def interface_params_from_status(text: str, mask: str) -> InterfaceParams:
    values = parse_interface_status(text)
    try:
        tuning = {k: int(values[k]) for k in TUNING_KEYS}
        port = int(values["listening port"])
        public_key = values["public key"]
    except (KeyError, ValueError) as exc:
        raise IdUnavailable(f"interface unavailable: bad status output ({exc})") from exc

    if not public_key:
        raise IdUnavailable("interface unavailable: empty server public key")

    return InterfaceParams(port=port, public_key=public_key, mask=mask, **tuning)


def fetch_interface_params(gateway: RemoteGateway, settings: Settings) -> InterfaceParams:
    try:
        status = gateway.run(["wg", "show", settings.interface])
    except RemoteUnavailable as exc:
        raise IdUnavailable(f"interface unavailable: {exc}") from exc
    return interface_params_from_status(status, settings.mask)


# ---------- Document serveur ----------

def fetch_server_conf(gateway: RemoteGateway, settings: Settings) -> ServerConf:
    result = parse_server_conf(gateway.read_file(settings.conf_path))
    if result.conf is None:
        raise MalformedDocument(f"No [Interface] section in {settings.conf_path}")
    return result.conf


# ---------- Génération de clés ----------

def generate_credentials(gateway: RemoteGateway, settings: Settings) -> Tuple[str, str, str]:
    """
    Retourne (public_key, private_key, preshared_key), générés dans le store
    distant avec wg(8).
    """
    out = gateway.run(["bash", "-c", f"cd {shlex.quote(settings.awg_dir)} && {KEYGEN_SCRIPT}"])
    lines = [line.strip() for line in out.splitlines() if line.strip()]
    if len(lines) < 3:
        raise IncompleteCredential(
            f"credential generation incomplete: got {len(lines)} of 3 keys"
        )
    public, private, psk = lines[:3]
    return public, private, psk


# ---------- Rendu de la config client ----------

def render_client_conf(
    settings: Settings,
    params: InterfaceParams,
    address: str,
    private_key: str,
    preshared_key: str,
) -> str:
    lines = [
        "[Interface]",
        f"Address = {address}/32",
        f"DNS = {settings.dns}",
        f"PrivateKey = {private_key}",
    ]
    lines += [f"{key} = {value}" for key, value in params.tuning()]

    lines += [
        "",
        "[Peer]",
        f"PublicKey = {params.public_key}",
        f"PresharedKey = {preshared_key}",
        f"AllowedIPs = {settings.host}",
        f"Endpoint = {settings.host}:{params.port}",
        f"PersistentKeepalive = {settings.keepalive}",
    ]

    return "\n".join(lines).strip() + "\n"


def build_client(
    gateway: RemoteGateway,
    settings: Settings,
    name: str,
    now: Optional[datetime] = None,
) -> ClientArtifacts:
    """
    Prépare tout ce qu'il faut pour un nouveau peer, sans rien écrire
    dans le store distant.
    """
    params = fetch_interface_params(gateway, settings)
    conf = fetch_server_conf(gateway, settings)
    host_id = next_host_id(conf.peers.values())

    public, private, psk = generate_credentials(gateway, settings)

    logger.info("Allocating %s%d for %s", params.mask, host_id, name)
    address = f"{params.mask}{host_id}"
    config = render_client_conf(settings, params, address, private, psk)
    created = (now or datetime.now()).strftime(CREATION_DATE_FORMAT)

    return ClientArtifacts(
        client_id=public,
        host_id=host_id,
        peer=PeerRecord(public_key=public, preshared_key=psk, allowed_ips=f"{address}/32"),
        metadata=ClientMetadata(name=name, creation_date=created),
        config=config,
        conf=conf,
    )


# ---------- Application côté store ----------

def push_documents(
    gateway: RemoteGateway,
    settings: Settings,
    conf: ServerConf,
    table: Dict[str, ClientMetadata],
) -> None:
    gateway.write_file(settings.conf_path, render_server_conf(conf))
    gateway.write_file(settings.clients_table_path, render_clients_table(table))
    sync_interface(gateway, settings)


def sync_interface(gateway: RemoteGateway, settings: Settings) -> None:
    """Applique le document serveur à l'interface sans la redémarrer."""
    gateway.run([
        "bash", "-c",
        f"wg syncconf {settings.interface} <(wg-quick strip {shlex.quote(settings.conf_path)})",
    ])
