import argparse
import json
import logging
import re
import sys
from pathlib import Path

import qrcode
from dotenv import load_dotenv

from awg_backend.errors import AwgError, ConfigError
from awg_backend.registry import PeerRegistry
from awg_backend.settings import Settings


CONFIGS_DIR = Path("configs")


def config_path(name: str, suffix: str) -> Path:
    """Fichier de sortie dans configs/ ; le nom du peer ne peut pas en sortir."""
    safe = re.sub(r"[^\w.-]", "_", name).lstrip(".") or "peer"
    return CONFIGS_DIR / f"{safe}{suffix}"


def open_registry(args) -> PeerRegistry:
    settings = Settings.from_env()
    registry = PeerRegistry.from_settings(settings)
    registry.start()
    return registry


# ---------------------------------------------------
# Commande : list-peers
# ---------------------------------------------------

def cmd_list(args, registry):
    peers = registry.list_peers()

    print("=== Peers ===")
    if not peers:
        print("Aucun peer.")
    else:
        for p in peers:
            print(f"- {p.name} ({p.uid})")


# ---------------------------------------------------
# Commande : stats
# ---------------------------------------------------

def cmd_stats(args, registry):
    stats = registry.peer_stats()
    if not stats:
        print("Aucun peer.")
        return

    for s in stats:
        print(f"- {s.name} ({s.uid})")
        print(f"    reçu : {s.recv} | envoyé : {s.sent} | vu : {s.last_seen} | créé : {s.created}")


# ---------------------------------------------------
# Commande : groups
# ---------------------------------------------------

def cmd_groups(args, registry):
    groups = registry.list_groups()
    if not groups:
        print("Aucun groupe.")
        return

    for g in groups:
        print(f"- {g.group} -> {g.guid}/index.html")


# ---------------------------------------------------
# Commande : add-peer / add-peers
# ---------------------------------------------------

def cmd_add_peer(args, registry):
    record = registry.add_peer(args.name, args.group)
    print(f"[+] Peer ajouté : {args.name}")
    print(f"[+] Page du groupe {record.group} : {record.guid}/index.html")


def cmd_add_peers(args, registry):
    try:
        batch = json.loads(Path(args.file).read_text(encoding="utf-8"))
        items = [(item["name"], item["group"]) for item in batch]
    except (OSError, ValueError, KeyError, TypeError) as exc:
        print(f"[ERREUR] Fichier invalide : {exc}")
        return

    records = registry.add_peers(items)
    print(f"[+] {len(records)}/{len(items)} peers ajoutés.")
    for r in records:
        print(f"    {r.group} -> {r.guid}/index.html")


# ---------------------------------------------------
# Commande : remove-peer
# ---------------------------------------------------

def cmd_remove_peer(args, registry):
    registry.remove_peer(args.id)
    print(f"[OK] Peer supprimé : {args.id}")


# ---------------------------------------------------
# Commande : clear
# ---------------------------------------------------

def cmd_clear(args, registry):
    if not args.yes:
        print("[!] Supprime TOUS les peers et toutes les pages. Relancer avec --yes.")
        return
    registry.clear()
    print("[OK] Tout a été supprimé.")


# ---------------------------------------------------
# Commande : export-peer / generate-qr
# ---------------------------------------------------

def cmd_export_peer(args, registry):
    name, conf = registry.client_config(args.id)

    CONFIGS_DIR.mkdir(exist_ok=True)
    path = config_path(name, ".conf")
    path.write_text(conf)

    print(f"[OK] Config générée : {path}")
    print("\n--- Configuration ---\n")
    print(conf)


def cmd_generate_qr(args, registry):
    name, conf = registry.client_config(args.id)

    img = qrcode.make(conf)
    CONFIGS_DIR.mkdir(exist_ok=True)
    path = config_path(name, ".png")
    img.save(path)

    print(f"[OK] QR code généré : {path}")


# ---------------------------------------------------
# CLI / Parser
# ---------------------------------------------------

def build_parser():
    parser = argparse.ArgumentParser(prog="awg-peers")
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="cmd")

    # list-peers
    p_list = sub.add_parser("list-peers")
    p_list.set_defaults(func=cmd_list)

    # stats
    p_stats = sub.add_parser("stats")
    p_stats.set_defaults(func=cmd_stats)

    # groups
    p_groups = sub.add_parser("groups")
    p_groups.set_defaults(func=cmd_groups)

    # add-peer
    p_add = sub.add_parser("add-peer")
    p_add.add_argument("name")
    p_add.add_argument("--group", required=True)
    p_add.set_defaults(func=cmd_add_peer)

    # add-peers (fichier JSON : [{"name": ..., "group": ...}])
    p_batch = sub.add_parser("add-peers")
    p_batch.add_argument("file")
    p_batch.set_defaults(func=cmd_add_peers)

    # remove-peer
    p_rm = sub.add_parser("remove-peer")
    p_rm.add_argument("id")
    p_rm.set_defaults(func=cmd_remove_peer)

    # clear
    p_clear = sub.add_parser("clear")
    p_clear.add_argument("--yes", action="store_true")
    p_clear.set_defaults(func=cmd_clear)

    p_export = sub.add_parser("export-peer")
    p_export.add_argument("id")
    p_export.set_defaults(func=cmd_export_peer)

    # generate-qr
    p_qr = sub.add_parser("generate-qr")
    p_qr.add_argument("id")
    p_qr.set_defaults(func=cmd_generate_qr)

    return parser


def main(argv=None, registry_factory=open_registry):
    parser = build_parser()
    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        return 0

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    load_dotenv(".env")

    try:
        registry = registry_factory(args)
        args.func(args, registry)
    except (AwgError, ConfigError) as exc:
        print(f"[ERREUR] {exc}")
        if exc.__cause__ is not None:
            print(f"    cause : {exc.__cause__}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
