# src/awg_backend/state.py
from __future__ import annotations
import json
import logging
import os
from pathlib import Path
from typing import Optional

from .clients_table import dict_to_metadata, metadata_to_dict
from .models import CacheSnapshot


DEFAULT_STATE_PATH = Path("data/state.json")

logger = logging.getLogger("awg_backend.state")


def snapshot_to_dict(snapshot: CacheSnapshot) -> dict:
    return {
        "records": {
            client_id: metadata_to_dict(meta)
            for client_id, meta in snapshot.records.items()
        },
        "pages": {
            group: {
                client_id: [name, config]
                for client_id, (name, config) in configs.items()
            }
            for group, configs in snapshot.pages.items()
        },
        "id_to_group": dict(snapshot.id_to_group),
        "group_to_guid": dict(snapshot.group_to_guid),
    }


def dict_to_snapshot(data: dict) -> CacheSnapshot:
    records = {
        client_id: dict_to_metadata(meta)
        for client_id, meta in data.get("records", {}).items()
    }

    pages = {}
    for group, configs in data.get("pages", {}).items():
        pages[group] = {
            client_id: (name, config)
            for client_id, (name, config) in configs.items()
        }

    return CacheSnapshot(
        records=records,
        pages=pages,
        id_to_group=dict(data.get("id_to_group", {})),
        group_to_guid=dict(data.get("group_to_guid", {})),
    )


def load_snapshot(path: Optional[Path] = None) -> CacheSnapshot:
    """
    Charge le cache local. Fichier absent ou illisible -> cache vide.
    """
    path = path or DEFAULT_STATE_PATH
    if not path.exists():
        logger.debug("No snapshot at %s, starting empty", path)
        return CacheSnapshot()

    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
        return dict_to_snapshot(data)
    except (OSError, ValueError, KeyError, TypeError, AttributeError) as exc:
        logger.warning("Cannot load snapshot %s (%s), starting empty", path, exc)
        return CacheSnapshot()


def save_snapshot(snapshot: CacheSnapshot, path: Optional[Path] = None) -> None:
    path = path or DEFAULT_STATE_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    data = snapshot_to_dict(snapshot)

    tmp = path.with_name(path.name + ".tmp")
    with tmp.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
    os.replace(tmp, path)
