# src/awg_backend/clients_table.py
from __future__ import annotations
import json
from typing import Dict

from .errors import MalformedDocument
from .models import ClientMetadata

# clé JSON (userData) -> attribut ClientMetadata
OPTIONAL_FIELDS = {
    "dataReceived": "data_received",
    "dataSent": "data_sent",
    "latestHandshake": "latest_handshake",
    "allowedIps": "allowed_ips",
}


def metadata_to_dict(meta: ClientMetadata) -> dict:
    data = {
        "clientName": meta.name,
        "creationDate": meta.creation_date,
    }
    for key, attr in OPTIONAL_FIELDS.items():
        value = getattr(meta, attr)
        if value is not None:
            data[key] = value
    return data


def dict_to_metadata(data: dict) -> ClientMetadata:
    return ClientMetadata(
        name=data["clientName"],
        creation_date=data.get("creationDate", ""),
        **{attr: data.get(key) for key, attr in OPTIONAL_FIELDS.items()},
    )


def parse_clients_table(text: str) -> Dict[str, ClientMetadata]:
    """
    clientsTable -> {clientId: ClientMetadata}. Un fichier vide = table vide.
    """
    if not text.strip():
        return {}

    try:
        rows = json.loads(text)
    except json.JSONDecodeError as exc:
        raise MalformedDocument(f"Invalid clientsTable JSON: {exc}") from exc

    if not isinstance(rows, list):
        raise MalformedDocument("clientsTable must be a JSON array")

    table: Dict[str, ClientMetadata] = {}
    for row in rows:
        try:
            table[row["clientId"]] = dict_to_metadata(row["userData"])
        except (KeyError, TypeError) as exc:
            raise MalformedDocument(f"Invalid clientsTable row: {row!r}") from exc
    return table


def render_clients_table(table: Dict[str, ClientMetadata]) -> str:
    rows = [
        {"clientId": client_id, "userData": metadata_to_dict(meta)}
        for client_id, meta in table.items()
    ]
    return json.dumps(rows, indent=2)
