# src/awg_backend/settings.py
from __future__ import annotations
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from .errors import ConfigError


@dataclass(frozen=True)
class Settings:
    host: str                   # IP/nom public du serveur
    dns: str                    # DNS poussé aux clients
    keepalive: str              # PersistentKeepalive côté client
    mask: str                   # ex "10.8.1." ; l'id du peer est concaténé
    container: str = "amnezia-awg"
    stored_file: Path = Path("data/state.json")
    served_dir: Path = Path("data/served")
    interface: str = "wg0"
    awg_dir: str = "/opt/amnezia/awg"

    @property
    def conf_path(self) -> str:
        return f"{self.awg_dir}/{self.interface}.conf"

    @property
    def clients_table_path(self) -> str:
        return f"{self.awg_dir}/clientsTable"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Lit la configuration depuis les variables d'environnement.
        HOST, DNS, KEEPALIVE et MASK sont obligatoires.
        """
        env = os.environ if environ is None else environ

        def required(key: str) -> str:
            value = env.get(key, "").strip()
            if not value:
                raise ConfigError(f"Missing required env var: {key}")
            return value

        awg_dir = (env.get("AWG_DIR") or cls.awg_dir).rstrip("/")
        if not awg_dir.startswith("/"):
            raise ConfigError(f"AWG_DIR must be an absolute path: {awg_dir!r}")

        return cls(
            host=required("HOST"),
            dns=required("DNS"),
            keepalive=required("KEEPALIVE"),
            mask=required("MASK"),
            container=env.get("CONTAINER") or cls.container,
            stored_file=Path(env.get("STORED_FILE") or cls.stored_file),
            served_dir=Path(env.get("SERVED_DIR") or cls.served_dir),
            interface=env.get("INTERFACE") or cls.interface,
            awg_dir=awg_dir,
        )
