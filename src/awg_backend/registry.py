# src/awg_backend/registry.py
"""
Cache local des peers, tenu cohérent avec le store distant.

Le store distant n'a ni transactions ni verrous : on ne peut que lire et
réécrire des fichiers entiers. Toutes les mutations passent donc par un
seul verrou exclusif, dans cet ordre :

    verrou -> écriture distante -> mise à jour du cache -> pages
           -> réconciliation (best-effort) -> snapshot local -> libération

Si l'écriture distante échoue, le cache n'est pas modifié. La
réconciliation se fait sous le même verrou, si bien qu'une mutation
concurrente ne peut pas s'intercaler entre la sauvegarde et la relecture.
"""
from __future__ import annotations
import logging
import threading
import uuid
from contextlib import contextmanager
from typing import Dict, Iterable, Iterator, List, Tuple

from .clients_table import parse_clients_table
from .errors import AwgError, NotFound, PeerOperationFailed
from .gateway import DockerGateway, RemoteGateway
from .models import (
    CacheSnapshot,
    ClientMetadata,
    GroupRecord,
    PeerStats,
    PeerSummary,
)
from .pages import PageBuilder
from .settings import Settings
from .state import load_snapshot, save_snapshot
from .wireguard import build_client, fetch_server_conf, push_documents

logger = logging.getLogger("awg_backend.registry")


class ReadWriteLock:
    """Plusieurs lecteurs ou un seul écrivain ; un écrivain en attente passe devant."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def shared(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def exclusive(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class PeerRegistry:
    def __init__(
        self,
        gateway: RemoteGateway,
        settings: Settings,
        pages: PageBuilder | None = None,
        snapshot: CacheSnapshot | None = None,
    ):
        self.gateway = gateway
        self.settings = settings
        self.pages = pages or PageBuilder(settings.served_dir)
        self.snapshot = snapshot or CacheSnapshot()
        self.lock = ReadWriteLock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "PeerRegistry":
        return cls(
            gateway=DockerGateway(settings.container),
            settings=settings,
            snapshot=load_snapshot(settings.stored_file),
        )

    # ---------- Lecture ----------

    def list_peers(self) -> List[PeerSummary]:
        with self.lock.shared():
            return [
                PeerSummary(uid=client_id, name=meta.name)
                for client_id, meta in self.snapshot.records.items()
            ]

    def peer_stats(self) -> List[PeerStats]:
        with self.lock.shared():
            return [
                PeerStats.from_metadata(client_id, meta)
                for client_id, meta in self.snapshot.records.items()
            ]

    def list_groups(self) -> List[GroupRecord]:
        with self.lock.shared():
            return [
                GroupRecord(group=group, guid=guid)
                for group, guid in self.snapshot.group_to_guid.items()
            ]

    def client_config(self, client_id: str) -> Tuple[str, str]:
        """(nom, config client) d'un peer créé par ce cache."""
        with self.lock.shared():
            group = self.snapshot.id_to_group.get(client_id)
            if group is None:
                raise NotFound(f"Unknown peer '{client_id}'")
            return self.snapshot.pages[group][client_id]

    # ---------- Synchronisation ----------

    def fetch_records(self) -> Dict[str, ClientMetadata]:
        return parse_clients_table(self.gateway.read_file(self.settings.clients_table_path))

    def refresh(self) -> None:
        # lecture sous verrou : une mutation en cours ne peut pas être écrasée
        with self.lock.exclusive():
            self.snapshot.records = self.fetch_records()

    def start(self) -> None:
        try:
            self.refresh()
        except AwgError as exc:
            logger.warning("Initial fetch of the clients table failed: %s", exc)

    def _reconcile(self) -> None:
        try:
            self.snapshot.records = self.fetch_records()
        except AwgError as exc:
            logger.warning("Reconciliation with the clients table failed: %s", exc)

    def _persist(self) -> None:
        try:
            save_snapshot(self.snapshot, self.settings.stored_file)
        except OSError as exc:
            logger.warning("Cannot write snapshot %s: %s", self.settings.stored_file, exc)

    def _commit(self) -> None:
        self._reconcile()
        self._persist()

    def _publish(self, group: str) -> None:
        guid = self.snapshot.group_to_guid[group]
        try:
            self.pages.publish(guid, self.snapshot.pages.get(group, {}))
        except OSError:
            logger.exception("Cannot regenerate page of group %s", group)

    # ---------- Ajout ----------

    def _add(self, name: str, group: str) -> GroupRecord:
        artifacts = build_client(self.gateway, self.settings, name)
        client_id = artifacts.client_id

        table = self.fetch_records()
        conf = artifacts.conf
        conf.peers[client_id] = artifacts.peer
        table[client_id] = artifacts.metadata
        push_documents(self.gateway, self.settings, conf, table)

        # le store distant est à jour : on peut avancer le cache
        s = self.snapshot
        s.records[client_id] = artifacts.metadata
        s.pages.setdefault(group, {})[client_id] = (name, artifacts.config)
        s.id_to_group[client_id] = group

        guid = s.group_to_guid.get(group)
        if guid is None:
            guid = uuid.uuid4().hex
            s.group_to_guid[group] = guid
            logger.info("New group %s (%s)", group, guid)

        self._publish(group)
        logger.info("Created peer %s (%s) in group %s", name, client_id, group)
        return GroupRecord(group=group, guid=guid)

    def add_peer(self, name: str, group: str) -> GroupRecord:
        with self.lock.exclusive():
            try:
                record = self._add(name, group)
            except AwgError as exc:
                raise PeerOperationFailed(f"Cannot create peer '{name}'") from exc
            self._commit()
        return record

    def add_peers(self, batch: Iterable[Tuple[str, str]]) -> List[GroupRecord]:
        """
        Ajoute les peers un par un sous un seul verrou. Un échec n'arrête
        pas le lot : l'entrée est ignorée (et loggée).
        """
        records = []
        with self.lock.exclusive():
            for name, group in batch:
                try:
                    records.append(self._add(name, group))
                except AwgError as exc:
                    logger.warning("Skipping peer %s (group %s): %s", name, group, exc)
            self._commit()
        return records

    # ---------- Suppression ----------

    def _remove_remote(self, client_id: str) -> bool:
        conf = fetch_server_conf(self.gateway, self.settings)
        table = self.fetch_records()

        in_conf = conf.peers.pop(client_id, None) is not None
        in_table = table.pop(client_id, None) is not None
        if not (in_conf or in_table):
            return False

        push_documents(self.gateway, self.settings, conf, table)
        return True

    def _forget(self, client_id: str) -> None:
        s = self.snapshot
        s.records.pop(client_id, None)

        group = s.id_to_group.pop(client_id, None)
        if group is None:
            return

        configs = s.pages.get(group, {})
        configs.pop(client_id, None)
        if not configs:
            s.pages.pop(group, None)

        # groupe vide : la page disparaît mais le guid est conservé
        if group in s.group_to_guid:
            self._publish(group)

    def remove_peer(self, client_id: str) -> None:
        """Supprime un peer. Un id inconnu n'est pas une erreur."""
        with self.lock.exclusive():
            try:
                removed = self._remove_remote(client_id)
            except AwgError as exc:
                raise PeerOperationFailed(f"Cannot remove peer '{client_id}'") from exc

            s = self.snapshot
            if not removed and client_id not in s.records and client_id not in s.id_to_group:
                logger.debug("Unknown peer %s, nothing to remove", client_id)
                return

            self._forget(client_id)
            logger.info("Removed peer %s", client_id)
            self._commit()

    # ---------- Remise à zéro ----------

    def _clear_remote(self) -> None:
        conf = fetch_server_conf(self.gateway, self.settings)
        conf.peers.clear()
        push_documents(self.gateway, self.settings, conf, {})

    def clear(self) -> None:
        """
        Vide le document serveur, la table clients, le cache et toutes les
        pages. Peut être rappelé sans effet supplémentaire.
        """
        with self.lock.exclusive():
            try:
                self._clear_remote()
            except AwgError as exc:
                logger.warning("Remote clear failed: %s", exc)

            self.snapshot = CacheSnapshot()
            self.pages.clear()
            self._persist()
            logger.info("Cleared all peers and groups")
