# src/awg_backend/gateway.py
from __future__ import annotations
import logging
import os
import shlex
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import List, Optional, Sequence

from .errors import RemoteUnavailable

logger = logging.getLogger("awg_backend.gateway")


def run_cmd(cmd: Sequence[str], check: bool = True) -> subprocess.CompletedProcess:
    """
    Lance une commande locale et capture stdout/stderr (texte).
    check=True : code de retour non nul -> RemoteUnavailable.
    """
    try:
        proc = subprocess.run(list(cmd), capture_output=True, text=True)
    except OSError as exc:
        raise RemoteUnavailable(f"Cannot run {cmd[0]!r}: {exc}") from exc

    if check and proc.returncode != 0:
        raise RemoteUnavailable(
            f"Command failed (rc={proc.returncode}): {shlex.join(cmd)}\n{proc.stderr.strip()}"
        )
    return proc


class RemoteGateway:
    """
    Narrow access to the remote store: run a tool, read a file, write a file.

    Parsing and formatting stay on the caller side.
    """

    def run(self, args: Sequence[str]) -> str:
        raise NotImplementedError

    def read_file(self, path: str) -> str:
        raise NotImplementedError

    def write_file(self, path: str, data: str) -> None:
        raise NotImplementedError


class DockerGateway(RemoteGateway):
    def __init__(self, container: str, staging_dir: Optional[Path] = None):
        self.container = container
        self.staging_dir = staging_dir

    def _exec(self, args: Sequence[str]) -> List[str]:
        return ["docker", "exec", "-i", self.container, *args]

    def run(self, args: Sequence[str]) -> str:
        return run_cmd(self._exec(args)).stdout

    def read_file(self, path: str) -> str:
        # fichier absent = store vierge -> chaîne vide ; toute autre erreur de cat remonte
        quoted = shlex.quote(path)
        return self.run(["sh", "-c", f"test -e {quoted} || exit 0; cat {quoted}"])

    def write_file(self, path: str, data: str) -> None:
        if not path.startswith("/"):
            raise ValueError("remote path must be absolute")

        fd, tmp = tempfile.mkstemp(prefix="awg-", dir=self.staging_dir)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(data)
            run_cmd(["docker", "cp", tmp, f"{self.container}:{path}"])
            logger.debug("Copied %d bytes to %s:%s", len(data), self.container, path)
        finally:
            # shred peut manquer sur l'hôte : on supprime quoi qu'il arrive
            if shutil.which("shred"):
                run_cmd(["shred", "-u", tmp], check=False)
            if os.path.exists(tmp):
                os.unlink(tmp)
