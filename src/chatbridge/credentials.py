"""
Credential Stores

Session credentials are an opaque dictionary produced by the transport.
Stores load them when a session is created and persist every rotation the
transport reports, merging the update into what was stored before.
"""

import asyncio
import copy
import json
import logging
import os
import tempfile
from typing import Any, Dict, Optional, Protocol

logger = logging.getLogger(__name__)

CREDENTIALS_FILENAME = "creds.json"


class CredentialStore(Protocol):
    """Loads and persists session credentials."""

    async def load(self) -> Dict[str, Any]:
        ...

    async def save(self, update: Dict[str, Any]) -> None:
        ...


class MemoryCredentialStore:
    """
    Credential store that keeps everything in memory.

    Useful for tests and for sessions that must not touch the disk.
    """

    def __init__(self, credentials: Optional[Dict[str, Any]] = None):
        self._credentials: Dict[str, Any] = dict(credentials or {})
        self.save_count = 0

    async def load(self) -> Dict[str, Any]:
        return copy.deepcopy(self._credentials)

    async def save(self, update: Dict[str, Any]) -> None:
        self._credentials.update(update or {})
        self.save_count += 1


class JsonFileCredentialStore:
    """
    Credential store backed by a JSON file inside an auth directory.

    Writes go through a temporary file that replaces the target, so a crash
    mid-write leaves the previous credentials intact.

    Attributes:
        auth_dir: Directory holding the credentials file
        path: Full path of the credentials file
    """

    def __init__(self, auth_dir: str, filename: str = CREDENTIALS_FILENAME):
        self.auth_dir = auth_dir
        self.path = os.path.join(auth_dir, filename)
        self._credentials: Optional[Dict[str, Any]] = None

    async def load(self) -> Dict[str, Any]:
        """
        Read credentials from disk.

        Returns:
            Stored credentials, or an empty dict when none exist yet
            (the transport will then request pairing)
        """
        loop = asyncio.get_running_loop()
        self._credentials = await loop.run_in_executor(None, self._read)
        return copy.deepcopy(self._credentials)

    async def save(self, update: Dict[str, Any]) -> None:
        """
        Merge an update into the stored credentials and write them out.

        Args:
            update: Rotated credential fields reported by the transport
        """
        if self._credentials is None:
            await self.load()
        self._credentials.update(update or {})
        snapshot = copy.deepcopy(self._credentials)
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._write, snapshot)
        logger.debug("Saved credentials to %s", self.path)

    def _read(self) -> Dict[str, Any]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            logger.info("No credentials at %s, pairing required", self.path)
            return {}
        if not isinstance(data, dict):
            raise ValueError(f"Credentials file {self.path} is not an object")
        return data

    def _write(self, credentials: Dict[str, Any]) -> None:
        os.makedirs(self.auth_dir, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=self.auth_dir, prefix=".creds-", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(credentials, f)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
