"""File-backed storage for a WireGuard configuration."""

import asyncio
import logging
import os
import tempfile
from pathlib import Path
from typing import Union

logger = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]


class PeerStore:
    """Reads and writes one configuration file.

    ``lock`` guards a full read-modify-write cycle. Callers that mutate the
    same file concurrently must share one PeerStore instance.
    """

    def __init__(self, path: PathLike, mode: int = 0o600):
        self.path = Path(path)
        self.mode = mode
        self.lock = asyncio.Lock()

    def __repr__(self):
        return f"PeerStore({str(self.path)!r})"

    def _read(self) -> str:
        with open(self.path, "r", encoding="utf-8") as f:
            return f.read()

    def _write(self, text: str):
        directory = self.path.parent
        directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=str(directory))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
            os.chmod(tmp_name, self.mode)
            os.replace(tmp_name, self.path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    async def read(self) -> str:
        text = await asyncio.to_thread(self._read)
        logger.debug("Read %d bytes from %s", len(text), self.path)
        return text

    async def write(self, text: str):
        await asyncio.to_thread(self._write, text)
        logger.debug("Wrote %d bytes to %s", len(text), self.path)


def as_store(store: Union["PeerStore", PathLike]) -> PeerStore:
    if isinstance(store, PeerStore):
        return store
    return PeerStore(store)
