from __future__ import annotations

import asyncio
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class AudioStorage:
    """Filesystem bucket for synthesized audio, addressed by relative paths."""

    def __init__(self, root: Path) -> None:
        self._root = root.resolve()

    @property
    def root(self) -> Path:
        return self._root

    @staticmethod
    def weekly_path(user_id: int, week_start: str) -> str:
        return f"{user_id}/{week_start}/weekly-summary.mp3"

    def resolve(self, relative_path: str) -> Path:
        candidate = (self._root / relative_path).resolve()
        if candidate != self._root and self._root not in candidate.parents:
            raise ValueError(f"audio path escapes storage root: {relative_path}")
        return candidate

    def _write(self, target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        if target.exists():
            target.unlink()
        target.write_bytes(data)

    async def save(self, relative_path: str, data: bytes) -> str:
        target = self.resolve(relative_path)
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._write, target, data)
        logger.info("audio stored", extra={"path": relative_path})
        return relative_path

    def exists(self, relative_path: str) -> bool:
        try:
            return self.resolve(relative_path).is_file()
        except ValueError:
            return False
