"""Periodic cleanup of locally stored videos.

Only call-based providers write files here; anything older than the max age
is deleted. Runs as a background asyncio task started by the app lifespan.
"""

from __future__ import annotations

import asyncio
import logging
import os
import time

logger = logging.getLogger(__name__)


class VideoSweeper:
    """Deletes files in ``directory`` whose mtime is older than ``max_age_seconds``."""

    def __init__(
        self,
        directory: str,
        *,
        max_age_seconds: float = 3600.0,
        interval_seconds: float = 3600.0,
    ) -> None:
        self.directory = directory
        self.max_age_seconds = max_age_seconds
        self.interval_seconds = interval_seconds
        self._task: asyncio.Task | None = None

    def sweep_once(self, now: float | None = None) -> list[str]:
        """Run one pass and return the names of deleted files."""
        now = time.time() if now is None else now

        try:
            with os.scandir(self.directory) as it:
                entries = list(it)
        except FileNotFoundError:
            return []
        except OSError as e:
            logger.warning("Video cleanup: cannot scan %s: %s", self.directory, e)
            return []

        removed: list[str] = []
        for entry in entries:
            try:
                if not entry.is_file(follow_symlinks=False):
                    continue
                age = now - entry.stat(follow_symlinks=False).st_mtime
                if age <= self.max_age_seconds:
                    continue
                os.remove(entry.path)
            except FileNotFoundError:
                # Removed by someone else between listing and unlink
                continue
            except OSError as e:
                logger.warning("Video cleanup: failed to remove %s: %s", entry.name, e)
                continue

            removed.append(entry.name)
            logger.info("Cleaned up old video: %s (age %ds)", entry.name, int(age))

        return removed

    async def run_forever(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                removed = await asyncio.to_thread(self.sweep_once)
            except Exception:
                logger.exception("Video cleanup pass failed")
                continue
            if removed:
                logger.info("Video cleanup complete: %d file(s) removed", len(removed))

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run_forever(), name="video-sweeper")
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
