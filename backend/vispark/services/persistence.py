"""
Summary persistence and idempotency gate.

PersistenceGate sits between the coordinator and the summary store:
- find_existing() short-circuits videos that were already summarized
- acquire()/release() keep two coordinators from generating the same
  video at the same time
- save() writes a finished summary, best effort

Stores upsert by video_id, so a duplicate write is harmless.

Directory structure (JsonFileSummaryStore):
    data/summaries/
    ├── dQw4w9WgXcQ.json
    └── 9bZkp7q19f0.json
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

from vispark.config import Settings
from vispark.models.schemas import SavedSummary
from vispark.utils.youtube_utils import VIDEO_ID_PATTERN

logger = logging.getLogger(__name__)


@runtime_checkable
class SummaryStore(Protocol):
    """Durable summary storage keyed by video_id."""

    async def find_summary(self, video_id: str) -> SavedSummary | None:
        """Return the saved summary for a video, or None."""
        ...

    async def save_summary(self, summary: SavedSummary) -> None:
        """Insert or replace the summary for summary.video_id."""
        ...


class InMemorySummaryStore:
    """Process-local store for tests and ephemeral runs."""

    def __init__(self, summaries: list[SavedSummary] | None = None):
        self._summaries: dict[str, SavedSummary] = {
            s.video_id: s for s in summaries or []
        }

    async def find_summary(self, video_id: str) -> SavedSummary | None:
        return self._summaries.get(video_id)

    async def save_summary(self, summary: SavedSummary) -> None:
        self._summaries[summary.video_id] = summary

    def __len__(self) -> int:
        return len(self._summaries)


class JsonFileSummaryStore:
    """
    One JSON file per video.

    Writes go to a temporary file first and are moved into place, so a
    crash never leaves a half-written summary behind.

    Example:
        store = JsonFileSummaryStore(Path("data/summaries"))
        await store.save_summary(SavedSummary(video_id="dQw4w9WgXcQ", summary_text="..."))
        saved = await store.find_summary("dQw4w9WgXcQ")
    """

    def __init__(self, root: Path):
        """
        Initialize store.

        Args:
            root: Directory holding summary files (created on first write)
        """
        self.root = Path(root)

    def _path_for(self, video_id: str) -> Path:
        """
        Get file path for a video.

        Raises:
            ValueError: If video_id is not a valid YouTube video ID
        """
        if not VIDEO_ID_PATTERN.fullmatch(video_id):
            raise ValueError(f"Invalid video id for summary store: {video_id!r}")
        return self.root / f"{video_id}.json"

    async def find_summary(self, video_id: str) -> SavedSummary | None:
        path = self._path_for(video_id)
        if not path.exists():
            return None

        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return SavedSummary.model_validate(data)
        except Exception as e:
            logger.warning(f"Failed to load saved summary {path.name}: {e}")
            return None

    async def save_summary(self, summary: SavedSummary) -> None:
        path = self._path_for(summary.video_id)
        path.parent.mkdir(parents=True, exist_ok=True)

        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(
            json.dumps(
                summary.model_dump(mode="json", exclude={"bullets"}),
                ensure_ascii=False,
                indent=2,
            ),
            encoding="utf-8",
        )
        tmp_path.replace(path)
        logger.debug(f"Wrote summary file {path}")


def create_store(settings: Settings) -> SummaryStore:
    """
    Create the summary store selected by SUMMARY_STORE.

    Args:
        settings: Application settings

    Returns:
        Configured SummaryStore
    """
    if settings.summary_store == "memory":
        return InMemorySummaryStore()
    return JsonFileSummaryStore(settings.summaries_dir)


class PersistenceGate:
    """
    Idempotency check and best-effort persistence for summaries.

    One gate is shared by every coordinator in the process so that
    single-flight claims are visible across sessions.

    Example:
        gate = PersistenceGate(JsonFileSummaryStore(settings.summaries_dir))

        existing = await gate.acquire(video_id)
        if existing is None:
            try:
                text = await generate(video_id)
                await gate.save(video_id, channel_id, text)
            finally:
                gate.release(video_id)
    """

    def __init__(self, store: SummaryStore):
        """
        Initialize gate.

        Args:
            store: Durable summary store
        """
        self.store = store
        self._inflight: dict[str, asyncio.Event] = {}

    async def find_existing(self, video_id: str) -> SavedSummary | None:
        """
        Look up a saved summary.

        Args:
            video_id: YouTube video ID

        Returns:
            SavedSummary if the video was already summarized, else None
            (also None when the store lookup fails)
        """
        try:
            existing = await self.store.find_summary(video_id)
        except Exception as e:
            logger.warning(f"Summary lookup failed for {video_id}: {e}")
            return None

        if existing is not None:
            logger.debug(f"Found saved summary for {video_id}")
        return existing

    async def acquire(self, video_id: str) -> SavedSummary | None:
        """
        Claim a video for generation unless it is already summarized.

        Waits while another coordinator is generating the same video,
        then checks the store again.

        Args:
            video_id: YouTube video ID

        Returns:
            Existing summary (nothing claimed), or None when the caller
            now holds the claim and must call release()
        """
        while True:
            existing = await self.find_existing(video_id)
            if existing is not None:
                return existing

            event = self._inflight.get(video_id)
            if event is None:
                self._inflight[video_id] = asyncio.Event()
                return None

            logger.info(f"Waiting for in-flight generation of {video_id}")
            await event.wait()

    def release(self, video_id: str) -> None:
        """
        Release a claim taken by acquire().

        Args:
            video_id: YouTube video ID
        """
        event = self._inflight.pop(video_id, None)
        if event is not None:
            event.set()

    def is_inflight(self, video_id: str) -> bool:
        """Check whether a generation claim is held for a video."""
        return video_id in self._inflight

    async def save(
        self,
        video_id: str,
        channel_id: str | None,
        summary_text: str,
    ) -> bool:
        """
        Persist a finished summary.

        Failures are logged, never raised: the user already holds the
        summary in memory.

        Args:
            video_id: YouTube video ID
            channel_id: Channel to associate (metadata only)
            summary_text: Final summary text

        Returns:
            True if the summary was written
        """
        if await self.find_existing(video_id) is not None:
            logger.warning(f"Refusing to overwrite existing summary for {video_id}")
            return False

        try:
            await self.store.save_summary(
                SavedSummary(
                    video_id=video_id,
                    channel_id=channel_id,
                    summary_text=summary_text,
                )
            )
        except Exception as e:
            logger.warning(f"Failed to save summary for {video_id}: {e}")
            return False

        logger.info(f"Saved summary for {video_id} ({len(summary_text)} chars)")
        return True
