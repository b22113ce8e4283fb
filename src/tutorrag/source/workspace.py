"""Per-tenant working area for one ingestion run."""

from __future__ import annotations

import json
import shutil
from pathlib import Path

from tutorrag.core.logging_config import get_logger
from tutorrag.core.models import VideoRecord
from tutorrag.core.naming import audio_basename

logger = get_logger(__name__)

__all__ = ["Workspace", "audio_basename"]


class Workspace:
    """Directory tree holding audio, transcripts and listing metadata.

    Layout under ``root``::

        audio/        downloaded audio files
        transcripts/  one .txt per transcribed video
        metadata/     videos.json with the listed VideoRecords

    The tree is cleared at the start of every run, so artifacts from an
    earlier run never end up in a new corpus.
    """

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)
        self.audio_dir = self.root / "audio"
        self.transcripts_dir = self.root / "transcripts"
        self.metadata_dir = self.root / "metadata"
        self._logger = logger.bind(workspace=str(self.root))

    def _dirs(self) -> tuple[Path, Path, Path]:
        return (self.audio_dir, self.transcripts_dir, self.metadata_dir)

    def reset(self) -> None:
        """Remove everything from a previous run and recreate empty directories."""
        removed = 0
        for directory in self._dirs():
            if directory.exists():
                shutil.rmtree(directory)
                removed += 1
            directory.mkdir(parents=True, exist_ok=True)
        self._logger.info("workspace_reset", directories_cleared=removed)

    def write_metadata(self, videos: list[VideoRecord]) -> Path:
        """Save the listed videos to ``metadata/videos.json``."""
        self.metadata_dir.mkdir(parents=True, exist_ok=True)
        path = self.metadata_dir / "videos.json"
        payload = [video.model_dump() for video in videos]
        path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        self._logger.debug("metadata_written", path=str(path), video_count=len(videos))
        return path

    def write_transcript(self, basename: str, text: str) -> Path:
        self.transcripts_dir.mkdir(parents=True, exist_ok=True)
        path = self.transcripts_dir / f"{basename}.txt"
        path.write_text(text, encoding="utf-8")
        return path

    def write_corpus(self, document: str) -> Path:
        """Save the rendered tenant document next to the transcripts."""
        path = self.root / "corpus.txt"
        path.write_text(document, encoding="utf-8")
        return path

    def artifacts(self) -> list[Path]:
        """All files currently in the workspace, sorted."""
        return sorted(p for d in self._dirs() if d.exists() for p in d.rglob("*") if p.is_file())
