"""YouTube channel listing and audio acquisition using yt-dlp."""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Any, cast

from tutorrag.core.exceptions import (
    ProviderError,
    SourceUnavailableError,
    TranscriptionError,
)
from tutorrag.core.models import VideoRecord
from tutorrag.core.naming import audio_basename, channel_videos_url, tenant_id_for
from tutorrag.core.retry_config import RetryConfig
from tutorrag.source._base import SourceMixin

WATCH_URL = "https://www.youtube.com/watch?v={video_id}"


class YouTubeChannelSource(SourceMixin):
    """Lists a channel's videos and downloads their audio with yt-dlp.

    Listing uses flat extraction (no per-video metadata fetch) with a lazy
    playlist, so only as many listing pages are requested as are needed to
    collect ``max_videos`` entries.
    """

    _provider_name: str = "youtube_source"

    def __init__(
        self,
        retry_config: RetryConfig | None = None,
        *,
        audio_format: str = "mp3",
        cookie_file: Path | str | None = None,
        po_token: str | None = None,
        player_clients: list[str] | None = None,
    ) -> None:
        """Initialize the YouTube source.

        Args:
            retry_config: Retry configuration. Uses default if not provided.
            audio_format: Codec FFmpeg extracts to (e.g. "mp3").
            cookie_file: Netscape format cookie file, for when YouTube answers 403.
            po_token: Proof of Origin token passed to the youtube extractor.
            player_clients: YouTube player clients to try, in order.
        """
        super().__init__(retry_config=retry_config)
        self._audio_format = audio_format
        self._cookie_file = Path(cookie_file) if cookie_file else None
        self._po_token = po_token
        self._player_clients = (
            player_clients if player_clients is not None else ["tv", "web", "mweb"]
        )

    def _ensure_ffmpeg(self) -> None:
        if not shutil.which("ffmpeg"):
            self._logger.error("ffmpeg_not_found")
            raise ProviderError(
                message=(
                    "youtube_source requires FFmpeg but it is not installed or not in PATH. "
                    "Run `tutorrag doctor` to check system dependencies."
                ),
                provider=self._provider_name,
                retryable=False,
            )

    def _base_opts(self) -> dict[str, Any]:
        opts: dict[str, Any] = {
            "quiet": True,
            "no_warnings": True,
            "extractor_args": {"youtube": {"player_client": self._player_clients}},
        }
        if self._po_token:
            token = self._po_token if "+" in self._po_token else f"web.gvs+{self._po_token}"
            opts["extractor_args"]["youtube"]["po_token"] = [token]
        if self._cookie_file and self._cookie_file.exists():
            opts["cookiefile"] = str(self._cookie_file)
        return opts

    def _listing_opts(self, max_videos: int) -> dict[str, Any]:
        opts = self._base_opts()
        opts.update(
            {
                "extract_flat": "in_playlist",
                "lazy_playlist": True,
                "skip_download": True,
                "playlistend": max_videos,
            }
        )
        return opts

    def _download_opts(self, output_dir: Path, basename: str) -> dict[str, Any]:
        opts = self._base_opts()
        opts.update(
            {
                "format": "bestaudio[ext=m4a]/bestaudio[ext=webm]/bestaudio/best",
                "outtmpl": str(output_dir / f"{basename}.%(ext)s"),
                "postprocessors": [
                    {
                        "key": "FFmpegExtractAudio",
                        "preferredcodec": self._audio_format,
                    }
                ],
            }
        )
        return opts

    @staticmethod
    def _is_transient(error: BaseException) -> bool:
        from yt_dlp.networking.exceptions import TransportError

        exc_info = getattr(error, "exc_info", None)
        cause = exc_info[1] if exc_info else error.__cause__
        return isinstance(cause, (ConnectionError, TimeoutError, TransportError))

    @staticmethod
    def _to_record(entry: dict[str, Any], channel_identifier: str) -> VideoRecord | None:
        video_id = entry.get("id")
        if not video_id or entry.get("ie_key") == "YoutubeTab":
            return None
        duration = entry.get("duration")
        return VideoRecord(
            id=video_id,
            title=entry.get("title") or "Unknown",
            url=WATCH_URL.format(video_id=video_id),
            duration_seconds=float(duration) if duration is not None else None,
            channel_identifier=channel_identifier,
        )

    async def list_videos(self, channel_identifier: str, max_videos: int) -> list[VideoRecord]:
        """List up to ``max_videos`` of a channel's videos, newest first.

        Raises:
            SourceUnavailableError: The listing could not be fetched, even after
                retrying transient network errors.
        """
        import yt_dlp

        channel_url = channel_videos_url(channel_identifier)
        tenant_id = tenant_id_for(channel_identifier)
        operation_logger = self._logger.bind(
            url=channel_url,
            max_videos=max_videos,
            operation="list_videos",
        )
        operation_logger.info("channel_listing_started")

        def _list_sync() -> list[VideoRecord] | None:
            records: list[VideoRecord] = []
            with yt_dlp.YoutubeDL(cast(Any, self._listing_opts(max_videos))) as ydl:
                try:
                    info = ydl.extract_info(channel_url, download=False)
                except yt_dlp.utils.DownloadError as e:
                    if self._is_transient(e):
                        raise ConnectionError(str(e)) from e
                    raise SourceUnavailableError(
                        f"youtube_source could not list {channel_url}: {e}",
                        tenant_id=tenant_id,
                    ) from e
                if info is None:
                    return None

                # entries is a lazy list; stop pulling pages once we have enough
                for entry in info.get("entries") or []:
                    if len(records) >= max_videos:
                        break
                    if not entry:
                        continue
                    record = self._to_record(entry, channel_identifier)
                    if record is not None:
                        records.append(record)
            return records

        try:
            videos = await self._run_blocking(_list_sync)
        except SourceUnavailableError:
            operation_logger.error("channel_listing_failed", error_type="SourceUnavailableError")
            raise
        except Exception as e:
            operation_logger.error(
                "channel_listing_failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            raise SourceUnavailableError(
                f"youtube_source list_videos failed for {channel_url}: {e}",
                tenant_id=tenant_id,
            ) from e

        if videos is None:
            operation_logger.error("channel_listing_empty_response")
            raise SourceUnavailableError(
                f"youtube_source returned no listing for {channel_url}",
                tenant_id=tenant_id,
            )

        operation_logger.info("channel_listing_completed", video_count=len(videos))
        return videos

    async def fetch_audio(self, video: VideoRecord, output_dir: Path) -> Path:
        """Download one video's audio into ``output_dir``.

        The file is named ``<sanitized title>_<video id>.<ext>``.

        Raises:
            TranscriptionError: The download failed or produced no file.
        """
        self._ensure_ffmpeg()
        basename = audio_basename(video.title, video.id, video.url)
        operation_logger = self._logger.bind(
            video_id=video.id,
            basename=basename,
            operation="fetch_audio",
        )
        operation_logger.info("download_started")
        output_dir.mkdir(parents=True, exist_ok=True)

        def _download_sync() -> Path:
            import yt_dlp

            with yt_dlp.YoutubeDL(cast(Any, self._download_opts(output_dir, basename))) as ydl:
                try:
                    info = ydl.extract_info(video.url, download=True)
                except yt_dlp.utils.DownloadError as e:
                    if self._is_transient(e):
                        raise ConnectionError(str(e)) from e
                    raise
            if info is None:
                raise ProviderError(
                    message=f"youtube_source: no video info returned for {video.url}",
                    provider=self._provider_name,
                )

            expected = output_dir / f"{basename}.{self._audio_format}"
            if expected.exists():
                return expected
            candidates = sorted(output_dir.glob(f"{basename}.*"))
            if not candidates:
                raise ProviderError(
                    message=f"youtube_source: audio file not found for {basename}",
                    provider=self._provider_name,
                )
            return candidates[0]

        try:
            path = await self._run_blocking(_download_sync)
        except Exception as e:
            operation_logger.error(
                "download_failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            wrapped = await self._wrap_error(e, "fetch_audio")
            raise TranscriptionError(
                str(wrapped),
                provider=self._provider_name,
                retryable=wrapped.retryable,
                video_id=video.id,
            ) from e

        operation_logger.info("download_completed", file_path=str(path))
        return path
