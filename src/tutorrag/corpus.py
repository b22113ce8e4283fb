"""Assembly of per-video transcripts into one tenant corpus."""

from tutorrag.core.exceptions import NoContentError
from tutorrag.core.logging_config import get_logger
from tutorrag.core.models import CorpusEntry, TenantCorpus, TranscriptUnit, VideoRecord

logger = get_logger(__name__)


def assemble_corpus(
    tenant_id: str,
    videos: list[VideoRecord],
    units: list[TranscriptUnit],
) -> TenantCorpus:
    """Build the tenant corpus from the transcripts that succeeded.

    Entries follow the listing order of ``videos`` and carry the video's title
    and URL. Blank transcripts are dropped.

    Raises:
        NoContentError: If no video produced any transcript text.
    """
    texts = {unit.video_id: unit.text for unit in units if unit.text.strip()}
    entries = [
        CorpusEntry(video=video, text=texts[video.id]) for video in videos if video.id in texts
    ]

    if not entries:
        raise NoContentError(
            f"No transcripts available for tenant '{tenant_id}' "
            f"({len(videos)} videos listed, {len(units)} transcribed)",
            tenant_id=tenant_id,
        )

    logger.info(
        "corpus_assembled",
        tenant_id=tenant_id,
        entries=len(entries),
        characters=sum(len(e.text) for e in entries),
    )
    return TenantCorpus(tenant_id=tenant_id, entries=entries)
