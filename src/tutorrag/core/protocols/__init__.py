"""Runtime-checkable protocols for TutorRAG collaborators."""

from .audio_source import AudioAcquirer, MetadataSource
from .embedding import EmbeddingProvider
from .generation import GenerationProvider
from .stt import STTProvider
from .tenant_store import TenantRecordStoreProvider
from .vector_index import VectorIndexProvider

__all__ = [
    "AudioAcquirer",
    "EmbeddingProvider",
    "GenerationProvider",
    "MetadataSource",
    "STTProvider",
    "TenantRecordStoreProvider",
    "VectorIndexProvider",
]
