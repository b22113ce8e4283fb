"""Unit tests for the pydantic models."""

import pytest
from pydantic import ValidationError

from tutorrag.core.models import (
    CorpusEntry,
    EmbeddingVector,
    IngestionResult,
    IngestionStatus,
    RollingContext,
    StructuredAnswer,
    TenantCorpus,
    VectorMatch,
    VideoRecord,
)


def video(i: int) -> VideoRecord:
    return VideoRecord(
        id=f"v{i}",
        title=f"Video {i}",
        url=f"https://youtu.be/v{i}",
        channel_identifier="@chan",
    )


class TestStructuredAnswer:
    """Citation fields are all present or all absent."""

    def test_answer_only(self):
        answer = StructuredAnswer(answer="Plain answer")
        assert not answer.is_cited
        assert answer.to_response() == {"answer": "Plain answer"}

    def test_full_citation_uses_camel_case_keys(self):
        answer = StructuredAnswer.model_validate(
            {
                "answer": "x",
                "title": "A",
                "startTime": "0:00",
                "endTime": "1:00",
                "videoUrl": "u",
            }
        )
        assert answer.is_cited
        assert answer.start_time == "0:00"
        assert answer.to_response() == {
            "answer": "x",
            "title": "A",
            "startTime": "0:00",
            "endTime": "1:00",
            "videoUrl": "u",
        }

    def test_populate_by_field_name(self):
        answer = StructuredAnswer(
            answer="x", title="A", start_time="0:00", end_time="1:00", video_url="u"
        )
        assert answer.video_url == "u"

    @pytest.mark.parametrize(
        "partial",
        [
            {"title": "A"},
            {"title": "A", "startTime": "0:00", "endTime": "1:00"},
            {"videoUrl": "u"},
            {"title": "A", "startTime": "0:00", "endTime": "1:00", "videoUrl": " "},
        ],
    )
    def test_partial_citation_rejected(self, partial):
        with pytest.raises(ValidationError):
            StructuredAnswer.model_validate({"answer": "x", **partial})


class TestRollingContext:
    """Only the latest exchange is kept."""

    def test_starts_empty(self):
        context = RollingContext()
        assert context.is_empty()
        assert context.last_exchange() == []

    def test_keeps_last_exchange_only(self):
        context = RollingContext()
        context.record("first question", "first answer")
        context.record("second question", "second answer")

        turns = context.last_exchange()
        assert [(t.role, t.text) for t in turns] == [
            ("user", "second question"),
            ("model", "second answer"),
        ]

    def test_last_exchange_is_a_copy(self):
        context = RollingContext()
        context.record("q", "a")
        context.last_exchange().clear()
        assert len(context.turns) == 2


class TestTenantCorpus:
    def test_render_tags_each_transcript(self):
        corpus = TenantCorpus(
            tenant_id="chan",
            entries=[
                CorpusEntry(video=video(1), text=" one "),
                CorpusEntry(video=video(2), text="two"),
            ],
        )
        document = corpus.render()
        sections = document.split("\n\n\f\n\n")
        assert sections[0] == "Video 1\nhttps://youtu.be/v1\n\none"
        assert sections[1].startswith("Video 2\nhttps://youtu.be/v2")


class TestVectorRecords:
    def test_metadata_round_trip(self):
        record = EmbeddingVector(
            chunk_ref="c1",
            vector=[0.0],
            metadata_text="text",
            source_video_id="v1",
            title="Video 1",
            url="https://youtu.be/v1",
            sequence_index=3,
        )
        match = VectorMatch.from_metadata("c1", 0.5, record.to_metadata())
        assert match.text == "text"
        assert match.title == "Video 1"
        assert match.sequence_index == 3
        assert match.score == 0.5

    def test_from_metadata_tolerates_missing_keys(self):
        match = VectorMatch.from_metadata("c1", 1, {})
        assert match.text == ""
        assert match.url == ""


class TestIngestionResult:
    def test_defaults(self):
        result = IngestionResult(tenant_id="chan", namespace="tutor-chatbot-chan")
        assert result.status == IngestionStatus.INIT
        assert result.failures == []

    def test_video_record_is_frozen(self):
        with pytest.raises(ValidationError):
            video(1).title = "changed"
