"""Extraction of a citation record from a free-text answer."""

from __future__ import annotations

import json
from typing import Any

from pydantic import ValidationError

from tutorrag.core.exceptions import ParseFailure
from tutorrag.core.logging_config import get_logger
from tutorrag.core.models import ConversationTurn, StructuredAnswer
from tutorrag.core.protocols import GenerationProvider
from tutorrag.query.prompts import EXTRACTION_PROMPT

logger = get_logger(__name__)

_CITATION_KEYS = ("title", "startTime", "endTime", "videoUrl")
_SNAKE_KEYS = {"start_time": "startTime", "end_time": "endTime", "video_url": "videoUrl"}


def _candidates(output: str) -> list[str]:
    """The whole output, then the span from the first ``{`` to the last ``}``."""
    candidates = [output]
    start = output.find("{")
    end = output.rfind("}")
    if start != -1 and end > start:
        candidates.append(output[start : end + 1])
    return candidates


def _normalize(data: dict[str, Any], raw_answer: str) -> dict[str, Any]:
    data = {_SNAKE_KEYS.get(key, key): value for key, value in data.items()}
    record: dict[str, Any] = {}
    for key in _CITATION_KEYS:
        value = data.get(key)
        if value is not None and str(value).strip():
            record[key] = str(value).strip()
    answer = data.get("answer")
    answer = str(answer).strip() if answer is not None else ""
    record["answer"] = answer or raw_answer
    return record


def parse_structured_answer(
    output: str, raw_answer: str, *, strict: bool = False
) -> StructuredAnswer:
    """Parse extraction output into a ``StructuredAnswer``.

    Tries a strict JSON parse first, then the substring between the first
    ``{`` and the last ``}``. The parsed object must validate: either all four
    citation fields are set or none is.

    Args:
        output: Raw text returned by the extraction call.
        raw_answer: The free-text answer that was structured; used as the
            answer when parsing fails or the extracted answer is blank.
        strict: Raise ``ParseFailure`` instead of falling back.

    Returns:
        The structured record, or ``StructuredAnswer(answer=raw_answer)``.
    """
    errors: list[str] = []
    for candidate in _candidates(output.strip()):
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError as e:
            errors.append(f"json: {e}")
            continue
        if not isinstance(data, dict):
            errors.append(f"expected an object, got {type(data).__name__}")
            continue
        try:
            return StructuredAnswer.model_validate(_normalize(data, raw_answer))
        except ValidationError as e:
            errors.append(f"schema: {e.error_count()} errors")

    if strict:
        raise ParseFailure("; ".join(errors) or "empty extraction output", raw=output)
    return StructuredAnswer(answer=raw_answer)


class ResponseStructurer:
    """Second, independent generation call that extracts citation fields."""

    def __init__(self, generator: GenerationProvider, prompt: str = EXTRACTION_PROMPT) -> None:
        self._generator = generator
        self._prompt = prompt

    async def structure(self, raw_answer: str) -> StructuredAnswer:
        """Structure ``raw_answer``; malformed extraction output falls back to it.

        Errors of the extraction call itself propagate.
        """
        output = await self._generator.generate(
            self._prompt,
            [ConversationTurn(role="user", text=raw_answer)],
            json_output=True,
        )
        try:
            structured = parse_structured_answer(output, raw_answer, strict=True)
        except ParseFailure as e:
            logger.warning("structure_parse_fallback", error=str(e), output_length=len(output))
            return StructuredAnswer(answer=raw_answer)

        logger.debug("structure_completed", cited=structured.is_cited)
        return structured
