"""Query resolution components."""

from tutorrag.query.answerer import AnswerGenerator
from tutorrag.query.retriever import Retriever, build_context_block
from tutorrag.query.rewriter import QueryRewriter
from tutorrag.query.structurer import ResponseStructurer, parse_structured_answer

__all__ = [
    "AnswerGenerator",
    "QueryRewriter",
    "ResponseStructurer",
    "Retriever",
    "build_context_block",
    "parse_structured_answer",
]
