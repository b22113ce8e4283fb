from typing import Protocol, runtime_checkable

from tutorrag.core.models import ConversationTurn


@runtime_checkable
class GenerationProvider(Protocol):
    async def generate(
        self,
        system_prompt: str,
        turns: list[ConversationTurn],
        *,
        json_output: bool = False,
    ) -> str: ...
