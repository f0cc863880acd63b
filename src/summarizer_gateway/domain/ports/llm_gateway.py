"""Port: LLM gateway — defined by the domain, implemented by infrastructure."""

from __future__ import annotations

from typing import Protocol


class LlmGateway(Protocol):
    """Abstract contract for the model that turns README text into prose."""

    @property
    def model_name(self) -> str:
        """Identifier of the model answering requests."""
        ...

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Send a system + user prompt pair and return the raw JSON completion."""
        ...
