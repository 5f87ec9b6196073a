"""
Agronomist chat session

A multi-turn conversation with a fixed system instruction. History lives only
in this object; nothing is persisted.
"""
import logging
from typing import AsyncIterator, Dict, List

from agri_assist.config import CHAT_MODEL, CHAT_TEMPERATURE

logger = logging.getLogger(__name__)


class AgronomistChat:
    """Chat session handle returned by ``create_agronomist_chat``"""

    def __init__(self, client, system_instruction: str, model: str = CHAT_MODEL,
                 temperature: float = CHAT_TEMPERATURE):
        self.client = client
        self.system_instruction = system_instruction
        self.model = model
        self.temperature = temperature
        self._history: List[Dict[str, str]] = []

    @property
    def history(self) -> List[Dict[str, str]]:
        return [dict(turn) for turn in self._history]

    def _build_messages(self) -> List[Dict[str, str]]:
        return [{"role": "system", "content": self.system_instruction}] + self._history

    async def send_message(self, message: str) -> str:
        """Send one user turn and return the assistant reply"""
        self._history.append({"role": "user", "content": message})
        completed = False
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=self._build_messages(),
                temperature=self.temperature,
            )
            answer = response.choices[0].message.content or ""
            completed = True
        finally:
            # Errors and cancellation both drop the unanswered user turn
            if not completed:
                self._history.pop()

        self._history.append({"role": "assistant", "content": answer})
        logger.info(f"Chat turn complete ({len(self._history) // 2} turns)")
        return answer

    async def send_message_stream(self, message: str) -> AsyncIterator[str]:
        """Send one user turn and yield the reply as it arrives"""
        self._history.append({"role": "user", "content": message})
        chunks: List[str] = []
        completed = False
        try:
            stream = await self.client.chat.completions.create(
                model=self.model,
                messages=self._build_messages(),
                temperature=self.temperature,
                stream=True,
            )
            async for chunk in stream:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta.content
                if delta:
                    chunks.append(delta)
                    yield delta
            completed = True
        finally:
            # Also runs when the caller stops iterating early (aclose)
            if not completed:
                self._history.pop()

        self._history.append({"role": "assistant", "content": "".join(chunks)})
