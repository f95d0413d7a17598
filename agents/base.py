"""Base agent class for Gemini-backed agents."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
from google.genai import types


class BaseAgent(ABC):
    """Base class for all AI agents using the Gemini API."""

    def __init__(
        self,
        name: str,
        instructions: str,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        response_mime_type: Optional[str] = None,
    ):
        """Initialize the agent.

        Args:
            name: Agent name
            instructions: System instructions for the agent
            model: Gemini model, defaults to MATCHING_MODEL
            temperature: Sampling temperature, model default when None
            response_mime_type: e.g. "application/json" for JSON mode
        """
        from core.config import settings

        self.name = name
        self.instructions = instructions
        self.model = model or settings.matching_model
        self.temperature = temperature
        self.response_mime_type = response_mime_type
        self._client = None

    def _get_client(self):
        """Get or create the Gemini client."""
        if self._client is None:
            from google import genai
            from core.config import settings

            self._client = genai.Client(
                api_key=settings.google_api_key,
            )
        return self._client

    @abstractmethod
    async def process(self, input_data: Dict[str, Any]) -> Dict[str, Any]:
        """Process input data and return results.

        Args:
            input_data: Input data for the agent

        Returns:
            Processing results
        """
        pass

    async def run(self, prompt: str) -> str:
        """Run the agent with a prompt.

        Args:
            prompt: User prompt

        Returns:
            Response text, empty when the model returned no text
        """
        client = self._get_client()

        response = await client.aio.models.generate_content(
            model=self.model,
            contents=prompt,
            config=types.GenerateContentConfig(
                system_instruction=self.instructions,
                temperature=self.temperature,
                response_mime_type=self.response_mime_type,
            ),
        )

        return response.text or ""
