"""Matching agent: the scoring oracle behind the match ranker."""

import json
from typing import Any, Dict

from agents.base import BaseAgent
from agents.common.utils import parse_json_response
from agents.matching.prompts import (
    CANDIDATES_FOR_JOB_TEMPLATE,
    JOBS_FOR_CANDIDATE_TEMPLATE,
    MATCHING_SYSTEM_PROMPT,
)
from agents.registry import register_agent
from core.config import settings
from core.errors import UpstreamError
from core.matching.ranker import MatchDirection
from core.middleware.logging import get_logger

logger = get_logger(__name__)


@register_agent("matching")
class MatchingAgent(BaseAgent):
    """Scores a whole pool against one job or candidate in a single call."""

    def __init__(self):
        super().__init__(
            name="matching",
            instructions=MATCHING_SYSTEM_PROMPT,
            model=settings.matching_model,
            temperature=settings.matching_temperature,
            response_mime_type="application/json",
        )

    def build_prompt(
        self,
        subject: Dict[str, Any],
        pool: list[Dict[str, Any]],
        direction: MatchDirection,
    ) -> str:
        template = (
            CANDIDATES_FOR_JOB_TEMPLATE
            if direction == MatchDirection.CANDIDATES_FOR_JOB
            else JOBS_FOR_CANDIDATE_TEMPLATE
        )
        return template.format(
            subject=json.dumps(subject, indent=2, default=str),
            pool=json.dumps(pool, indent=2, default=str),
            count=len(pool),
        )

    async def score(
        self,
        subject: Dict[str, Any],
        pool: list[Dict[str, Any]],
        direction: MatchDirection,
    ) -> Dict[str, Any]:
        """Score the pool against the subject.

        Returns:
            Parsed `{"matches": [...]}` body, not yet validated

        Raises:
            UpstreamError: call failed, or returned empty or non-JSON content
        """
        prompt = self.build_prompt(subject, pool, direction)
        try:
            text = await self.run(prompt)
        except Exception as e:
            logger.error(
                f"Scoring call failed: {type(e).__name__}: {e}",
                extra={"pool_size": len(pool), "direction": direction.value},
            )
            raise UpstreamError("Scoring service is unavailable") from e

        if not text.strip():
            raise UpstreamError("Scoring service returned no content")

        parsed = parse_json_response(text)
        if not isinstance(parsed, dict):
            raise UpstreamError("Scoring service returned a malformed response")
        return parsed

    async def process(self, input_data: Dict[str, Any]) -> Dict[str, Any]:
        """Score with input_data holding 'subject', 'pool' and 'direction'."""
        return await self.score(
            input_data["subject"],
            input_data["pool"],
            MatchDirection(input_data.get("direction", MatchDirection.CANDIDATES_FOR_JOB)),
        )
