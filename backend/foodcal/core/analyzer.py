import logging
from typing import List, Optional

import httpx

from foodcal.core.bailian import chat_completion
from foodcal.core.config import Settings
from foodcal.core.exceptions import (
    ApiKeyNotConfiguredError,
    InvalidModelOutputError,
    MissingImageError,
    UpstreamError,
)
from foodcal.parsing.identify import build_identify_messages, parse_identified_foods
from foodcal.parsing.nutrition import build_nutrition_messages, estimate_nutrients, to_records
from foodcal.schemas.analyze import IdentifiedFood, NutritionRecord

logger = logging.getLogger("foodcal.analyzer")


class FoodAnalyzer:
    """
    Two-stage pipeline: vision model names the foods, text model estimates
    their nutrients. One instance per request; nothing is shared between requests.
    """

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.settings.REQUEST_TIMEOUT_SECONDS, transport=self._transport)

    def check_preconditions(self, image_base64: Optional[str]) -> None:
        if not image_base64 or not image_base64.strip():
            raise MissingImageError()
        if not self.settings.api_key_configured:
            logger.error(
                "BAILIAN_API_KEY is not configured. Set it in the environment or backend/.env."
            )
            raise ApiKeyNotConfiguredError()

    async def identify_foods(self, client: httpx.AsyncClient, image_base64: str) -> List[IdentifiedFood]:
        mode = self.settings.IDENTIFY_MODE
        text = await chat_completion(
            client,
            self.settings,
            model=self.settings.VISION_MODEL_NAME,
            messages=build_identify_messages(image_base64, mode),
        )
        if text is None:
            raise InvalidModelOutputError()

        foods = parse_identified_foods(text, mode)
        logger.info("Identified %d food(s): %s", len(foods), ", ".join(f.name for f in foods))
        return foods

    async def lookup_nutrition(
        self, client: httpx.AsyncClient, foods: List[IdentifiedFood]
    ) -> List[NutritionRecord]:
        text = await chat_completion(
            client,
            self.settings,
            model=self.settings.INFERENCE_MODEL_NAME,
            messages=build_nutrition_messages(foods),
        )
        return to_records(estimate_nutrients(foods, text))

    async def analyze(self, image_base64: Optional[str]) -> List[NutritionRecord]:
        self.check_preconditions(image_base64)

        try:
            async with self._client() as client:
                foods = await self.identify_foods(client, image_base64)
                if not foods:
                    return []
                return await self.lookup_nutrition(client, foods)
        except UpstreamError as e:
            logger.error("Upstream call failed: %s", e.detail)
            raise
