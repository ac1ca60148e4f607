import asyncio
import contextlib
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response

from foodcal.core.analyzer import FoodAnalyzer
from foodcal.core.config import Settings, get_settings
from foodcal.schemas.analyze import (
    AnalyzeImageRequest,
    AnalyzeImageResponse,
    ErrorResponse,
    NutritionRecord,
)

router = APIRouter(prefix="/api", tags=["analyze"])

logger = logging.getLogger("foodcal.routes")

# How often we look for a client disconnect while the pipeline runs
DISCONNECT_POLL_SECONDS = 0.25

# nginx convention for "client closed request"
CLIENT_CLOSED_REQUEST = 499


def get_analyzer(settings: Settings = Depends(get_settings)) -> FoodAnalyzer:
    return FoodAnalyzer(settings)


async def run_until_disconnect(
    request: Request, analyzer: FoodAnalyzer, image_base64: str
) -> Optional[List[NutritionRecord]]:
    """
    Runs the pipeline as a task and cancels it (and with it any in-flight
    upstream call) if the client goes away first. Returns None in that case.
    """
    task = asyncio.create_task(analyzer.analyze(image_base64))
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=DISCONNECT_POLL_SECONDS)
            if done:
                return task.result()
            if await request.is_disconnected():
                logger.info("Client disconnected, cancelling analysis")
                return None
    finally:
        if not task.done():
            task.cancel()
            # Let the upstream client close before the response goes out
            with contextlib.suppress(asyncio.CancelledError):
                await task


@router.post(
    "/analyze-image",
    response_model=AnalyzeImageResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def analyze_image(
    request: Request,
    body: Optional[AnalyzeImageRequest] = None,
    analyzer: FoodAnalyzer = Depends(get_analyzer),
):
    """
    Identify the foods in a base64 (data URL) image and estimate their nutrients.
    An image with no recognisable food returns an empty list.
    """
    image_base64 = body.imageBase64 if body else None

    # Both checks happen before any upstream call
    analyzer.check_preconditions(image_base64)

    items = await run_until_disconnect(request, analyzer, image_base64)
    if items is None:
        return Response(status_code=CLIENT_CLOSED_REQUEST)
    return AnalyzeImageResponse(foodItems=items)
