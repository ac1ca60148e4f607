from pydantic import BaseModel
from typing import Optional, List

UNKNOWN_FOOD = "unknown food"
UNKNOWN_QUANTITY = "unknown quantity"


class IdentifiedFood(BaseModel):
    name: str
    weight: str = UNKNOWN_QUANTITY  # e.g. "约150克"


class NutritionRecord(BaseModel):
    name: str
    weight: str
    calories: str   # e.g. "80大卡", or "parse failed" / "fetch failed"
    protein: str
    fat: str
    carbs: str
    fiber: str


class AnalyzeImageRequest(BaseModel):
    # Optional so a missing field yields our own 400 instead of a 422
    imageBase64: Optional[str] = None


class AnalyzeImageResponse(BaseModel):
    foodItems: List[NutritionRecord]


class ErrorResponse(BaseModel):
    error: str
