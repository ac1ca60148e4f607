import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from foodcal.parsing.identify import strip_list_marker
from foodcal.schemas.analyze import IdentifiedFood, NutritionRecord

NUTRITION_SYSTEM_PROMPT = "You are a helpful assistant that provides nutrition information for food items."

NUTRIENT_FIELDS = ("calories", "protein", "fat", "carbs", "fiber")

# Longer labels first so "碳水化合物" wins over "碳水"
_FIELD_LABELS = {
    "calories": r"卡路里|热量|能量|calories|calorie|energy",
    "protein": r"蛋白质|蛋白|protein",
    "fat": r"脂肪|fat",
    "carbs": r"碳水化合物|碳水|carbohydrates|carbohydrate|carbs",
    "fiber": r"膳食纤维|纤维素|纤维|dietary fiber|fiber|fibre",
}

_VALUE = r"\s*[=:：]?\s*([^，,;；、。\n]+)"

_FIELD_PATTERNS = {
    name: re.compile(rf"(?:{labels}){_VALUE}", re.IGNORECASE)
    for name, labels in _FIELD_LABELS.items()
}

# Leading food name: everything up to the first colon or open parenthesis
_NAME_PATTERN = re.compile(r"^([^:：(（]+)[:：(（]")


class NutrientFailure(Enum):
    PARSE_FAILED = "parse failed"
    FETCH_FAILED = "fetch failed"


NutrientValue = Union[str, NutrientFailure]


@dataclass
class FoodNutrients:
    food: IdentifiedFood
    values: Dict[str, NutrientValue] = field(default_factory=dict)

    def failed(self, kind: NutrientFailure) -> bool:
        return all(self.values.get(f) is kind for f in NUTRIENT_FIELDS)


def _all(kind: NutrientFailure) -> Dict[str, NutrientValue]:
    return {f: kind for f in NUTRIENT_FIELDS}


def build_nutrition_prompt(foods: List[IdentifiedFood]) -> str:
    listing = "、".join(f"{f.name} ({f.weight})" for f in foods)
    return (
        f"请分别估算以下每种食物按给定份量的营养成分：{listing}。\n"
        "请每行只写一种食物，严格按照以下格式回答，不要输出其他内容：\n"
        "食物名称 (份量)：卡路里X大卡，蛋白质Y克，脂肪Z克，碳水化合物W克，膳食纤维V克"
    )


def build_nutrition_messages(foods: List[IdentifiedFood]) -> List[Dict[str, Any]]:
    return [
        {
            "role": "system",
            "content": [{"type": "text", "text": NUTRITION_SYSTEM_PROMPT}],
        },
        {
            "role": "user",
            "content": [{"type": "text", "text": build_nutrition_prompt(foods)}],
        },
    ]


def parse_nutrition_line(line: str) -> Optional[tuple]:
    """
    Returns (name, {field: value}) for one response line, or None when the
    line has no leading "name：" / "name (" part.
    """
    entry = strip_list_marker(line.strip())
    m = _NAME_PATTERN.match(entry)
    if not m:
        return None

    name = m.group(1).strip().strip("*").strip()
    if not name:
        return None

    rest = entry[m.end():]
    values: Dict[str, NutrientValue] = {}
    for field_name, pattern in _FIELD_PATTERNS.items():
        fm = pattern.search(rest)
        value = fm.group(1).strip() if fm else ""
        values[field_name] = value or NutrientFailure.PARSE_FAILED
    return name, values


def parse_nutrition_lines(text: str, keep: str = "last") -> Dict[str, Dict[str, NutrientValue]]:
    """
    name -> nutrient values for every line that starts with a food name.

    keep="last": a later line for the same name replaces the earlier one.
    keep="first": the first line for a name sticks.
    """
    mapping: Dict[str, Dict[str, NutrientValue]] = {}
    for line in (text or "").splitlines():
        parsed = parse_nutrition_line(line)
        if parsed is None:
            continue
        name, values = parsed
        if keep == "first" and name in mapping:
            continue
        mapping[name] = values
    return mapping


def estimate_nutrients(
    foods: List[IdentifiedFood],
    text: Optional[str],
    keep: str = "last",
) -> List[FoodNutrients]:
    """
    Joins the text model's reply back onto the identified foods, in their order.

    No text at all -> every field FETCH_FAILED.
    Food missing from the reply -> every field PARSE_FAILED.
    """
    if not text:
        return [FoodNutrients(food=f, values=_all(NutrientFailure.FETCH_FAILED)) for f in foods]

    mapping = parse_nutrition_lines(text, keep=keep)
    results: List[FoodNutrients] = []
    for f in foods:
        values = mapping.get(f.name)
        if values is None:
            values = _all(NutrientFailure.PARSE_FAILED)
        results.append(FoodNutrients(food=f, values=dict(values)))
    return results


def _display(value: NutrientValue) -> str:
    if isinstance(value, NutrientFailure):
        return value.value
    return value


def to_records(results: List[FoodNutrients]) -> List[NutritionRecord]:
    return [
        NutritionRecord(
            name=r.food.name,
            weight=r.food.weight,
            **{f: _display(r.values.get(f, NutrientFailure.PARSE_FAILED)) for f in NUTRIENT_FIELDS},
        )
        for r in results
    ]
