import re
from typing import Any, Dict, List

from foodcal.schemas.analyze import IdentifiedFood, UNKNOWN_FOOD, UNKNOWN_QUANTITY

IDENTIFY_SYSTEM_PROMPT = "You are a helpful assistant that identifies food items in an image."

FIELDED_INSTRUCTION = (
    "这张图片中有什么食物？请每行列出一种食物，并估计它的份量，"
    "格式为“食物名称，估计份量”，例如：\n"
    "苹果，约150克\n"
    "香蕉，约100克\n"
    "不要输出任何其他内容。"
)

SIMPLE_INSTRUCTION = "这张图片中有什么食物？请列出所有食物的名称，以逗号分隔。"

# Full-width and ASCII commas
COMMA_CLASS = r"[，,]"

# "- ", "* ", "• ", "1. ", "2) ", "3、"
_LIST_MARKER = re.compile(r"^(?:[-*•·]+|\d+\s*(?:[)、．]|\.(?!\d)))\s*")


def strip_list_marker(entry: str) -> str:
    return _LIST_MARKER.sub("", entry, count=1).strip()


def build_identify_messages(image_data_url: str, mode: str = "fielded") -> List[Dict[str, Any]]:
    """
    Chat messages for the vision model: system role, then the image and the
    instruction as parts of a single user turn.
    """
    instruction = SIMPLE_INSTRUCTION if mode == "simple" else FIELDED_INSTRUCTION
    return [
        {
            "role": "system",
            "content": [{"type": "text", "text": IDENTIFY_SYSTEM_PROMPT}],
        },
        {
            "role": "user",
            "content": [
                {"type": "image_url", "image_url": {"url": image_data_url}},
                {"type": "text", "text": instruction},
            ],
        },
    ]


def _parse_fielded(text: str) -> List[IdentifiedFood]:
    foods: List[IdentifiedFood] = []
    for line in text.splitlines():
        entry = line.strip()
        if not entry:
            continue
        entry = strip_list_marker(entry)

        parts = re.split(COMMA_CLASS, entry, maxsplit=1)
        name = parts[0].strip()
        weight = parts[1].strip() if len(parts) > 1 else ""

        foods.append(
            IdentifiedFood(
                name=name or UNKNOWN_FOOD,
                weight=weight or UNKNOWN_QUANTITY,
            )
        )
    return foods


def _parse_simple(text: str) -> List[IdentifiedFood]:
    foods: List[IdentifiedFood] = []
    for segment in re.split(rf"{COMMA_CLASS}|\n", text):
        name = strip_list_marker(segment.strip())
        if not name:
            continue
        foods.append(IdentifiedFood(name=name, weight=UNKNOWN_QUANTITY))
    return foods


def parse_identified_foods(text: str, mode: str = "fielded") -> List[IdentifiedFood]:
    """
    Turns the vision model's free text into IdentifiedFood entries.

    fielded: one entry per non-empty line, "name，weight" split on the first comma.
    simple:  comma (or newline) separated names, weight always unknown.

    Order follows the model output; duplicates are kept.
    """
    if not text:
        return []
    if mode == "simple":
        return _parse_simple(text)
    return _parse_fielded(text)
