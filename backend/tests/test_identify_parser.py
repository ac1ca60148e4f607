from foodcal.parsing.identify import build_identify_messages, parse_identified_foods
from foodcal.schemas.analyze import IdentifiedFood, UNKNOWN_FOOD, UNKNOWN_QUANTITY


def test_fielded_lines_with_weights():
    foods = parse_identified_foods("苹果，约150克\n香蕉，约100克")
    assert foods == [
        IdentifiedFood(name="苹果", weight="约150克"),
        IdentifiedFood(name="香蕉", weight="约100克"),
    ]


def test_fielded_blank_lines_and_whitespace_are_dropped():
    text = "\n  米饭 ， 一碗  \n\n   \n红烧肉,约200克\n"
    foods = parse_identified_foods(text)
    assert [(f.name, f.weight) for f in foods] == [("米饭", "一碗"), ("红烧肉", "约200克")]


def test_fielded_missing_weight_uses_sentinel():
    foods = parse_identified_foods("鸡蛋\n牛奶，")
    assert [(f.name, f.weight) for f in foods] == [
        ("鸡蛋", UNKNOWN_QUANTITY),
        ("牛奶", UNKNOWN_QUANTITY),
    ]


def test_fielded_missing_name_uses_sentinel():
    foods = parse_identified_foods("，约50克")
    assert foods == [IdentifiedFood(name=UNKNOWN_FOOD, weight="约50克")]


def test_fielded_only_splits_on_first_comma():
    foods = parse_identified_foods("沙拉，生菜，番茄，约80克")
    assert foods[0].name == "沙拉"
    assert foods[0].weight == "生菜，番茄，约80克"


def test_fielded_strips_list_markers():
    foods = parse_identified_foods("1. 苹果，约150克\n2、香蕉，约100克\n- 橙子，1个")
    assert [f.name for f in foods] == ["苹果", "香蕉", "橙子"]


def test_list_marker_does_not_eat_decimal_names():
    foods = parse_identified_foods("3.5度啤酒，一瓶")
    assert foods[0].name == "3.5度啤酒"


def test_duplicates_are_kept_in_order():
    foods = parse_identified_foods("苹果，1个\n香蕉，1根\n苹果，2个")
    assert [(f.name, f.weight) for f in foods] == [("苹果", "1个"), ("香蕉", "1根"), ("苹果", "2个")]


def test_no_empty_names_or_weights():
    text = "苹果\n，\n  ，约10克\n香蕉，"
    for f in parse_identified_foods(text):
        assert f.name
        assert f.weight


def test_simple_mode_comma_list():
    foods = parse_identified_foods("苹果，香蕉, 橙子，，", mode="simple")
    assert [f.name for f in foods] == ["苹果", "香蕉", "橙子"]
    assert all(f.weight == UNKNOWN_QUANTITY for f in foods)


def test_empty_text_yields_nothing():
    assert parse_identified_foods("") == []
    assert parse_identified_foods("  \n \n") == []


def test_identify_messages_shape():
    messages = build_identify_messages("data:image/png;base64,AAAA")
    assert [m["role"] for m in messages] == ["system", "user"]

    parts = messages[1]["content"]
    assert parts[0] == {"type": "image_url", "image_url": {"url": "data:image/png;base64,AAAA"}}
    assert parts[1]["type"] == "text"
    assert "份量" in parts[1]["text"]


def test_identify_messages_simple_instruction():
    messages = build_identify_messages("data:image/png;base64,AAAA", mode="simple")
    assert "以逗号分隔" in messages[1]["content"][1]["text"]
