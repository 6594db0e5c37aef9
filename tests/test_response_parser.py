# tests/test_response_parser.py
from newsdesk.backend.generation.response_parser import extract_json_object, parse_generation


def test_parses_fenced_json():
    result = parse_generation('```json\n{"headline": "H", "content": "C", "tags": ["a"]}\n```')
    assert result.ok
    assert result.value.headline == "H"
    assert result.value.tags == ["a"]


def test_ignores_chatter_around_the_object():
    result = parse_generation('Sure! Here is the article:\n{"headline": "H", "content": "C"}\nHope this helps {:')
    assert result.ok
    assert result.value.content == "C"


def test_braces_inside_strings_do_not_end_the_object():
    text = '{"headline": "Price {up}", "content": "a } b"} trailing'
    assert extract_json_object(text) == '{"headline": "Price {up}", "content": "a } b"}'


def test_raw_newlines_inside_strings_are_tolerated():
    result = parse_generation('{"headline": "H", "content": "line one\nline two"}')
    assert result.ok
    assert result.value.content == "line one\nline two"


def test_image_prompt_alias_and_comma_separated_tags():
    result = parse_generation('{"headline": "H", "content": "C", "tags": "mandi, jeera ,", "image_prompt": "field"}')
    assert result.value.image_keyword == "field"
    assert result.value.tags == ["mandi", "jeera"]


def test_empty_response_is_a_failure():
    assert parse_generation("").reason == "empty response"
    assert not parse_generation(None).ok


def test_missing_object_is_a_failure():
    result = parse_generation("I cannot help with that.")
    assert not result.ok
    assert "no JSON" in result.reason


def test_truncated_object_is_a_failure():
    assert not parse_generation('{"headline": "H", "content": "cut of').ok


def test_invalid_json_is_a_failure():
    result = parse_generation("{'headline': 'single quotes'}")
    assert not result.ok
    assert result.reason.startswith("invalid JSON")


def test_missing_required_fields_is_a_failure():
    result = parse_generation('{"headline": "  ", "tags": []}')
    assert not result.ok
    assert "headline" in result.reason
    assert "content" in result.reason
