"""宽松 JSON 解析测试。"""

from scenescout.annotate.parsing import parse_json_loosely


def test_plain_json() -> None:
    assert parse_json_loosely('{"mood": "calm"}') == {"mood": "calm"}


def test_code_fence_and_comments() -> None:
    text = """```json
    {
      "mood": "tense", // inline note
      /* block */
      "keywords": ["rain", "neon"]
    }
    ```"""

    assert parse_json_loosely(text) == {"mood": "tense", "keywords": ["rain", "neon"]}


def test_surrounding_prose_is_dropped() -> None:
    text = 'Here is the analysis: {"mood": "warm"} Hope it helps.'

    assert parse_json_loosely(text) == {"mood": "warm"}


def test_missing_commas_are_repaired() -> None:
    text = '{"keywords": ["a" "b"], "objects": [{"label": "car"} {"label": "tree"}], "n": 3 "ok": true "x": null}'

    parsed = parse_json_loosely(text)

    assert parsed["keywords"] == ["a", "b"]
    assert parsed["objects"] == [{"label": "car"}, {"label": "tree"}]
    assert parsed["n"] == 3
    assert parsed["ok"] is True


def test_trailing_commas_removed() -> None:
    assert parse_json_loosely('{"keywords": ["a", "b",],}') == {"keywords": ["a", "b"]}


def test_unparseable_returns_empty_dict() -> None:
    assert parse_json_loosely("not json at all") == {}
    assert parse_json_loosely("") == {}
