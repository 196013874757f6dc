import pytest
from pydantic import ValidationError

from podcast_engine.domain.dialogue import PodcastScript
from podcast_engine.domain.schema_bridge import to_validator

OUTPUT_SCHEMA = {
    "type": "object",
    "properties": {
        "title": {"type": "string"},
        "summary": {"type": "string"},
        "tags": {"type": "array", "items": {"type": "string"}},
        "dialogue": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {"speaker": {"type": "string"}, "line": {"type": "string"}},
                "required": ["speaker", "line"],
            },
        },
    },
    "required": ["title", "summary", "tags", "dialogue"],
}


def _payload(**overrides: object) -> dict[str, object]:
    payload: dict[str, object] = {
        "title": "Episode",
        "summary": "Short summary.",
        "tags": ["markets"],
        "dialogue": [
            {"speaker": "Alex", "line": "Hello."},
            {"speaker": "Sam", "line": "Hi."},
            {"speaker": "Alex", "line": "Let's start."},
        ],
    }
    payload.update(overrides)
    return payload


def test_from_validated_accepts_schema_bridge_model() -> None:
    validated = to_validator(OUTPUT_SCHEMA).validate(_payload())

    script = PodcastScript.from_validated(validated)

    assert script.title == "Episode"
    assert [entry.line for entry in script.dialogue] == ["Hello.", "Hi.", "Let's start."]
    assert script.speakers() == ["Alex", "Sam"]


def test_from_validated_accepts_plain_mapping() -> None:
    script = PodcastScript.from_validated(_payload())

    assert script.tags == ["markets"]


@pytest.mark.parametrize(
    "overrides",
    [
        {"dialogue": []},
        {"tags": []},
        {"summary": "x" * 301},
        {"dialogue": [{"speaker": "", "line": "Hello."}]},
    ],
)
def test_script_rejects_unusable_content(overrides: dict[str, object]) -> None:
    with pytest.raises(ValidationError):
        PodcastScript.from_validated(_payload(**overrides))
