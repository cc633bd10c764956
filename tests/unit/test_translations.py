"""Unit tests for the topic translation table."""

import json

import pytest
from pipeline.translations import (
    DEFAULT_TOPIC_TRANSLATIONS,
    TopicTranslator,
    load_topic_translations,
)


@pytest.mark.unit
class TestTopicTranslator:
    def test_lookup_is_case_insensitive(self):
        translator = TopicTranslator()

        assert translator.lookup("Жара") == "summer heat weather"
        assert translator.lookup("  бег ") == "running jogging"
        assert translator.lookup("неизвестно") is None

    def test_translate_whole_words_only(self):
        translator = TopicTranslator()

        # "бегун" contains "бег" but is a different word
        assert translator.translate("Бегун") == "бегун"
        assert translator.translate("Бег по утрам") == "running jogging по утрам"

    def test_phrase_wins_over_single_word(self):
        translator = TopicTranslator(
            {"интеллект": "intellect", "искусственный интеллект": "artificial intelligence"}
        )

        assert translator.translate("Искусственный интеллект") == "artificial intelligence"

    def test_empty_table(self):
        translator = TopicTranslator({})

        assert translator.translate("Жара") == "жара"
        assert translator.lookup("жара") is None


@pytest.mark.unit
class TestLoadTopicTranslations:
    def test_defaults_without_file(self):
        assert load_topic_translations(None) == DEFAULT_TOPIC_TRANSLATIONS

    def test_file_overrides_and_extends(self, temp_dir):
        path = temp_dir / "topics.json"
        path.write_text(
            json.dumps({"Жара": "heatwave", "степь": "steppe grassland"}, ensure_ascii=False),
            encoding="utf-8",
        )

        table = load_topic_translations(path)

        assert table["жара"] == "heatwave"
        assert table["степь"] == "steppe grassland"
        assert table["бег"] == DEFAULT_TOPIC_TRANSLATIONS["бег"]

    def test_missing_file_keeps_defaults(self, temp_dir, caplog):
        with caplog.at_level("WARNING", logger="pipeline.translations"):
            table = load_topic_translations(temp_dir / "missing.json")

        assert table == DEFAULT_TOPIC_TRANSLATIONS
        assert "not found" in caplog.text

    def test_malformed_json(self, temp_dir):
        path = temp_dir / "topics.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(ValueError, match="Cannot load"):
            load_topic_translations(path)

    def test_invalid_shape(self, temp_dir):
        path = temp_dir / "topics.json"
        path.write_text(json.dumps(["жара"]), encoding="utf-8")

        with pytest.raises(ValueError, match="must map strings to strings"):
            load_topic_translations(path)
