"""Unit tests for fixed-rate subtitle cue generation."""

import math

import pytest
from pipeline.subtitle_builder import SubtitleBuilder, clean_caption_text


@pytest.mark.unit
class TestBuild:
    def test_cue_count_and_timing(self):
        builder = SubtitleBuilder(words_per_cue=3, seconds_per_cue=2.0)
        script = "Жара нагружает сердце бегунов летом. Врачи советуют пить воду"

        cues = builder.build(script)

        words = clean_caption_text(script).split()
        assert len(cues) == math.ceil(len(words) / 3)
        assert [c.index for c in cues] == list(range(1, len(cues) + 1))
        for i, cue in enumerate(cues):
            assert cue.start == pytest.approx(i * 2.0)
            assert cue.end == pytest.approx((i + 1) * 2.0)

    def test_cues_are_contiguous(self):
        builder = SubtitleBuilder(words_per_cue=2, seconds_per_cue=1.5)
        cues = builder.build("one two three four five six seven")

        for prev, nxt in zip(cues, cues[1:]):
            assert prev.end == pytest.approx(nxt.start)

    def test_words_are_preserved_in_order(self):
        builder = SubtitleBuilder(words_per_cue=3)
        script = "alpha beta gamma delta epsilon"

        cues = builder.build(script)

        assert [c.text for c in cues] == ["alpha beta gamma", "delta epsilon"]

    def test_last_cue_extended_to_narration(self):
        builder = SubtitleBuilder(words_per_cue=3, seconds_per_cue=2.0)
        cues = builder.build("one two three four", narration_duration=9.5)

        assert len(cues) == 2
        assert cues[-1].start == pytest.approx(2.0)
        assert cues[-1].end == pytest.approx(9.5)

    def test_last_cue_not_shortened(self):
        builder = SubtitleBuilder(words_per_cue=3, seconds_per_cue=2.0)
        cues = builder.build("one two three four", narration_duration=1.0)

        assert cues[-1].end == pytest.approx(4.0)

    def test_empty_script(self):
        assert SubtitleBuilder().build("") == []
        assert SubtitleBuilder().build("   \n ") == []

    def test_unsafe_characters_removed(self):
        cues = SubtitleBuilder(words_per_cue=10).build("Привет 🚀 мир! <b>жара</b>")

        assert len(cues) == 1
        assert "🚀" not in cues[0].text
        assert "<" not in cues[0].text
        assert cues[0].text.startswith("Привет мир!")

    @pytest.mark.parametrize("words,seconds", [(0, 2.0), (3, 0), (3, -1.0)])
    def test_invalid_parameters(self, words, seconds):
        with pytest.raises(ValueError):
            SubtitleBuilder(words_per_cue=words, seconds_per_cue=seconds)


@pytest.mark.unit
class TestSrt:
    def test_to_srt_format(self):
        builder = SubtitleBuilder(words_per_cue=2, seconds_per_cue=2.0)
        cues = builder.build("first cue second cue")

        srt = builder.to_srt(cues)

        assert "00:00:00,000 --> 00:00:02,000" in srt
        assert "00:00:02,000 --> 00:00:04,000" in srt
        assert "first cue" in srt
        assert "second cue" in srt

    def test_save_writes_file(self, temp_dir):
        builder = SubtitleBuilder()
        cues = builder.build("Жара и бег летом")

        path = builder.save(cues, temp_dir / "nested" / "subs.srt")

        assert path.exists()
        content = path.read_text(encoding="utf-8")
        assert "Жара и бег" in content
