"""Fixed-rate caption cues for narrated videos.

Words are grouped into small chunks shown for a constant duration each,
starting at zero. Cues never overlap and the last cue is stretched so the
captions do not end before the narration does.
"""

import logging
import math
import re
from pathlib import Path

import pysubs2

from models.segment import SubtitleCue

logger = logging.getLogger(__name__)

# Anything outside word characters, whitespace and basic punctuation is dropped
UNSAFE_CAPTION_CHARS = re.compile(r"[^\w\sА-Яа-яЁё.,!?-]")


def clean_caption_text(text: str) -> str:
    """Strip characters that cannot be rendered safely in captions."""
    return UNSAFE_CAPTION_CHARS.sub("", text).strip()


class SubtitleBuilder:
    """Builds contiguous subtitle cues from a narration script."""

    def __init__(self, words_per_cue: int = 3, seconds_per_cue: float = 2.0):
        if words_per_cue < 1:
            raise ValueError("words_per_cue must be at least 1")
        if seconds_per_cue <= 0:
            raise ValueError("seconds_per_cue must be positive")
        self.words_per_cue = words_per_cue
        self.seconds_per_cue = seconds_per_cue

    def build(self, script: str, narration_duration: float | None = None) -> list[SubtitleCue]:
        """Split the script into timed cues.

        Args:
            script: Narration script
            narration_duration: Length of the narration audio; when the cues
                would end earlier, the final cue is extended to this point

        Returns:
            Ordered cues, ``ceil(words / words_per_cue)`` of them
        """
        words = clean_caption_text(script).split()
        if not words:
            return []

        cue_count = math.ceil(len(words) / self.words_per_cue)
        cues = []
        for i in range(cue_count):
            chunk = words[i * self.words_per_cue : (i + 1) * self.words_per_cue]
            start = i * self.seconds_per_cue
            cues.append(
                SubtitleCue(
                    index=i + 1,
                    start=start,
                    end=start + self.seconds_per_cue,
                    text=" ".join(chunk),
                )
            )

        if narration_duration is not None and cues[-1].end < narration_duration:
            cues[-1].end = narration_duration

        logger.info(
            f"Built {len(cues)} subtitle cues from {len(words)} words "
            f"(covering {cues[-1].end:.1f}s)"
        )
        return cues

    def _to_ssa(self, cues: list[SubtitleCue]) -> pysubs2.SSAFile:
        subs = pysubs2.SSAFile()
        for cue in cues:
            subs.events.append(
                pysubs2.SSAEvent(
                    start=int(round(cue.start * 1000)),
                    end=int(round(cue.end * 1000)),
                    text=cue.text,
                )
            )
        return subs

    def to_srt(self, cues: list[SubtitleCue]) -> str:
        """Render cues as SRT text."""
        return self._to_ssa(cues).to_string("srt")

    def save(self, cues: list[SubtitleCue], output_path: Path) -> Path:
        """Write cues to an SRT file.

        Returns:
            The path to the written file.
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(self.to_srt(cues), encoding="utf-8")
        logger.debug(f"Saved SRT subtitle file: {output_path}")
        return output_path
