"""Transcript segments: consecutive words of one speaker."""
import math
from dataclasses import asdict, dataclass
from typing import Iterable, Mapping

DEFAULT_SPEAKER = "speaker_0"


@dataclass
class Segment:
    speaker: str
    start: float
    end: float
    text: str

    def to_dict(self) -> dict:
        return asdict(self)


def speaker_label(speaker: str) -> str:
    """'speaker_1' -> 'Pessoa 1'."""
    return speaker.replace("speaker_", "Pessoa ")


def group_words(words: Iterable[Mapping]) -> tuple[list[Segment], int]:
    """Group diarized words into speaker segments.

    Returns (segments, number of distinct speakers).
    """
    segments: list[Segment] = []
    speakers: set[str] = set()
    current = None
    current_speaker = None

    for word in words:
        speaker = word.get("speaker") or DEFAULT_SPEAKER
        speakers.add(speaker)
        if current is None or speaker != current_speaker:
            if current is not None:
                segments.append(current)
            current = Segment(speaker_label(speaker), word["start"], word["end"], word["text"])
            current_speaker = speaker
        else:
            current.end = word["end"]
            current.text += " " + word["text"]

    if current is not None:
        segments.append(current)
    return segments, len(speakers)


def duration_seconds(words: list[Mapping]) -> int:
    """Duration rounded up from the end of the last word."""
    return math.ceil(words[-1]["end"]) if words else 0
