from __future__ import annotations

from typing import Iterable

from speaker_clips.types import SpeakerId, Utterance

EXCERPTS_PER_SPEAKER = 3


def select_excerpts(
    utterances: Iterable[Utterance],
    limit: int = EXCERPTS_PER_SPEAKER,
) -> dict[SpeakerId, list[Utterance]]:
    """Pick each speaker's longest utterances, longest first.

    ``sorted`` is stable, so equal durations keep their transcript order.
    """
    grouped: dict[SpeakerId, list[Utterance]] = {}
    for utterance in utterances:
        grouped.setdefault(utterance.speaker, []).append(utterance)

    return {
        speaker: sorted(items, key=lambda u: u.duration, reverse=True)[:limit]
        for speaker, items in grouped.items()
    }


def unique_speakers(utterances: Iterable[Utterance]) -> list[SpeakerId]:
    seen: dict[SpeakerId, None] = {}
    for utterance in utterances:
        seen.setdefault(utterance.speaker, None)
    return list(seen)
