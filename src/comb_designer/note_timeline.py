from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class Note:
    """Time-bounded musical note consumed by the comb segment builder.

    A ``Note`` describes one note as an onset and a duration in beats, plus a
    MIDI pitch number.

    - ``pitch`` is a pitch index from 0 to 127 (for example, 60 = middle C).
    - ``start_time`` is the onset in beats from the start of the source.
    - ``duration`` is the length in beats; the note covers
      ``[start_time, start_time + duration)``.
    """

    pitch: int
    start_time: float
    duration: float

    def __post_init__(self) -> None:
        if not (0 <= self.pitch <= 127):
            raise ValueError("Note pitch must be in [0,127].")
        if not (math.isfinite(self.start_time) and math.isfinite(self.start_time + self.duration)):
            raise ValueError("Note start_time and end time must be finite.")
        if self.start_time < 0:
            raise ValueError("Note start_time must be >= 0.")
        if self.duration < 0:
            raise ValueError("Note duration must be >= 0.")

    @property
    def end_time(self) -> float:
        return self.start_time + self.duration


@dataclass(frozen=True)
class Track:
    name: str
    notes: tuple[Note, ...]

    def first_start(self) -> float | None:
        if not self.notes:
            return None
        return min(note.start_time for note in self.notes)

    def last_end(self) -> float | None:
        if not self.notes:
            return None
        return max(note.end_time for note in self.notes)


def sort_notes(notes: list[Note]) -> tuple[Note, ...]:
    return tuple(sorted(notes, key=lambda n: (n.start_time, n.pitch, n.duration)))
