from __future__ import annotations

from bisect import bisect_left, insort
from dataclasses import dataclass, replace
from enum import Enum, IntEnum
from typing import Callable, Iterable

from comb_designer.note_timeline import Note
from comb_designer.spacing_model import tooth_spacing

# Beats. Sweep advances and boundary gaps below this are treated as zero.
TIME_EPSILON = 1e-9
# Pixels. Adjacent segments closer than this in spacing are merged.
SPACING_EPSILON = 1e-9


class EventKind(IntEnum):
    OFF = 0
    ON = 1


class TieBreak(str, Enum):
    """Order in which events sharing a timestamp are applied."""

    OFF_BEFORE_ON = "off_before_on"
    ON_BEFORE_OFF = "on_before_off"


DEFAULT_TIE_BREAK = TieBreak.OFF_BEFORE_ON


@dataclass(frozen=True)
class NoteEvent:
    time: float
    kind: EventKind
    pitch: int


@dataclass(frozen=True)
class CombSegment:
    """Time range in beats sharing one tooth spacing.

    ``pitch`` is the governing pitch the spacing was derived from.
    """

    start_time: float
    end_time: float
    spacing: float
    pitch: int


class ActivePitchSet:
    """Sorted multiset of the pitches currently sounding."""

    def __init__(self) -> None:
        self._pitches: list[int] = []

    def __len__(self) -> int:
        return len(self._pitches)

    def add(self, pitch: int) -> None:
        insort(self._pitches, pitch)

    def remove(self, pitch: int) -> bool:
        idx = bisect_left(self._pitches, pitch)
        if idx >= len(self._pitches) or self._pitches[idx] != pitch:
            return False
        del self._pitches[idx]
        return True

    def highest(self) -> int:
        return self._pitches[-1]


def highest_pitch_wins(active: ActivePitchSet) -> int:
    return active.highest()


GOVERNING_PITCH_RULE: Callable[[ActivePitchSet], int] = highest_pitch_wins


def note_events(notes: Iterable[Note]) -> list[NoteEvent]:
    events: list[NoteEvent] = []
    for note in notes:
        # [t, t) is empty; an unmatched On/Off pair would leave a stuck pitch.
        if note.duration <= 0:
            continue
        events.append(NoteEvent(time=note.start_time, kind=EventKind.ON, pitch=note.pitch))
        events.append(NoteEvent(time=note.end_time, kind=EventKind.OFF, pitch=note.pitch))
    return events


def sort_events(events: list[NoteEvent], tie_break: TieBreak = DEFAULT_TIE_BREAK) -> list[NoteEvent]:
    if tie_break == TieBreak.OFF_BEFORE_ON:
        rank = {EventKind.OFF: 0, EventKind.ON: 1}
    else:
        rank = {EventKind.ON: 0, EventKind.OFF: 1}
    return sorted(events, key=lambda ev: (ev.time, rank[ev.kind], ev.pitch))


def sweep_segments(
    events: list[NoteEvent],
    reference_pitch: int,
    reference_spacing: float,
    governing_pitch: Callable[[ActivePitchSet], int] = GOVERNING_PITCH_RULE,
) -> list[CombSegment]:
    """Cut sorted events into provisional segments, one per event interval.

    Intervals where nothing sounds produce no segment.
    """
    segments: list[CombSegment] = []
    active = ActivePitchSet()
    marker = events[0].time if events else 0.0

    for ev in events:
        if len(active) == 0:
            marker = ev.time
        elif ev.time - marker > TIME_EPSILON:
            pitch = governing_pitch(active)
            segments.append(
                CombSegment(
                    start_time=marker,
                    end_time=ev.time,
                    spacing=tooth_spacing(pitch, reference_pitch, reference_spacing),
                    pitch=pitch,
                )
            )
            marker = ev.time

        if ev.kind == EventKind.ON:
            active.add(ev.pitch)
        else:
            active.remove(ev.pitch)

    return segments


def merge_segments(segments: list[CombSegment]) -> list[CombSegment]:
    if not segments:
        return []

    merged: list[CombSegment] = []
    current = segments[0]
    for nxt in segments[1:]:
        same_spacing = abs(nxt.spacing - current.spacing) < SPACING_EPSILON
        contiguous = abs(nxt.start_time - current.end_time) < TIME_EPSILON
        if same_spacing and contiguous:
            current = replace(current, end_time=nxt.end_time)
        else:
            merged.append(current)
            current = nxt
    merged.append(current)
    return merged


def build_segments(
    notes: Iterable[Note],
    reference_pitch: int,
    reference_spacing: float,
    tie_break: TieBreak = DEFAULT_TIE_BREAK,
) -> list[CombSegment]:
    """Minimal ordered segment sequence covering every sounding interval.

    The highest sounding pitch governs each instant, including notes that
    start together. Deterministic for a given note list and calibration.
    """
    events = sort_events(note_events(notes), tie_break=tie_break)
    provisional = sweep_segments(events, reference_pitch, reference_spacing)
    return merge_segments(provisional)
