from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Iterator

from comb_designer.comb_segments import DEFAULT_TIE_BREAK, CombSegment, TieBreak, build_segments
from comb_designer.configuration import CombCalibration
from comb_designer.midi_file import load_midi_tracks
from comb_designer.note_io import load_tracks_json
from comb_designer.note_timeline import Note, Track
from comb_designer.svg_export import write_comb_svg
from comb_designer.tooth_emitter import emit_teeth

logger = logging.getLogger(__name__)

NO_FILE_LABEL = "No file loaded"
EXPORT_OK_STATUS = "SVG Exported successfully."
# Pixels kept visible before the first note after "jump to start".
JUMP_MARGIN_PX = 50.0
# Pixels of empty timeline after the last note.
TIMELINE_PADDING_PX = 100.0


@dataclass(frozen=True)
class CombContext:
    """Immutable snapshot of everything the comb computation reads."""

    notes: tuple[Note, ...]
    calibration: CombCalibration
    tie_break: TieBreak = DEFAULT_TIE_BREAK

    def segments(self) -> list[CombSegment]:
        return build_segments(
            self.notes,
            reference_pitch=self.calibration.reference_pitch,
            reference_spacing=self.calibration.reference_spacing,
            tie_break=self.tie_break,
        )

    def teeth(self, origin: float = 0.0, until: float | None = None) -> Iterator[float]:
        return emit_teeth(self.segments(), self.calibration.px_per_beat, origin=origin, until=until)


class CombSession:
    """Application state of the designer: loaded tracks, selection, calibration and view."""

    def __init__(
        self,
        calibration: CombCalibration | None = None,
        tie_break: TieBreak = DEFAULT_TIE_BREAK,
    ) -> None:
        self.tracks: list[Track] | None = None
        self.selected_track = 0
        self.calibration = calibration or CombCalibration()
        self.tie_break = tie_break
        self.file_path = NO_FILE_LABEL
        self.export_status = ""
        self.scroll_offset = 0.0

    def set_tracks(self, tracks: list[Track], source: str) -> None:
        self.tracks = list(tracks)
        self.file_path = source
        self.selected_track = 0
        self.scroll_offset = 0.0

    def load_midi(self, path: str | Path) -> bool:
        try:
            song = load_midi_tracks(path)
        except (OSError, ValueError) as exc:
            logger.warning("Could not load MIDI file %s: %s", path, exc)
            return False
        self.set_tracks(song.tracks, str(path))
        return True

    def load_json(self, path: str | Path) -> bool:
        try:
            tracks = load_tracks_json(path)
        except (OSError, ValueError) as exc:
            logger.warning("Could not load notes JSON %s: %s", path, exc)
            return False
        self.set_tracks(tracks, str(path))
        return True

    def load_source(self, path: str | Path) -> bool:
        if Path(path).suffix.lower() == ".json":
            return self.load_json(path)
        return self.load_midi(path)

    def current_track(self) -> Track | None:
        if not self.tracks:
            return None
        if not (0 <= self.selected_track < len(self.tracks)):
            return None
        return self.tracks[self.selected_track]

    def select_track(self, index: int) -> bool:
        if not self.tracks or not (0 <= index < len(self.tracks)):
            return False
        self.selected_track = index
        return True

    def track_labels(self) -> list[str]:
        return [f"{i}: {track.name} ({len(track.notes)} notes)" for i, track in enumerate(self.tracks or [])]

    def set_calibration(self, **changes: Any) -> CombCalibration:
        self.calibration = replace(self.calibration, **changes)
        return self.calibration

    def snapshot(self) -> CombContext:
        track = self.current_track()
        notes = track.notes if track is not None else ()
        return CombContext(notes=notes, calibration=self.calibration, tie_break=self.tie_break)

    def segments(self) -> list[CombSegment]:
        return self.snapshot().segments()

    def teeth(self, origin: float = 0.0, until: float | None = None) -> Iterator[float]:
        return self.snapshot().teeth(origin=origin, until=until)

    def timeline_width(self, min_width: float) -> float:
        track = self.current_track()
        last_end = track.last_end() if track is not None else None
        if last_end is None:
            return min_width
        return max(min_width, last_end * self.calibration.px_per_beat + TIMELINE_PADDING_PX)

    def jump_to_notes_start(self) -> float | None:
        track = self.current_track()
        first = track.first_start() if track is not None else None
        if first is None:
            return None
        self.scroll_offset = max(0.0, first * self.calibration.px_per_beat - JUMP_MARGIN_PX)
        return self.scroll_offset

    def export_svg(self, path: str | Path, **svg_options: Any) -> bool:
        try:
            write_comb_svg(path, self.segments(), self.calibration.px_per_beat, **svg_options)
        except OSError as exc:
            logger.warning("SVG export to %s failed: %s", path, exc)
            self.export_status = f"SVG export failed: {exc}"
            return False
        self.export_status = EXPORT_OK_STATUS
        return True
