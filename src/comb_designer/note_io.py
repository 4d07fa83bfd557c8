from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from comb_designer.note_timeline import Note, Track, sort_notes


def _parse_pitch(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"pitch must be a number, got {value!r}.")
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"pitch must be a whole number, got {value!r}.")
    return int(value)


def _parse_notes(raw: Any, where: str) -> list[Note]:
    if not isinstance(raw, list):
        raise ValueError(f"{where} must be a list.")
    notes: list[Note] = []
    for idx, item in enumerate(raw):
        if not isinstance(item, dict):
            raise ValueError(f"{where} item {idx} must be an object.")
        try:
            notes.append(
                Note(
                    pitch=_parse_pitch(item["pitch"]),
                    start_time=float(item["start_time"]),
                    duration=float(item["duration"]),
                )
            )
        except KeyError as exc:
            raise ValueError(f"{where} item {idx} is missing {exc.args[0]!r}.") from exc
        except (TypeError, ValueError) as exc:
            raise ValueError(f"{where} item {idx} is invalid: {exc}") from exc
    return notes


def load_tracks_json(path: str | Path) -> list[Track]:
    """Read tracks from JSON.

    Accepts either a bare list of ``{pitch, start_time, duration}`` objects
    (a single track) or ``{"tracks": [{"name": ..., "notes": [...]}, ...]}``.
    Tracks without notes are dropped.
    """
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(raw, list):
        notes = _parse_notes(raw, "Notes JSON")
        return [Track(name="Track 0", notes=sort_notes(notes))] if notes else []

    if not isinstance(raw, dict) or "tracks" not in raw:
        raise ValueError("Notes JSON must be a list or an object with a 'tracks' list.")
    raw_tracks = raw["tracks"]
    if not isinstance(raw_tracks, list):
        raise ValueError("Notes JSON 'tracks' must be a list.")

    tracks: list[Track] = []
    for idx, item in enumerate(raw_tracks):
        if not isinstance(item, dict):
            raise ValueError(f"Notes JSON track {idx} must be an object.")
        notes = _parse_notes(item.get("notes", []), f"Notes JSON track {idx} notes")
        if not notes:
            continue
        tracks.append(Track(name=str(item.get("name", f"Track {idx}")), notes=sort_notes(notes)))
    return tracks
