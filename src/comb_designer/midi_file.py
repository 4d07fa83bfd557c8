from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from comb_designer.note_timeline import Note, Track, sort_notes

logger = logging.getLogger(__name__)

DEFAULT_TICKS_PER_BEAT = 480


@dataclass(frozen=True)
class MidiSong:
    """Parsed MIDI content normalized into per-track note lists.

    ``tracks`` holds only tracks that contain at least one note, in file order.
    ``ticks_per_beat`` is the timing resolution used to convert ticks to beats.
    """

    tracks: list[Track]
    ticks_per_beat: int


@dataclass(frozen=True)
class _TrackEvents:
    name: str | None
    # (tick, kind, channel, note), kind: 1=on, 0=off
    note_events: list[tuple[int, int, int, int]]
    max_tick: int


def _read_u16_be(data: bytes, offset: int) -> tuple[int, int]:
    if offset + 2 > len(data):
        raise ValueError("Unexpected EOF while reading u16.")
    return int.from_bytes(data[offset : offset + 2], "big"), offset + 2


def _read_u32_be(data: bytes, offset: int) -> tuple[int, int]:
    if offset + 4 > len(data):
        raise ValueError("Unexpected EOF while reading u32.")
    return int.from_bytes(data[offset : offset + 4], "big"), offset + 4


def _read_var_len(data: bytes, offset: int) -> tuple[int, int]:
    value = 0
    for _ in range(4):
        if offset >= len(data):
            raise ValueError("Unexpected EOF while reading var-len integer.")
        b = data[offset]
        offset += 1
        value = (value << 7) | (b & 0x7F)
        if (b & 0x80) == 0:
            return value, offset
    raise ValueError("Invalid var-len integer (too long).")


def _parse_track_events(track: bytes) -> _TrackEvents:
    offset = 0
    abs_tick = 0
    running_status: int | None = None
    name: str | None = None
    note_events: list[tuple[int, int, int, int]] = []

    while offset < len(track):
        delta, offset = _read_var_len(track, offset)
        abs_tick += delta
        if offset >= len(track):
            break

        first_data_byte: int | None = None
        status = track[offset]
        if status < 0x80:
            if running_status is None:
                raise ValueError("Running-status data byte encountered without status.")
            first_data_byte = status
            status = running_status
        else:
            offset += 1
            if status < 0xF0:
                running_status = status
            else:
                running_status = None

        if status == 0xFF:
            if offset >= len(track):
                raise ValueError("Unexpected EOF in meta event.")
            meta_type = track[offset]
            offset += 1
            size, offset = _read_var_len(track, offset)
            payload = track[offset : offset + size]
            if len(payload) != size:
                raise ValueError("Unexpected EOF in meta payload.")
            offset += size
            if meta_type == 0x03 and name is None:
                try:
                    name = payload.decode("utf-8")
                except UnicodeDecodeError:
                    logger.debug("Ignoring non UTF-8 track name %r", payload)
            if meta_type == 0x2F:
                break
            continue

        if status in (0xF0, 0xF7):
            size, offset = _read_var_len(track, offset)
            payload = track[offset : offset + size]
            if len(payload) != size:
                raise ValueError("Unexpected EOF in sysex event.")
            offset += size
            continue

        message_type = status & 0xF0
        channel = status & 0x0F

        if message_type in (0x80, 0x90, 0xA0, 0xB0, 0xE0):
            if first_data_byte is None:
                if offset >= len(track):
                    raise ValueError("Unexpected EOF in MIDI event data.")
                data1 = track[offset]
                offset += 1
            else:
                data1 = first_data_byte
            if offset >= len(track):
                raise ValueError("Unexpected EOF in MIDI event data.")
            data2 = track[offset]
            offset += 1

            if message_type == 0x80:
                note_events.append((abs_tick, 0, channel, data1))
            elif message_type == 0x90:
                kind = 0 if data2 == 0 else 1
                note_events.append((abs_tick, kind, channel, data1))
            continue

        if message_type in (0xC0, 0xD0):
            if first_data_byte is None:
                if offset >= len(track):
                    raise ValueError("Unexpected EOF in MIDI event data.")
                offset += 1
            continue

        raise ValueError(f"Unsupported MIDI status byte: 0x{status:02X}")

    return _TrackEvents(name=name, note_events=note_events, max_tick=abs_tick)


def _pair_notes(events: _TrackEvents, ticks_per_beat: int) -> list[Note]:
    active: dict[tuple[int, int], list[int]] = {}
    notes: list[Note] = []

    def to_note(key: int, start_tick: int, end_tick: int) -> Note:
        return Note(
            pitch=key,
            start_time=start_tick / ticks_per_beat,
            duration=(end_tick - start_tick) / ticks_per_beat,
        )

    for tick, kind, channel, key in events.note_events:
        slot = (channel, key)
        if kind == 1:
            active.setdefault(slot, []).append(tick)
            continue
        queue = active.get(slot)
        if not queue:
            continue
        start_tick = queue.pop(0)
        if not queue:
            del active[slot]
        notes.append(to_note(key, start_tick, tick))

    for (_channel, key), queue in active.items():
        for start_tick in queue:
            notes.append(to_note(key, start_tick, events.max_tick))
    return notes


def load_midi_tracks(path: str | Path) -> MidiSong:
    data = Path(path).read_bytes()
    offset = 0

    if data[offset : offset + 4] != b"MThd":
        raise ValueError("Invalid MIDI header chunk.")
    offset += 4
    header_len, offset = _read_u32_be(data, offset)
    if header_len < 6:
        raise ValueError("Invalid MIDI header length.")
    fmt, offset = _read_u16_be(data, offset)
    n_tracks, offset = _read_u16_be(data, offset)
    division, offset = _read_u16_be(data, offset)
    offset += header_len - 6

    if fmt not in (0, 1):
        raise ValueError(f"Unsupported MIDI format: {fmt}")
    if division & 0x8000:
        logger.warning("SMPTE time division; assuming %d ticks per beat.", DEFAULT_TICKS_PER_BEAT)
        ticks_per_beat = DEFAULT_TICKS_PER_BEAT
    else:
        ticks_per_beat = int(division)
    if ticks_per_beat <= 0:
        raise ValueError("Invalid ticks-per-quarter value.")

    tracks: list[Track] = []
    for i in range(n_tracks):
        if data[offset : offset + 4] != b"MTrk":
            raise ValueError("Invalid MIDI track chunk header.")
        offset += 4
        track_len, offset = _read_u32_be(data, offset)
        track = data[offset : offset + track_len]
        if len(track) != track_len:
            raise ValueError("Unexpected EOF while reading MIDI track.")
        offset += track_len

        events = _parse_track_events(track)
        # Note-offs first so a retriggered key closes the previous note.
        events.note_events.sort(key=lambda ev: (ev[0], ev[1]))
        notes = _pair_notes(events, ticks_per_beat)
        if not notes:
            continue
        tracks.append(Track(name=events.name or f"Track {i}", notes=sort_notes(notes)))

    logger.info("Loaded %d track(s) with notes from %s", len(tracks), path)
    return MidiSong(tracks=tracks, ticks_per_beat=ticks_per_beat)
