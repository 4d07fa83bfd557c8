import tempfile
import unittest
from pathlib import Path

from comb_designer.midi_file import DEFAULT_TICKS_PER_BEAT, load_midi_tracks


def _varlen(n: int) -> bytes:
    chunks = [n & 0x7F]
    n >>= 7
    while n:
        chunks.append(0x80 | (n & 0x7F))
        n >>= 7
    return bytes(reversed(chunks))


def _header(fmt: int, n_tracks: int, division: int = 480) -> bytes:
    return (
        b"MThd"
        + (6).to_bytes(4, "big")
        + fmt.to_bytes(2, "big")
        + n_tracks.to_bytes(2, "big")
        + division.to_bytes(2, "big")
    )


def _track(events: bytes) -> bytes:
    events = events + _varlen(0) + bytes([0xFF, 0x2F, 0x00])
    return b"MTrk" + len(events).to_bytes(4, "big") + events


def _name(text: str) -> bytes:
    payload = text.encode("utf-8")
    return _varlen(0) + bytes([0xFF, 0x03, len(payload)]) + payload


def _simple_midi() -> bytes:
    events = bytearray()
    events += _name("Lead")
    # Tempo 500000 us/qn at tick 0; beats do not depend on it.
    events += _varlen(0) + bytes([0xFF, 0x51, 0x03, 0x07, 0xA1, 0x20])
    events += _varlen(0) + bytes([0x90, 60, 100])
    events += _varlen(480) + bytes([0x80, 60, 0])
    # Running status, velocity-0 note-on as note-off.
    events += _varlen(240) + bytes([0x90, 64, 90])
    events += _varlen(240) + bytes([64, 0])
    return _header(0, 1) + _track(bytes(events))


def _multi_track_midi() -> bytes:
    conductor = _varlen(0) + bytes([0xFF, 0x51, 0x03, 0x07, 0xA1, 0x20])
    melody = bytearray()
    melody += _varlen(0) + bytes([0x90, 72, 100])
    melody += _varlen(960) + bytes([0x80, 72, 0])
    bass = bytearray()
    bass += _name("Bass")
    bass += _varlen(480) + bytes([0x91, 36, 100])
    # Never released: closed at the last tick of the track.
    bass += _varlen(480) + bytes([0xC1, 33])
    return _header(1, 3) + _track(conductor) + _track(bytes(melody)) + _track(bytes(bass))


class TestMidiFile(unittest.TestCase):
    def _load(self, payload: bytes):
        with tempfile.TemporaryDirectory() as td:
            midi_path = Path(td) / "song.mid"
            midi_path.write_bytes(payload)
            return load_midi_tracks(midi_path)

    def test_load_midi_tracks_extracts_notes_in_beats(self) -> None:
        song = self._load(_simple_midi())

        self.assertEqual(song.ticks_per_beat, 480)
        self.assertEqual(len(song.tracks), 1)
        track = song.tracks[0]
        self.assertEqual(track.name, "Lead")
        self.assertEqual([n.pitch for n in track.notes], [60, 64])
        self.assertAlmostEqual(track.notes[0].start_time, 0.0, places=9)
        self.assertAlmostEqual(track.notes[0].duration, 1.0, places=9)
        self.assertAlmostEqual(track.notes[1].start_time, 1.5, places=9)
        self.assertAlmostEqual(track.notes[1].duration, 0.5, places=9)

    def test_tracks_without_notes_are_dropped_and_names_default(self) -> None:
        song = self._load(_multi_track_midi())

        self.assertEqual([t.name for t in song.tracks], ["Track 1", "Bass"])
        melody, bass = song.tracks
        self.assertEqual(len(melody.notes), 1)
        self.assertAlmostEqual(melody.notes[0].duration, 2.0, places=9)
        self.assertEqual(bass.notes[0].pitch, 36)
        self.assertAlmostEqual(bass.notes[0].start_time, 1.0, places=9)
        self.assertAlmostEqual(bass.notes[0].duration, 1.0, places=9)

    def test_retriggered_key_pairs_in_order(self) -> None:
        events = bytearray()
        events += _varlen(0) + bytes([0x90, 60, 100])
        events += _varlen(480) + bytes([0x80, 60, 0])
        events += _varlen(0) + bytes([0x90, 60, 100])
        events += _varlen(480) + bytes([0x80, 60, 0])
        song = self._load(_header(0, 1) + _track(bytes(events)))

        notes = song.tracks[0].notes
        self.assertEqual([(n.start_time, n.duration) for n in notes], [(0.0, 1.0), (1.0, 1.0)])

    def test_smpte_division_falls_back_to_default_resolution(self) -> None:
        events = _varlen(0) + bytes([0x90, 60, 100]) + _varlen(DEFAULT_TICKS_PER_BEAT) + bytes([0x80, 60, 0])
        song = self._load(_header(0, 1, division=0xE728) + _track(events))

        self.assertEqual(song.ticks_per_beat, DEFAULT_TICKS_PER_BEAT)
        self.assertAlmostEqual(song.tracks[0].notes[0].duration, 1.0, places=9)

    def test_invalid_header_raises(self) -> None:
        with self.assertRaises(ValueError):
            self._load(b"RIFF" + bytes(10))

    def test_truncated_track_raises(self) -> None:
        payload = _header(0, 1) + b"MTrk" + (50).to_bytes(4, "big") + bytes([0x00, 0x90])
        with self.assertRaises(ValueError):
            self._load(payload)


if __name__ == "__main__":
    unittest.main()
