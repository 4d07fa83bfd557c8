from __future__ import annotations

import numpy as np

A4_MIDI_NOTE = 69
A4_FREQUENCY_HZ = 440.0


def midi_note_to_frequency(midi_note: int, a4_hz: float = A4_FREQUENCY_HZ) -> float:
    return float(a4_hz * (2.0 ** ((midi_note - A4_MIDI_NOTE) / 12.0)))


def tooth_spacing(pitch: int, reference_pitch: int, reference_spacing: float) -> float:
    """Tooth spacing for ``pitch``, proportional to its wavelength.

    ``reference_spacing * f(reference_pitch) / f(pitch)``. The frequency ratio
    reduces to a power of two of the semitone distance, so it is evaluated
    directly instead of dividing two absolute frequencies.
    """
    return float(reference_spacing * np.exp2((reference_pitch - pitch) / 12.0))
