import unittest

from comb_designer.spacing_model import midi_note_to_frequency, tooth_spacing


class TestSpacingModel(unittest.TestCase):
    def test_a4_is_440_hz(self) -> None:
        self.assertAlmostEqual(midi_note_to_frequency(69), 440.0, places=9)

    def test_middle_c_frequency(self) -> None:
        self.assertAlmostEqual(midi_note_to_frequency(60), 261.6255653, places=6)

    def test_reference_pitch_keeps_reference_spacing(self) -> None:
        self.assertAlmostEqual(tooth_spacing(60, reference_pitch=60, reference_spacing=10.0), 10.0, places=12)

    def test_octave_up_halves_spacing(self) -> None:
        self.assertAlmostEqual(tooth_spacing(72, reference_pitch=60, reference_spacing=10.0), 5.0, places=12)

    def test_octave_down_doubles_spacing(self) -> None:
        self.assertAlmostEqual(tooth_spacing(48, reference_pitch=60, reference_spacing=10.0), 20.0, places=12)

    def test_spacing_matches_frequency_ratio(self) -> None:
        expected = 7.5 * midi_note_to_frequency(57) / midi_note_to_frequency(64)
        self.assertAlmostEqual(tooth_spacing(64, reference_pitch=57, reference_spacing=7.5), expected, places=9)

    def test_extreme_pitches_stay_finite_and_positive(self) -> None:
        low = tooth_spacing(0, reference_pitch=127, reference_spacing=50.0)
        high = tooth_spacing(127, reference_pitch=0, reference_spacing=0.5)
        self.assertGreater(high, 0.0)
        self.assertLess(high, 0.5)
        self.assertGreater(low, 50.0)


if __name__ == "__main__":
    unittest.main()
