import unittest

from comb_designer.comb_segments import CombSegment, build_segments
from comb_designer.note_timeline import Note
from comb_designer.tooth_emitter import MIN_TOOTH_SPACING, ToothLine, emit_teeth, tooth_lines


class TestEmitTeeth(unittest.TestCase):
    def test_octave_above_reference_scenario(self) -> None:
        segments = build_segments([Note(72, 0.0, 1.0)], reference_pitch=60, reference_spacing=10.0)
        self.assertEqual(len(segments), 1)
        self.assertAlmostEqual(segments[0].spacing, 5.0, places=9)

        teeth = list(emit_teeth(segments, scale=200.0))
        self.assertEqual(len(teeth), 40)
        self.assertAlmostEqual(teeth[0], 0.0, places=9)
        self.assertAlmostEqual(teeth[-1], 195.0, places=9)
        self.assertLess(teeth[-1], 200.0)

    def test_merged_segment_has_no_boundary_artifact(self) -> None:
        segments = build_segments(
            [Note(72, 0.0, 1.0), Note(72, 1.0, 1.0)],
            reference_pitch=60,
            reference_spacing=10.0,
        )
        self.assertEqual(len(segments), 1)
        teeth = list(emit_teeth(segments, scale=200.0))
        self.assertEqual(len(teeth), 80)
        for a, b in zip(teeth, teeth[1:]):
            self.assertAlmostEqual(b - a, 5.0, places=9)

    def test_unmerged_equal_spacing_neighbours_share_boundary_tooth_once(self) -> None:
        # 0.3 * 100 lands a hair above 30 in binary floating point.
        segments = [
            CombSegment(start_time=0.0, end_time=0.3, spacing=6.0, pitch=70),
            CombSegment(start_time=0.3, end_time=0.6, spacing=6.0, pitch=70),
        ]
        teeth = list(emit_teeth(segments, scale=100.0))
        self.assertEqual(len(teeth), 10)
        for a, b in zip(teeth, teeth[1:]):
            self.assertAlmostEqual(b - a, 6.0, places=9)

    def test_teeth_are_phase_locked_to_absolute_grid(self) -> None:
        segments = [
            CombSegment(start_time=0.0, end_time=1.0, spacing=10.0, pitch=60),
            CombSegment(start_time=1.0, end_time=2.0, spacing=7.0, pitch=66),
        ]
        teeth = list(emit_teeth(segments, scale=200.0))
        second = [x for x in teeth if x >= 200.0]
        self.assertAlmostEqual(second[0], 203.0, places=9)
        for x in second:
            self.assertAlmostEqual(x / 7.0, round(x / 7.0), places=9)

    def test_positions_strictly_increase(self) -> None:
        segments = build_segments(
            [Note(60, 0.0, 2.0), Note(65, 0.5, 0.5), Note(71, 1.25, 1.0)],
            reference_pitch=60,
            reference_spacing=10.0,
        )
        teeth = list(emit_teeth(segments, scale=150.0))
        self.assertGreater(len(teeth), 0)
        for a, b in zip(teeth, teeth[1:]):
            self.assertLess(a, b)

    def test_origin_filters_without_reseeding(self) -> None:
        segments = [CombSegment(start_time=0.0, end_time=1.0, spacing=5.0, pitch=72)]
        teeth = list(emit_teeth(segments, scale=200.0, origin=52.0))
        self.assertAlmostEqual(teeth[0], 55.0, places=9)
        self.assertEqual(len(teeth), 29)

    def test_origin_skips_ahead_with_same_output_as_full_walk(self) -> None:
        notes = [Note(60, 0.0, 3.0), Note(67, 1.0, 1.0), Note(72, 2.5, 4.0)]
        segments = build_segments(notes, reference_pitch=60, reference_spacing=10.0)
        full = list(emit_teeth(segments, scale=200.0))
        for origin in (0.0, 37.0, 200.0, 555.0, 2000.0):
            expected = [x for x in full if x >= origin - 1e-6]
            self.assertEqual(list(emit_teeth(segments, scale=200.0, origin=origin)), expected, msg=origin)

    def test_origin_on_grid_keeps_that_tooth(self) -> None:
        segments = [CombSegment(start_time=0.0, end_time=1.0, spacing=0.1 * 3, pitch=72)]
        teeth = list(emit_teeth(segments, scale=100.0, origin=30.0))
        self.assertAlmostEqual(teeth[0], 30.0, places=9)

    def test_until_stops_emission(self) -> None:
        segments = [
            CombSegment(start_time=0.0, end_time=1.0, spacing=5.0, pitch=72),
            CombSegment(start_time=1.0, end_time=2.0, spacing=10.0, pitch=60),
        ]
        self.assertEqual(list(emit_teeth(segments, scale=200.0, until=20.0)), [0.0, 5.0, 10.0, 15.0])

    def test_degenerate_spacing_is_skipped(self) -> None:
        segments = [
            CombSegment(start_time=0.0, end_time=1.0, spacing=MIN_TOOTH_SPACING, pitch=127),
            CombSegment(start_time=1.0, end_time=2.0, spacing=0.0, pitch=127),
            CombSegment(start_time=2.0, end_time=3.0, spacing=float("nan"), pitch=127),
            CombSegment(start_time=3.0, end_time=4.0, spacing=10.0, pitch=60),
        ]
        teeth = list(emit_teeth(segments, scale=100.0))
        self.assertEqual(teeth, [300.0 + 10.0 * k for k in range(10)])

    def test_tiny_reference_spacing_yields_no_teeth(self) -> None:
        segments = build_segments([Note(127, 0.0, 1000.0)], reference_pitch=0, reference_spacing=1e-6)
        self.assertEqual(len(segments), 1)
        self.assertEqual(list(emit_teeth(segments, scale=2000.0)), [])

    def test_each_call_is_fresh_and_identical(self) -> None:
        notes = [Note(60, 0.0, 1.0), Note(67, 0.5, 1.0)]
        first = list(emit_teeth(build_segments(notes, 60, 10.0), scale=200.0))
        second = list(emit_teeth(build_segments(notes, 60, 10.0), scale=200.0))
        self.assertEqual(first, second)

        segments = build_segments(notes, 60, 10.0)
        self.assertEqual(list(emit_teeth(segments, 200.0)), list(emit_teeth(segments, 200.0)))

    def test_empty_segments(self) -> None:
        self.assertEqual(list(emit_teeth([], scale=200.0)), [])


class TestToothLines(unittest.TestCase):
    def test_lines_are_vertical_and_offset(self) -> None:
        lines = list(tooth_lines([100.0, 110.0], y1=0.0, y2=100.0, offset=100.0))
        self.assertEqual(
            lines,
            [
                ToothLine(x1=0.0, y1=0.0, x2=0.0, y2=100.0),
                ToothLine(x1=10.0, y1=0.0, x2=10.0, y2=100.0),
            ],
        )


if __name__ == "__main__":
    unittest.main()
