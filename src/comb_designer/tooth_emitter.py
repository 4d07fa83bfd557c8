from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Iterator

from comb_designer.comb_segments import CombSegment

# Pixels. Segments at or below this spacing draw no teeth.
MIN_TOOTH_SPACING = 0.1
# Grid ratios this close to an integer are snapped before ceil().
GRID_EPSILON = 1e-9


@dataclass(frozen=True)
class ToothLine:
    x1: float
    y1: float
    x2: float
    y2: float


def _grid_ceil(ratio: float) -> int:
    nearest = round(ratio)
    if abs(ratio - nearest) <= GRID_EPSILON:
        return int(nearest)
    return int(math.ceil(ratio))


def segment_tooth_indices(segment: CombSegment, scale: float) -> range:
    """Grid indices ``k`` whose tooth ``k * spacing`` lies in the segment span."""
    spacing = segment.spacing
    start_x = segment.start_time * scale
    end_x = segment.end_time * scale
    return range(_grid_ceil(start_x / spacing), _grid_ceil(end_x / spacing))


def emit_teeth(
    segments: Iterable[CombSegment],
    scale: float,
    origin: float = 0.0,
    until: float | None = None,
    min_spacing: float = MIN_TOOTH_SPACING,
) -> Iterator[float]:
    """Yield absolute tooth x-positions for ``segments`` in increasing order.

    Every tooth sits on the global grid ``k * spacing`` so phase never restarts
    at a segment boundary. Indices before ``origin`` (beyond grid rounding)
    are skipped without moving the grid; emission ends at the first position
    ``>= until``.
    Each call returns a fresh generator.
    """
    for segment in segments:
        spacing = segment.spacing
        if not math.isfinite(spacing) or spacing <= min_spacing:
            continue
        if until is not None and segment.start_time * scale >= until:
            return
        indices = segment_tooth_indices(segment, scale)
        first = max(indices.start, _grid_ceil(origin / spacing))
        for k in range(first, indices.stop):
            x = k * spacing
            if until is not None and x >= until:
                return
            yield x


def tooth_lines(teeth: Iterable[float], y1: float, y2: float, offset: float = 0.0) -> Iterator[ToothLine]:
    for x in teeth:
        rel = x - offset
        yield ToothLine(x1=rel, y1=y1, x2=rel, y2=y2)
