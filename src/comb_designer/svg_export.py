from __future__ import annotations

import logging
from pathlib import Path

from comb_designer.comb_segments import CombSegment
from comb_designer.tooth_emitter import emit_teeth, tooth_lines

logger = logging.getLogger(__name__)

SVG_NAMESPACE = "http://www.w3.org/2000/svg"


def render_comb_svg(
    segments: list[CombSegment],
    scale: float,
    height: float = 100.0,
    margin: float = 50.0,
    stroke: str = "black",
    stroke_width: float = 0.5,
) -> str:
    """Serialize the comb as an SVG document of zero-width vertical lines.

    The x axis starts at the first segment, so leading silence is cropped
    while every tooth keeps its phase on the absolute grid.
    """
    if not segments:
        return f'<svg xmlns="{SVG_NAMESPACE}" width="{margin:g}" height="{height:g}"></svg>'

    x_offset = segments[0].start_time * scale
    max_x = max(segment.end_time * scale for segment in segments)

    parts: list[str] = []
    for line in tooth_lines(emit_teeth(segments, scale, origin=x_offset), y1=0.0, y2=height, offset=x_offset):
        parts.append(
            f'<line x1="{line.x1:.2f}" y1="{line.y1:g}" x2="{line.x2:.2f}" y2="{line.y2:g}" '
            f'stroke="{stroke}" stroke-width="{stroke_width:g}" />'
        )

    total_width = (max_x - x_offset) + margin
    return f'<svg xmlns="{SVG_NAMESPACE}" width="{total_width:.2f}" height="{height:g}">{"".join(parts)}</svg>'


def write_comb_svg(
    path: str | Path,
    segments: list[CombSegment],
    scale: float,
    height: float = 100.0,
    margin: float = 50.0,
    stroke: str = "black",
    stroke_width: float = 0.5,
) -> Path:
    output = Path(path)
    output.parent.mkdir(parents=True, exist_ok=True)
    content = render_comb_svg(
        segments,
        scale,
        height=height,
        margin=margin,
        stroke=stroke,
        stroke_width=stroke_width,
    )
    output.write_text(content, encoding="utf-8")
    logger.info("Wrote %d segment(s) to %s", len(segments), output)
    return output
