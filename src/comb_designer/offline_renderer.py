from __future__ import annotations

import math
from pathlib import Path

import numpy as np

from comb_designer.comb_segments import CombSegment
from comb_designer.tooth_emitter import emit_teeth

BACKGROUND_COLOR = (20, 20, 25)
TOOTH_COLOR = (0, 255, 200)
REFERENCE_LINE_COLOR = (128, 128, 128)


def _draw_vline(img: np.ndarray, x: float, y0: float, y1: float, color: tuple[int, int, int]) -> None:
    xi = int(round(x))
    if xi < 0 or xi >= img.shape[1]:
        return
    top = max(0, int(math.floor(min(y0, y1))))
    bottom = min(img.shape[0], int(math.ceil(max(y0, y1))) + 1)
    if bottom <= top:
        return
    img[top:bottom, xi, :] = np.array(color, dtype=np.uint8)


def _draw_hline(img: np.ndarray, y: float, color: tuple[int, int, int]) -> None:
    yi = int(round(y))
    if yi < 0 or yi >= img.shape[0]:
        return
    img[yi, :, :] = np.array(color, dtype=np.uint8)


def write_ppm(path: str | Path, img: np.ndarray) -> Path:
    output = Path(path)
    output.parent.mkdir(parents=True, exist_ok=True)
    h, w, _ = img.shape
    header = f"P6\n{w} {h}\n255\n".encode("ascii")
    output.write_bytes(header + img.tobytes())
    return output


def render_comb_image(
    segments: list[CombSegment],
    scale: float,
    height: int = 160,
    tooth_height: int = 120,
    margin: int = 50,
) -> np.ndarray:
    """Rasterize the comb the way the designer canvas paints it.

    Teeth are centred vertically with a grey reference line under them. The
    x axis starts at the first segment, like the SVG export.
    """
    if height <= 0:
        raise ValueError("height must be > 0.")
    if tooth_height < 0:
        raise ValueError("tooth_height must be >= 0.")
    if margin < 0:
        raise ValueError("margin must be >= 0.")

    if segments:
        x_offset = segments[0].start_time * scale
        extent = max(segment.end_time * scale for segment in segments) - x_offset
    else:
        x_offset = 0.0
        extent = 0.0
    width = max(1, int(math.ceil(extent)) + margin)

    img = np.zeros((height, width, 3), dtype=np.uint8)
    img[:, :, :] = np.array(BACKGROUND_COLOR, dtype=np.uint8)

    center_y = height / 2.0
    half = tooth_height / 2.0
    for x in emit_teeth(segments, scale, origin=x_offset):
        _draw_vline(img, x - x_offset, center_y - half, center_y + half, TOOTH_COLOR)

    if segments:
        _draw_hline(img, center_y + half, REFERENCE_LINE_COLOR)
    return img
