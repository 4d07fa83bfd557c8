from __future__ import annotations

import json
from copy import deepcopy
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from comb_designer.comb_segments import DEFAULT_TIE_BREAK, TieBreak

DEFAULT_CONFIG: dict[str, dict[str, Any]] = {
    "calibration": {
        "reference_pitch": 60,
        "reference_spacing": 10.0,
        "px_per_beat": 200.0,
    },
    "segments": {
        "tie_break": DEFAULT_TIE_BREAK.value,
    },
    "export": {
        "height": 100.0,
        "margin": 50.0,
        "stroke": "black",
        "stroke_width": 0.5,
    },
    "render": {
        "height": 160,
        "tooth_height": 120,
        "margin": 50,
    },
    "ui": {
        "width": 1000,
        "height": 600,
    },
}


@dataclass(frozen=True)
class CombCalibration:
    """Immutable calibration snapshot handed to the segment builder.

    ``reference_spacing`` is the tooth spacing in pixels for ``reference_pitch``.
    ``px_per_beat`` converts beats to pixels along the comb.
    """

    reference_pitch: int = 60
    reference_spacing: float = 10.0
    px_per_beat: float = 200.0


def get_default_config() -> dict[str, dict[str, Any]]:
    return deepcopy(DEFAULT_CONFIG)


def _deep_merge_dict(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    out = deepcopy(base)
    for key, value in overlay.items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = _deep_merge_dict(out[key], value)
        else:
            out[key] = value
    return out


def load_config_file(path: str | Path) -> dict[str, dict[str, Any]]:
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError("Config root must be a JSON object.")
    return _deep_merge_dict(get_default_config(), payload)


def save_config_file(path: str | Path, config: dict[str, Any]) -> Path:
    output = Path(path)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(config, indent=2, sort_keys=True) + "\n", encoding="utf-8")
    return output


def calibration_from_config(config: dict[str, dict[str, Any]]) -> CombCalibration:
    section = config.get("calibration", {})
    return CombCalibration(
        reference_pitch=int(section.get("reference_pitch", 60)),
        reference_spacing=float(section.get("reference_spacing", 10.0)),
        px_per_beat=float(section.get("px_per_beat", 200.0)),
    )


def calibration_to_config(config: dict[str, dict[str, Any]], calibration: CombCalibration) -> dict[str, dict[str, Any]]:
    return _deep_merge_dict(
        config,
        {
            "calibration": {
                "reference_pitch": calibration.reference_pitch,
                "reference_spacing": calibration.reference_spacing,
                "px_per_beat": calibration.px_per_beat,
            }
        },
    )


def tie_break_from_config(config: dict[str, dict[str, Any]]) -> TieBreak:
    value = config.get("segments", {}).get("tie_break", DEFAULT_TIE_BREAK.value)
    try:
        return TieBreak(value)
    except ValueError as exc:
        choices = ", ".join(t.value for t in TieBreak)
        raise ValueError(f"Unknown tie_break {value!r}; expected one of: {choices}.") from exc
