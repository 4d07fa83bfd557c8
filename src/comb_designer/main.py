import argparse
import logging
import signal
import sys
from typing import Any

from comb_designer.comb_segments import TieBreak
from comb_designer.comb_session import CombSession
from comb_designer.configuration import (
    CombCalibration,
    calibration_from_config,
    calibration_to_config,
    get_default_config,
    load_config_file,
    save_config_file,
    tie_break_from_config,
)
from comb_designer.spacing_model import midi_note_to_frequency

EXIT_OK = 0
EXIT_BAD_ARGS = 2
EXIT_SOURCE_ERROR = 3
EXIT_WRITE_ERROR = 4


def launch_ui(
    source_path: str | None = None,
    calibration: CombCalibration | None = None,
    tie_break: TieBreak = TieBreak.OFF_BEFORE_ON,
    width: int = 1000,
    height: int = 600,
    save_config_path: str | None = None,
    config: dict[str, dict[str, Any]] | None = None,
) -> None:
    from PyQt5 import QtWidgets

    from comb_designer.comb_window import CombDesignerWindow

    app = QtWidgets.QApplication([])
    session = CombSession(calibration=calibration, tie_break=tie_break)

    window = CombDesignerWindow(session)
    window.setWindowTitle("MIDI Pattern Generator")
    window.resize(width, height)
    window.show()
    if source_path:
        if not window.load_source(source_path):
            print(f"Could not read note source: {source_path}")

    def persist_config() -> None:
        if save_config_path is None:
            return
        base = config if config is not None else get_default_config()
        path = save_config_file(save_config_path, calibration_to_config(base, session.calibration))
        print(f"Saved config to {path}")

    signal.signal(signal.SIGINT, signal.SIG_DFL)
    app.aboutToQuit.connect(persist_config)
    sys.exit(app.exec())


def _load_session(
    midi_path: str | None,
    notes_json_path: str | None,
    calibration: CombCalibration,
    tie_break: TieBreak,
) -> CombSession | None:
    if bool(midi_path) == bool(notes_json_path):
        raise ValueError("Provide exactly one of midi_path or notes_json_path.")

    session = CombSession(calibration=calibration, tie_break=tie_break)
    ok = session.load_midi(midi_path) if midi_path else session.load_json(notes_json_path)
    if not ok:
        print(f"Could not read note source: {midi_path or notes_json_path}")
        return None
    return session


def _select_track(session: CombSession, track_index: int) -> bool:
    if session.select_track(track_index):
        return True
    print(f"Track {track_index} not found; source has {len(session.tracks or [])} track(s) with notes.")
    return False


def list_tracks(midi_path: str | None, notes_json_path: str | None) -> int:
    session = _load_session(midi_path, notes_json_path, CombCalibration(), TieBreak.OFF_BEFORE_ON)
    if session is None:
        return EXIT_SOURCE_ERROR
    for label in session.track_labels():
        print(label)
    return EXIT_OK


def print_segments(
    midi_path: str | None,
    notes_json_path: str | None,
    track_index: int,
    calibration: CombCalibration,
    tie_break: TieBreak,
) -> int:
    session = _load_session(midi_path, notes_json_path, calibration, tie_break)
    if session is None:
        return EXIT_SOURCE_ERROR
    if not _select_track(session, track_index):
        return EXIT_BAD_ARGS

    print("start_beats,end_beats,pitch,frequency_hz,spacing_px")
    for seg in session.segments():
        freq = midi_note_to_frequency(seg.pitch)
        print(f"{seg.start_time:.6f},{seg.end_time:.6f},{seg.pitch},{freq:.6f},{seg.spacing:.6f}")
    return EXIT_OK


def export_comb_svg(
    midi_path: str | None,
    notes_json_path: str | None,
    output_svg: str,
    track_index: int,
    calibration: CombCalibration,
    tie_break: TieBreak,
    height: float,
    margin: float,
    stroke: str = "black",
    stroke_width: float = 0.5,
) -> int:
    session = _load_session(midi_path, notes_json_path, calibration, tie_break)
    if session is None:
        return EXIT_SOURCE_ERROR
    if not _select_track(session, track_index):
        return EXIT_BAD_ARGS

    if not session.export_svg(
        output_svg,
        height=height,
        margin=margin,
        stroke=stroke,
        stroke_width=stroke_width,
    ):
        print(session.export_status)
        return EXIT_WRITE_ERROR
    print(f"Wrote {len(session.segments())} segment(s) to {output_svg}")
    return EXIT_OK


def render_comb_preview(
    midi_path: str | None,
    notes_json_path: str | None,
    output_ppm: str,
    track_index: int,
    calibration: CombCalibration,
    tie_break: TieBreak,
    height: int,
    tooth_height: int,
    margin: int,
) -> int:
    from comb_designer.offline_renderer import render_comb_image, write_ppm

    session = _load_session(midi_path, notes_json_path, calibration, tie_break)
    if session is None:
        return EXIT_SOURCE_ERROR
    if not _select_track(session, track_index):
        return EXIT_BAD_ARGS

    img = render_comb_image(
        session.segments(),
        calibration.px_per_beat,
        height=height,
        tooth_height=tooth_height,
        margin=margin,
    )
    try:
        write_ppm(output_ppm, img)
    except OSError as exc:
        print(f"Failed to write image: {exc}")
        return EXIT_WRITE_ERROR
    print(f"Wrote {img.shape[1]}x{img.shape[0]} image to {output_ppm}")
    return EXIT_OK


def _add_source_args(parser: argparse.ArgumentParser, required: bool) -> None:
    source_group = parser.add_mutually_exclusive_group(required=required)
    source_group.add_argument("--midi", type=str, help="Input MIDI file path (.mid/.midi).")
    source_group.add_argument(
        "--notes-json",
        type=str,
        help="Input JSON file with notes: [{pitch,start_time,duration}, ...] or {tracks: [...]}.",
    )


def _add_comb_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", type=str, default=None, help="JSON config file with default values.")
    parser.add_argument(
        "--reference-pitch",
        type=int,
        default=None,
        help="MIDI pitch whose teeth use the reference spacing (default: 60).",
    )
    parser.add_argument(
        "--reference-spacing",
        type=float,
        default=None,
        help="Tooth spacing in pixels for the reference pitch (default: 10.0).",
    )
    parser.add_argument(
        "--px-per-beat",
        type=float,
        default=None,
        help="Pixels along the comb per beat (default: 200.0).",
    )
    parser.add_argument(
        "--tie-break",
        choices=[t.value for t in TieBreak],
        default=None,
        help="Event order at equal timestamps (default: off_before_on).",
    )


def _add_track_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--track", type=int, default=0, help="Index of the track to use (default: 0).")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Musical comb pattern designer and export utilities")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Logging verbosity (default: WARNING).",
    )
    subparsers = parser.add_subparsers(dest="command")

    ui = subparsers.add_parser("ui", help="Run the interactive Qt designer")
    _add_source_args(ui, required=False)
    _add_comb_args(ui)
    ui.add_argument(
        "--save-config",
        type=str,
        default=None,
        help="Write the final calibration to this JSON config path on exit.",
    )

    tracks = subparsers.add_parser("tracks", help="List tracks that contain notes")
    _add_source_args(tracks, required=True)

    segments = subparsers.add_parser("segments", help="Print comb segments as CSV")
    _add_source_args(segments, required=True)
    _add_track_arg(segments)
    _add_comb_args(segments)

    export = subparsers.add_parser("export", help="Export the comb pattern as SVG")
    _add_source_args(export, required=True)
    _add_track_arg(export)
    _add_comb_args(export)
    export.add_argument("--output", type=str, required=True, help="Output SVG path.")
    export.add_argument("--height", type=float, default=None, help="Tooth height in SVG units (default: 100).")
    export.add_argument("--margin", type=float, default=None, help="Extra width after the last tooth (default: 50).")

    render = subparsers.add_parser("render", help="Render a PPM preview image of the comb")
    _add_source_args(render, required=True)
    _add_track_arg(render)
    _add_comb_args(render)
    render.add_argument("--output", type=str, required=True, help="Output PPM path.")
    render.add_argument("--height", type=int, default=None, help="Image height in pixels (default: 160).")
    render.add_argument("--tooth-height", type=int, default=None, help="Tooth length in pixels (default: 120).")
    render.add_argument("--margin", type=int, default=None, help="Extra width after the last tooth (default: 50).")
    return parser


def _pick(value: Any, fallback: Any) -> Any:
    return fallback if value is None else value


def _resolve_config(parser: argparse.ArgumentParser, args: argparse.Namespace) -> dict[str, dict[str, Any]]:
    if getattr(args, "config", None) is None:
        return get_default_config()
    try:
        return load_config_file(args.config)
    except (OSError, ValueError) as exc:
        parser.error(f"--config could not be loaded: {exc}")


def _resolve_comb_settings(
    parser: argparse.ArgumentParser,
    args: argparse.Namespace,
    config: dict[str, dict[str, Any]],
) -> tuple[CombCalibration, TieBreak]:
    try:
        base = calibration_from_config(config)
        config_tie_break = tie_break_from_config(config)
    except (TypeError, ValueError) as exc:
        parser.error(f"Invalid config: {exc}")
    calibration = CombCalibration(
        reference_pitch=_pick(args.reference_pitch, base.reference_pitch),
        reference_spacing=_pick(args.reference_spacing, base.reference_spacing),
        px_per_beat=_pick(args.px_per_beat, base.px_per_beat),
    )
    tie_break = TieBreak(args.tie_break) if args.tie_break is not None else config_tie_break

    if not (0 <= calibration.reference_pitch <= 127):
        parser.error("--reference-pitch must be in [0,127].")
    if calibration.reference_spacing <= 0:
        parser.error("--reference-spacing must be > 0.")
    if calibration.px_per_beat <= 0:
        parser.error("--px-per-beat must be > 0.")
    return calibration, tie_break


def _validate_track_arg(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    if args.track < 0:
        parser.error("--track must be >= 0.")


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")

    if args.command in (None, "ui"):
        if args.command is None:
            launch_ui()
            return
        config = _resolve_config(parser, args)
        calibration, tie_break = _resolve_comb_settings(parser, args, config)
        ui_section = config.get("ui", {})
        launch_ui(
            source_path=args.midi or args.notes_json,
            calibration=calibration,
            tie_break=tie_break,
            width=int(ui_section.get("width", 1000)),
            height=int(ui_section.get("height", 600)),
            save_config_path=args.save_config,
            config=config,
        )
        return

    if args.command == "tracks":
        raise SystemExit(list_tracks(midi_path=args.midi, notes_json_path=args.notes_json))

    config = _resolve_config(parser, args)
    calibration, tie_break = _resolve_comb_settings(parser, args, config)
    _validate_track_arg(parser, args)

    if args.command == "segments":
        raise SystemExit(
            print_segments(
                midi_path=args.midi,
                notes_json_path=args.notes_json,
                track_index=args.track,
                calibration=calibration,
                tie_break=tie_break,
            )
        )

    if args.command == "export":
        export_cfg = config.get("export", {})
        height = float(_pick(args.height, export_cfg.get("height", 100.0)))
        margin = float(_pick(args.margin, export_cfg.get("margin", 50.0)))
        if height <= 0:
            parser.error("--height must be > 0.")
        if margin < 0:
            parser.error("--margin must be >= 0.")
        raise SystemExit(
            export_comb_svg(
                midi_path=args.midi,
                notes_json_path=args.notes_json,
                output_svg=args.output,
                track_index=args.track,
                calibration=calibration,
                tie_break=tie_break,
                height=height,
                margin=margin,
                stroke=str(export_cfg.get("stroke", "black")),
                stroke_width=float(export_cfg.get("stroke_width", 0.5)),
            )
        )

    if args.command == "render":
        render_cfg = config.get("render", {})
        height = int(_pick(args.height, render_cfg.get("height", 160)))
        tooth_height = int(_pick(args.tooth_height, render_cfg.get("tooth_height", 120)))
        margin = int(_pick(args.margin, render_cfg.get("margin", 50)))
        if height <= 0:
            parser.error("--height must be > 0.")
        if tooth_height < 0:
            parser.error("--tooth-height must be >= 0.")
        if margin < 0:
            parser.error("--margin must be >= 0.")
        raise SystemExit(
            render_comb_preview(
                midi_path=args.midi,
                notes_json_path=args.notes_json,
                output_ppm=args.output,
                track_index=args.track,
                calibration=calibration,
                tie_break=tie_break,
                height=height,
                tooth_height=tooth_height,
                margin=margin,
            )
        )

    parser.error(f"Unsupported command: {args.command}")


if __name__ == "__main__":
    main()
