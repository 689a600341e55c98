from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path

from audio_analyzer.config import load_config
from audio_analyzer.constants import ANALYZER_VERSION, AUDIO_EXTENSIONS
from audio_analyzer.core.logging import configure_logging
from audio_analyzer.core.settings import get_settings
from audio_analyzer.errors import AnalysisError, ErrorCode, to_failure_payload
from audio_analyzer.pipeline import AudioAnalyzer
from audio_analyzer.serialize.session import build_session
from audio_analyzer.serialize.writers import write_manifest, write_session

logger = logging.getLogger("audio_analyzer.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="audio-analyzer")
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze_parser = subparsers.add_parser(
        "analyze", help="Extract waveforms and anomalies from sleep recordings"
    )
    analyze_parser.add_argument("--input", required=True, help="Audio file or directory")
    analyze_parser.add_argument("--output", required=True, help="Output directory")
    analyze_parser.add_argument("--config", default=None, help="Path to analysis config YAML")
    analyze_parser.add_argument("--samples", type=int, default=None, help="Waveform length")
    analyze_parser.add_argument(
        "--duration",
        type=float,
        default=None,
        help="Recording length in seconds (estimated from file size when omitted)",
    )
    analyze_parser.add_argument(
        "--decoder",
        choices=("auto", "soundfile", "ffmpeg", "none"),
        default=None,
        help="Decoder backend, overrides AUDIO_ANALYZER_DECODER_BACKEND",
    )
    analyze_parser.add_argument("--no-waveform", dest="include_waveform", action="store_false")
    analyze_parser.add_argument("--manifest", dest="manifest", action="store_true")
    analyze_parser.add_argument("--no-manifest", dest="manifest", action="store_false")
    analyze_parser.set_defaults(manifest=True, include_waveform=True)
    analyze_parser.add_argument("--verbose", action="store_true", default=False)
    return parser


def find_recordings(input_path: Path) -> list[Path]:
    if input_path.is_file():
        return [input_path]
    files: list[Path] = []
    for root, _, filenames in os.walk(input_path):
        for name in filenames:
            if Path(name).suffix.lower() in AUDIO_EXTENSIONS:
                files.append(Path(root) / name)
    return sorted(files)


def run_analyze(args: argparse.Namespace) -> int:
    settings = get_settings()
    if args.decoder is not None:
        settings = settings.model_copy(update={"decoder_backend": args.decoder})
    config = load_config(args.config or settings.analysis_config_path)
    analyzer = AudioAnalyzer.from_settings(settings, config=config)

    out_dir = Path(args.output)
    out_dir.mkdir(parents=True, exist_ok=True)
    files = find_recordings(Path(args.input))
    if not files:
        raise AnalysisError(
            code=ErrorCode.NO_INPUT,
            message="No audio recordings found",
            details={"input": str(args.input)},
        )

    entries: list[dict[str, object]] = []
    failures = 0
    for path in files:
        try:
            result = analyzer.analyze(path, total_duration=args.duration, sample_count=args.samples)
            session = build_session(result, include_waveform=args.include_waveform)
            session_path = write_session(session, out_dir)
        except (OSError, ValueError, AnalysisError) as exc:
            failures += 1
            logger.exception("recording_failed", extra={"path": str(path)})
            entries.append({"path": str(path), "status": "failed", **to_failure_payload(exc)})
            continue
        entries.append(
            {
                "path": str(path),
                "status": "ok",
                "session_id": session.id,
                "session": str(session_path),
                "waveform_source": result.waveform_source,
                "duration": session.duration,
                "anomalies": len(session.anomalies),
                "analyzer_version": ANALYZER_VERSION,
                "config_hash": config.to_hash(),
            }
        )
        if args.verbose:
            print(f"Analyzed {path.name}: {len(session.anomalies)} anomalies")

    if args.manifest:
        write_manifest(entries, out_dir / "manifest.jsonl")
    return 1 if failures else 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging("DEBUG" if getattr(args, "verbose", False) else get_settings().log_level)
    if args.command == "analyze":
        try:
            return run_analyze(args)
        except AnalysisError as exc:
            raise SystemExit(str(exc)) from exc
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
