from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from audio_analyzer.serialize.session import RecordingSession


def write_session(session: RecordingSession, out_dir: str | Path) -> Path:
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / f"{session.id}.session.json"
    path.write_text(json.dumps(session.to_json(), indent=2, sort_keys=True), encoding="utf-8")
    return path


def read_session(path: str | Path) -> RecordingSession:
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    return RecordingSession.from_json(payload)


def write_manifest(entries: list[dict[str, Any]], path: str | Path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as handle:
        for entry in entries:
            handle.write(json.dumps(entry, sort_keys=True) + "\n")
