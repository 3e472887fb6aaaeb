import json
import os
import logging
from datetime import datetime, timezone
from typing import Dict, Any, Iterator, List, Optional
from pathlib import Path

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once for the process."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


class TurnLogger:
    """Logger for saving completed dialogue turns to a JSONL file."""

    def __init__(self, log_dir: str, enabled: bool = True):
        self.enabled = enabled
        self.log_dir = Path(log_dir)
        self.log_file = self.log_dir / "turns.jsonl"
        if enabled:
            self.log_dir.mkdir(parents=True, exist_ok=True)

    def log_turn(
        self,
        state_before: Dict[str, Any],
        state_after: Dict[str, Any],
        student_message: str,
        message: str,
        used_fallback: bool,
        content_ref: Optional[str] = None,
        intent: Optional[str] = None,
        generation_mode: Optional[str] = None,
        evaluation: Optional[Dict[str, Any]] = None,
    ):
        """Append one turn to the JSONL file."""
        if not self.enabled:
            return
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "content_ref": content_ref,
            "intent": intent,
            "state_before": state_before,
            "state_after": state_after,
            "student_message": student_message,
            "message": message,
            "used_fallback": used_fallback,
            "generation_mode": generation_mode,
            "evaluation": evaluation,
        }

        # One record per line
        with open(self.log_file, "a", encoding="utf-8") as f:
            f.write(json.dumps(log_entry, ensure_ascii=False) + "\n")

    def get_turns(
        self,
        content_ref: str = None,
        limit: int = None
    ) -> List[Dict[str, Any]]:
        """Retrieve logged turns, newest first, optionally filtered."""
        if not self.log_file.exists():
            return []

        # Records are appended in time order, so reading backwards stops early
        turns = []
        for line in _read_lines_backwards(self.log_file):
            if not line.strip():
                continue
            try:
                entry = json.loads(line)
            except json.JSONDecodeError:
                continue
            if content_ref and entry.get("content_ref") != content_ref:
                continue
            turns.append(entry)
            if limit and len(turns) >= limit:
                break

        return turns


def _read_lines_backwards(path: Path, chunk_size: int = 8192) -> Iterator[str]:
    """Yield the lines of a UTF-8 file from last to first."""
    with open(path, "rb") as f:
        f.seek(0, os.SEEK_END)
        position = f.tell()
        tail = b""
        while position > 0:
            step = min(chunk_size, position)
            position -= step
            f.seek(position)
            lines = (f.read(step) + tail).split(b"\n")
            # The first piece may be cut mid-line
            tail = lines.pop(0)
            for line in reversed(lines):
                yield line.decode("utf-8")
        if tail:
            yield tail.decode("utf-8")
