"""Saved chat sessions, one JSON file each."""

from __future__ import annotations

import json
import logging
import os
import re
from datetime import datetime, timezone
from pathlib import Path

from corvus.config import CONFIG_DIR
from corvus.core import ChatSession

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("json", "markdown")


def sanitize_name(name: str) -> str:
    return re.sub(r"[^a-z0-9_-]", "_", name, flags=re.IGNORECASE).lower()


class SessionStorage:
    """Sessions stored as ``<directory>/<sanitized name>.json``, readable only by the owner."""

    def __init__(self, directory: Path | None = None):
        self.directory = Path(directory) if directory else CONFIG_DIR / "sessions"
        self.directory.mkdir(parents=True, exist_ok=True, mode=0o700)

    def _path(self, name: str) -> Path:
        return self.directory / f"{sanitize_name(name)}.json"

    def save(self, name: str, session: ChatSession) -> Path:
        path = self._path(name)
        data = {
            "name": name,
            "saved_at": datetime.now(timezone.utc).isoformat(),
            "session": session.to_dict(),
        }
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w") as f:
            json.dump(data, f, indent=2)
        return path

    def load(self, name: str) -> ChatSession | None:
        path = self._path(name)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text())
            return ChatSession.from_dict(data["session"])
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning("Unreadable session file %s: %s", path, e)
            return None

    def list(self) -> list[dict]:
        """Saved sessions, newest first."""
        sessions = []
        for path in self.directory.glob("*.json"):
            try:
                data = json.loads(path.read_text())
                sessions.append({
                    "name": data["name"],
                    "saved_at": data["saved_at"],
                    "turns": data["session"]["turn_count"],
                })
            except (OSError, ValueError, KeyError, TypeError):
                logger.debug("Skipping %s", path)
        return sorted(sessions, key=lambda s: s["saved_at"], reverse=True)

    def delete(self, name: str) -> bool:
        path = self._path(name)
        if not path.exists():
            return False
        path.unlink()
        return True

    def export(self, name: str, fmt: str = "markdown") -> str | None:
        if fmt not in EXPORT_FORMATS:
            raise ValueError(f"Unknown export format: {fmt}")
        session = self.load(name)
        if session is None:
            return None

        if fmt == "json":
            return json.dumps(session.to_dict(), indent=2)

        lines = [
            f"# Corvus Chat Session: {name}",
            "",
            f"**Started:** {session.start_time.strftime('%Y-%m-%d %H:%M')}",
            f"**Turns:** {session.turn_count}",
            f"**Cost:** ${session.total_cost:.4f}",
            "",
            "---",
            "",
        ]
        for msg in session.messages:
            if msg.role == "system":
                continue
            speaker = "**You:**" if msg.role == "user" else "**Corvus:**"
            lines += [speaker, msg.content, ""]
        return "\n".join(lines)
