# fil: quotely/services/event_log.py

from __future__ import annotations

import json
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional


class EventLog:
    """
    Enkel loggning:
      - en rad till stderr med taggen, t.ex. "[quote_store] Kunde inte spara ..."
      - (om path är satt) en JSON-rad per händelse i en .jsonl-fil
    Loggningen får aldrig krascha anroparen.
    """

    def __init__(self, path: Optional[Path] = None, tag: str = "quotely") -> None:
        self.path = Path(path) if path else None
        self.tag = tag

    def _append_json_line(self, payload: Dict[str, Any]) -> None:
        if self.path is None:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as f:
                json.dump(payload, f, ensure_ascii=False)
                f.write("\n")
        except Exception as e:  # noqa: BLE001
            print(f"[{self.tag}] Kunde inte skriva till logg {self.path}: {e}", file=sys.stderr)

    def emit(self, event_type: str, message: str, **fields: Any) -> None:
        print(f"[{self.tag}] {message}", file=sys.stderr)
        event = {
            "ts": datetime.utcnow().isoformat() + "Z",
            "type": event_type,
            "message": message,
            **fields,
        }
        self._append_json_line(event)
