from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from quotely.server.models import Snapshot

# Paketets datakatalog, t.ex. .../quotely/data
DATA_DIR = Path(__file__).resolve().parents[1] / "data"
SEED_PATH = DATA_DIR / "initial_data.yaml"


@lru_cache(maxsize=4)
def _load_raw_seed_yaml(path: str) -> Dict[str, Any]:
    """
    Läser YAML-filen med startdata en gång och cache:ar resultatet.
    Trasig eller saknad fil ger ett tomt dataset – då startar appen tom.
    """
    seed_path = Path(path)
    if not seed_path.exists():
        return {}

    try:
        with seed_path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except Exception:
        return {}

    return data if isinstance(data, dict) else {}


def _rows(raw: Dict[str, Any], key: str) -> List[Dict[str, Any]]:
    rows = raw.get(key) or []
    if not isinstance(rows, list):
        return []
    return [dict(r) for r in rows if isinstance(r, dict)]


def load_seed_snapshot(path: Optional[Path] = None) -> Snapshot:
    """
    Bygger ett Snapshot av startdatan.

    Mallarnas sektioner och rader ligger i egna listor i YAML-filen
    (templateSections / templateLineItems) men lagras i samma samlingar
    som offerternas.
    """
    raw = _load_raw_seed_yaml(str(path or SEED_PATH))

    return Snapshot.model_validate(
        {
            "quotes": _rows(raw, "quotes"),
            "projects": _rows(raw, "projects"),
            "contacts": _rows(raw, "contacts"),
            "domains": _rows(raw, "domains"),
            "lineItems": _rows(raw, "lineItems") + _rows(raw, "templateLineItems"),
            "sections": _rows(raw, "sections") + _rows(raw, "templateSections"),
            "templates": _rows(raw, "templates"),
        }
    )
