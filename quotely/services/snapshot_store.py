"""
Nyckel/värde-lager för snapshots.

QuoteStore bryr sig bara om två operationer:
  - get(key)            → sparad sträng eller None
  - put_many(entries)   → skriv alla nycklar som en enhet

Tre varianter:
  - MemorySnapshotStore   (tester, "memory" i settings)
  - JsonFileSnapshotStore (en JSON-fil, skrivs via temporär fil + replace)
  - SqlSnapshotStore      (tabell snapshot_entry via sqlmodel, en transaktion per sparning)
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Dict, Mapping, Optional, Protocol

from sqlmodel import Session

from quotely.server.db import init_db, make_engine
from quotely.server.models import SnapshotEntry


class SnapshotStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def put_many(self, entries: Mapping[str, str]) -> None: ...


class MemorySnapshotStore:
    def __init__(self, initial: Optional[Mapping[str, str]] = None) -> None:
        self.data: Dict[str, str] = dict(initial or {})
        self.write_count = 0

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def put_many(self, entries: Mapping[str, str]) -> None:
        self.data.update(entries)
        self.write_count += 1


class JsonFileSnapshotStore:
    """
    Alla nycklar i en och samma fil:
    {
      "quotely-quotes": "[...]",
      "quotely-sections": "[...]",
      ...
    }
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _ensure_dir(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        with self.path.open("r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} förväntas innehålla ett JSON-objekt")
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def put_many(self, entries: Mapping[str, str]) -> None:
        self._ensure_dir()
        data = self._load()
        data.update(entries)

        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        os.replace(tmp_path, self.path)


class SqlSnapshotStore:
    def __init__(self, database_url: str, echo: bool = False) -> None:
        self.engine = make_engine(database_url, echo=echo)
        init_db(self.engine)

    def get(self, key: str) -> Optional[str]:
        with Session(self.engine) as session:
            row = session.get(SnapshotEntry, key)
            return row.value if row else None

    def put_many(self, entries: Mapping[str, str]) -> None:
        with Session(self.engine) as session:
            for key, value in entries.items():
                row = session.get(SnapshotEntry, key)
                if row is None:
                    session.add(SnapshotEntry(key=key, value=value))
                else:
                    row.value = value
                    session.add(row)
            session.commit()


def build_snapshot_store(settings) -> SnapshotStore:
    backend = (settings.storage_backend or "json").strip().lower()
    if backend == "memory":
        return MemorySnapshotStore()
    if backend == "sql":
        return SqlSnapshotStore(settings.database_url)
    return JsonFileSnapshotStore(Path(settings.data_dir) / f"{settings.storage_prefix}-snapshot.json")
