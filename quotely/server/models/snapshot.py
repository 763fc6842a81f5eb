from sqlmodel import SQLModel, Field


class SnapshotEntry(SQLModel, table=True):
    """En nyckel i snapshot-lagret, t.ex. "quotely-quotes" → JSON-array."""

    __tablename__ = "snapshot_entry"

    key: str = Field(primary_key=True)
    value: str
