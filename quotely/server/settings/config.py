from pydantic import BaseModel
from dotenv import load_dotenv
import os

load_dotenv()


class Settings(BaseModel):
    app_name: str = "Quotely – offertbyggaren"
    environment: str = os.getenv("ENVIRONMENT", "dev")
    debug: bool = os.getenv("DEBUG", "1") == "1"

    # json | sql | memory
    storage_backend: str = os.getenv("QUOTELY_STORAGE", "json")
    storage_prefix: str = os.getenv("QUOTELY_PREFIX", "quotely")
    data_dir: str = os.getenv("QUOTELY_DATA_DIR", "./knowledge/quotely")
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./quotely.db")

    # Namnet som stämplas i createdBy på nya poster
    current_user: str = os.getenv("QUOTELY_USER", "Jon Snow")

    # Tom sträng → <data_dir>/logs/events.jsonl, "off" → ingen fil-logg
    event_log: str = os.getenv("QUOTELY_EVENT_LOG", "")

    @property
    def event_log_path(self):
        from pathlib import Path

        if self.event_log.strip().lower() == "off":
            return None
        if self.event_log.strip():
            return Path(self.event_log)
        return Path(self.data_dir) / "logs" / "events.jsonl"


settings = Settings()
