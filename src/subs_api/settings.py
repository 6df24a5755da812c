import os
from dataclasses import dataclass, field
from typing import Dict, Optional

from dotenv import load_dotenv


def _parse_options(raw: str) -> Dict[str, str]:
    """Parse `key=value&key2=value2` into a dict, skipping empty pairs."""
    options: Dict[str, str] = {}
    for pair in raw.split("&"):
        if not pair.strip():
            continue
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"DB_OPTIONS entry {pair!r} is not key=value")
        options[key.strip()] = value.strip()
    return options


@dataclass(frozen=True)
class Settings:
    db_addr: str = "postgres:5432"
    db_user: str = "subs"
    db_pass: str = "subspass"
    db_name: str = "subs"
    db_options: Dict[str, str] = field(default_factory=dict)
    database_url: Optional[str] = None
    api_address: str = "0.0.0.0:8080"
    log_level: str = "INFO"
    enable_runtime_schema_creation: bool = False

    @property
    def sqlalchemy_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        url = f"postgresql+psycopg2://{self.db_user}:{self.db_pass}@{self.db_addr}/{self.db_name}"
        if self.db_options:
            url += "?" + "&".join(f"{k}={v}" for k, v in self.db_options.items())
        return url

    @property
    def api_host(self) -> str:
        host, _, _ = self.api_address.rpartition(":")
        return host or "0.0.0.0"

    @property
    def api_port(self) -> int:
        _, _, port = self.api_address.rpartition(":")
        return int(port)


def load_settings() -> Settings:
    """Read settings from the environment (and `.env`, if present) once at startup."""
    load_dotenv()
    return Settings(
        db_addr=os.getenv("DB_ADDR", "postgres:5432"),
        db_user=os.getenv("DB_USER", "subs"),
        db_pass=os.getenv("DB_PASS", "subspass"),
        db_name=os.getenv("DB_NAME", "subs"),
        db_options=_parse_options(os.getenv("DB_OPTIONS", "")),
        database_url=os.getenv("DATABASE_URL") or None,
        api_address=os.getenv("API_ADDRESS", "0.0.0.0:8080"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        enable_runtime_schema_creation=os.getenv("ENABLE_RUNTIME_SCHEMA_CREATION", "false").lower()
        in ("true", "1", "yes"),
    )
