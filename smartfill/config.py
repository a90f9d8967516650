from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path

from smartfill.rules import DEFAULT_RULES, ExtractionRules


@dataclass(frozen=True)
class Settings:
    home_country: str = "NL"
    rules_path: str | None = None
    log_level: str = "INFO"
    api_host: str = "127.0.0.1"
    api_port: int = 8080

    @classmethod
    def from_env(cls) -> "Settings":
        home_country = os.getenv("SMART_FILL_HOME_COUNTRY", "NL").strip().upper()
        if not re.fullmatch(r"[A-Z]{2}", home_country):
            raise ValueError("SMART_FILL_HOME_COUNTRY must be a two-letter country code")

        rules_path = os.getenv("SMART_FILL_RULES_PATH")
        if rules_path is not None and not rules_path.strip():
            rules_path = None
        if rules_path and not Path(rules_path).exists():
            raise ValueError(f"SMART_FILL_RULES_PATH not found: {rules_path}")

        port_env = os.getenv("API_PORT", "8080").strip()
        try:
            api_port = int(port_env)
        except ValueError as exc:
            raise ValueError("API_PORT must be an integer") from exc

        return cls(
            home_country=home_country,
            rules_path=rules_path,
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            api_host=os.getenv("API_HOST", "127.0.0.1"),
            api_port=api_port,
        )

    def load_rules(self) -> ExtractionRules:
        if not self.rules_path:
            return DEFAULT_RULES
        return ExtractionRules.from_path(self.rules_path)


def load_dotenv(path: str | Path = ".env") -> None:
    env_path = Path(path)
    if not env_path.exists():
        return
    for line in env_path.read_text(encoding="utf-8").splitlines():
        entry = line.strip()
        if not entry or entry.startswith("#") or "=" not in entry:
            continue
        key, value = entry.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        os.environ.setdefault(key, value)
