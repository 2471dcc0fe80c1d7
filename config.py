"""
Central configuration for the document ledger service.

All paths, timeouts and document defaults are defined here.
Override via environment variables or by passing a Config instance directly.

Settings priority (highest wins):
  1. Environment variables
  2. config/ledger_settings.json  (admin-editable, persisted)
  3. Hardcoded defaults in this file
"""
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

# Project root (directory containing this file)
PROJECT_ROOT = Path(__file__).parent

# Default data locations (relative to project root)
DEFAULT_OUTPUT_DIR       = PROJECT_ROOT / "output"
DEFAULT_DB_PATH          = DEFAULT_OUTPUT_DIR / "ledger.db"
DEFAULT_CONFIG_DIR       = PROJECT_ROOT / "config"
DEFAULT_INVOICE_TEMPLATE = "invoice_template.html.j2"


@dataclass
class Config:
    # --- Storage ---
    db_path: Path = field(
        default_factory=lambda: Path(os.getenv("DB_PATH", str(DEFAULT_DB_PATH)))
    )
    # Seconds to wait for the database write lock before giving up.
    db_timeout_seconds: float = field(
        default_factory=lambda: float(os.getenv("DB_TIMEOUT", "5"))
    )
    # Upper bound for a single connection scope (read or transaction).
    # A scope that runs past it is interrupted and rolled back.
    statement_timeout_seconds: float = field(
        default_factory=lambda: float(os.getenv("STATEMENT_TIMEOUT", "30"))
    )

    # --- Runtime ---
    # "development" exposes raw database error messages in 500 responses.
    environment: str = field(
        default_factory=lambda: os.getenv("APP_ENV", "production").lower()
    )
    host: str = field(default_factory=lambda: os.getenv("HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "8080")))

    # --- Document defaults ---
    default_currency:      str = "INR"
    default_payment_terms: str = "30"   # days, stored as text

    # --- Presentation ---
    config_dir: Path = field(
        default_factory=lambda: Path(os.getenv("CONFIG_DIR", str(DEFAULT_CONFIG_DIR)))
    )
    invoice_template: str = field(
        default_factory=lambda: os.getenv("INVOICE_TEMPLATE", DEFAULT_INVOICE_TEMPLATE)
    )

    def __post_init__(self) -> None:
        """Overlay runtime-tunable settings from ledger_settings.json if present."""
        settings_file = self.config_dir / "ledger_settings.json"
        if not settings_file.exists():
            return
        _type_map: dict[str, type] = {
            "db_timeout_seconds":        float,
            "statement_timeout_seconds": float,
            "default_currency":          str,
            "default_payment_terms":     str,
            "invoice_template":          str,
        }
        try:
            with open(settings_file, encoding="utf-8") as f:
                overrides = {k: v for k, v in json.load(f).items() if not k.startswith("_")}
            for key, val in overrides.items():
                if key in _type_map and hasattr(self, key):
                    setattr(self, key, _type_map[key](val))
        except Exception as exc:
            logger.warning("Failed to load ledger_settings.json: %s", exc)

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def invoice_template_path(self) -> Path:
        return self.config_dir / self.invoice_template

    def ensure_output_dir(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
