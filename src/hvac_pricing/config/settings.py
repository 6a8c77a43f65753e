"""
Centralized settings and path configuration for the pricing tool.

Values come from HVAC_* environment variables with sensible defaults.
"""
import os
from pathlib import Path
from dataclasses import dataclass
from typing import Optional


def get_project_root() -> Path:
    """Get the project root directory (where pyproject.toml lives)."""
    # Walk up from this file to find the project root
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / 'pyproject.toml').exists():
            return parent
    # Fallback to 4 levels up from this file
    return Path(__file__).resolve().parent.parent.parent.parent


@dataclass
class Settings:
    """Application settings with sensible defaults."""

    # Project paths
    project_root: Path

    # Relational store
    database_url: str
    store_timeout: float = 5.0

    # Catalog import
    catalog_file: Optional[Path] = None
    import_report: Optional[Path] = None

    # Presentation
    currency: str = "EUR"
    log_level: str = "INFO"
    cors_origins: tuple = ('*',)

    @classmethod
    def load(cls, project_root: Optional[Path] = None, env: Optional[dict] = None) -> 'Settings':
        """Load settings from the environment and the project structure."""
        env = os.environ if env is None else env
        root = project_root or get_project_root()

        database_url = env.get('HVAC_DATABASE_URL') or f"sqlite:///{root / 'hvac_pricing.db'}"

        catalog_file = env.get('HVAC_CATALOG_FILE')
        import_report = env.get('HVAC_IMPORT_REPORT')

        origins = env.get('HVAC_CORS_ORIGINS', '*')

        return cls(
            project_root=root,
            database_url=database_url,
            store_timeout=float(env.get('HVAC_STORE_TIMEOUT', 5)),
            catalog_file=Path(catalog_file) if catalog_file else root / 'data' / 'devices.csv',
            import_report=(
                Path(import_report) if import_report
                else root / 'src' / 'hvac_pricing' / 'data' / 'outputs' / 'import_report.json'
            ),
            currency=env.get('HVAC_CURRENCY', 'EUR'),
            log_level=env.get('HVAC_LOG_LEVEL', 'INFO').upper(),
            cors_origins=tuple(o.strip() for o in origins.split(',') if o.strip()),
        )


# Default settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings
