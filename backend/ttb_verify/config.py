"""Application configuration."""

from pathlib import Path
from pydantic_settings import BaseSettings
from functools import lru_cache


DEFAULT_LOOKUP_TABLES = Path(__file__).resolve().parent / "data" / "lookup_tables.yaml"

# Standard government warning text per ABLA of 1988 (27 CFR Part 16)
STANDARD_WARNING_TEXT = (
    "GOVERNMENT WARNING: (1) According to the Surgeon General, women should not "
    "drink alcoholic beverages during pregnancy because of the risk of birth defects. "
    "(2) Consumption of alcoholic beverages impairs your ability to drive a car or "
    "operate machinery, and may cause health problems."
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App settings
    app_name: str = "Label Verification API"
    debug: bool = False
    log_level: str = "INFO"

    # CORS - Allow all origins for prototype (restrict in production)
    cors_origins: list[str] = ["*"]

    # Matching thresholds (regulatory calibration - change only with domain owners)
    fuzzy_match_threshold: float = 0.85
    fuzzy_review_threshold: float = 0.60  # Below this a fuzzy field fails outright
    address_match_threshold: float = 0.90
    address_review_threshold: float = 0.70
    volume_tolerance: float = 0.005  # 0.5% relative difference across unit systems
    strict_case_confidence: float = 0.95
    containment_confidence: float = 0.95  # Class/type where one value contains the other

    # Government warning
    standard_warning_text: str = STANDARD_WARNING_TEXT
    warning_display_length: int = 50  # Truncate warning text in field results

    # Domain lookup tables (abbreviations, regions, historical country names)
    lookup_tables_path: Path = DEFAULT_LOOKUP_TABLES
    country_languages: list[str] = ["de", "es", "fr", "it", "pt"]

    # Multi-image extraction
    max_images_per_label: int = 6
    max_concurrent_extractions: int = 3  # Per-label cap on in-flight extractor calls
    supported_media_types: set = {"image/jpeg", "image/png", "image/webp", "image/gif"}

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
