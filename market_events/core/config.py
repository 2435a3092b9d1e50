"""Configuration loading and validation."""
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from market_events.models import Instrument

logger = logging.getLogger(__name__)

DEFAULT_FMP_BASE_URL = "https://financialmodelingprep.com/api/v3"
INSTRUMENT_SOURCES = ("live", "static")
MACRO_SOURCES = ("live", "file")


class ConfigError(Exception):
    """Raised when configuration is invalid."""

    pass


@dataclass
class FMPConfig:
    """Financial Modeling Prep API configuration."""

    api_key: str
    base_url: str = DEFAULT_FMP_BASE_URL
    timeout_seconds: float = 30.0
    max_concurrency: int = 10


@dataclass
class DataStoreConfig:
    """Data store configuration."""

    backend: str
    path: str


@dataclass
class InstrumentsConfig:
    """Instrument directory configuration."""

    source: str = "live"
    symbols: list[Instrument] = field(default_factory=list)
    max_symbols: int | None = None


@dataclass
class MacroConfig:
    """Economic calendar configuration."""

    source: str = "live"
    path: str | None = None
    date_format: str = "%m-%d-%Y"
    lookback_days: int = 7
    lookahead_days: int = 30


@dataclass
class IngestionConfig:
    """Ingestion run configuration."""

    interval_hours: float = 24.0
    include_corporate_actions: bool = True


@dataclass
class Config:
    """Main configuration container."""

    fmp: FMPConfig
    data_store: DataStoreConfig
    instruments: InstrumentsConfig
    macro: MacroConfig
    ingestion: IngestionConfig


def _parse_symbols(raw_symbols: list[Any]) -> list[Instrument]:
    instruments = []
    for entry in raw_symbols:
        if not isinstance(entry, dict):
            raise ConfigError(f"Invalid instrument entry: {entry!r}")
        instrument = Instrument.create(entry.get("symbol"), entry.get("currency"))
        if instrument is None:
            raise ConfigError(f"Instrument entry needs symbol and currency: {entry!r}")
        instruments.append(instrument)
    return instruments


def _number(section: dict[str, Any], name: str, key: str, default: Any, cast: type) -> Any:
    value = section.get(key, default)
    try:
        return cast(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{name}.{key} must be a number, got {value!r}") from e


def load_config(path: str) -> Config:
    """Load configuration from YAML file.

    Args:
        path: Path to YAML configuration file

    Returns:
        Config object with validated configuration

    Raises:
        ConfigError: If file not found, invalid YAML, or missing required fields
    """
    config_path = Path(path)

    if not config_path.exists():
        raise ConfigError(f"Configuration file not found: {path}")

    try:
        with open(config_path) as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML: {e}") from e

    if raw is None:
        raise ConfigError("Configuration file is empty")

    # Validate required sections
    required_sections = ["fmp", "data_store"]
    for section in required_sections:
        if section not in raw:
            raise ConfigError(f"Missing required configuration section: {section}")

    # Parse FMP config
    fmp_raw = raw["fmp"] or {}
    fmp = FMPConfig(
        api_key=fmp_raw.get("api_key") or os.environ.get("FMP_API_KEY", ""),
        base_url=fmp_raw.get("base_url", DEFAULT_FMP_BASE_URL),
        timeout_seconds=_number(fmp_raw, "fmp", "timeout_seconds", 30.0, float),
        max_concurrency=_number(fmp_raw, "fmp", "max_concurrency", 10, int),
    )
    if fmp.max_concurrency < 1:
        raise ConfigError("fmp.max_concurrency must be at least 1")

    # Parse data store config
    ds_raw = raw["data_store"] or {}
    data_store = DataStoreConfig(
        backend=ds_raw.get("backend", "file"),
        path=ds_raw.get("path", "./data"),
    )
    if data_store.backend != "file":
        raise ConfigError(f"Unsupported data store backend: {data_store.backend}")

    # Parse instrument directory config
    inst_raw = raw.get("instruments") or {}
    max_symbols = inst_raw.get("max_symbols")
    if max_symbols is not None:
        max_symbols = _number(inst_raw, "instruments", "max_symbols", None, int)
    instruments = InstrumentsConfig(
        source=inst_raw.get("source", "live"),
        symbols=_parse_symbols(inst_raw.get("symbols", [])),
        max_symbols=max_symbols,
    )
    if instruments.source not in INSTRUMENT_SOURCES:
        raise ConfigError(f"Unknown instruments source: {instruments.source}")

    # Parse macro calendar config
    macro_raw = raw.get("macro") or {}
    macro = MacroConfig(
        source=macro_raw.get("source", "live"),
        path=macro_raw.get("path"),
        date_format=macro_raw.get("date_format", "%m-%d-%Y"),
        lookback_days=_number(macro_raw, "macro", "lookback_days", 7, int),
        lookahead_days=_number(macro_raw, "macro", "lookahead_days", 30, int),
    )
    if macro.source not in MACRO_SOURCES:
        raise ConfigError(f"Unknown macro source: {macro.source}")
    if macro.source == "file" and not macro.path:
        raise ConfigError("macro.path is required when macro.source is 'file'")

    # Parse ingestion config
    ing_raw = raw.get("ingestion") or {}
    ingestion = IngestionConfig(
        interval_hours=_number(ing_raw, "ingestion", "interval_hours", 24.0, float),
        include_corporate_actions=bool(ing_raw.get("include_corporate_actions", True)),
    )

    config = Config(
        fmp=fmp,
        data_store=data_store,
        instruments=instruments,
        macro=macro,
        ingestion=ingestion,
    )

    logger.info(f"Loaded configuration from {path}")
    logger.debug(f"FMP: {fmp.base_url} (api key {'set' if fmp.api_key else 'missing'})")
    logger.debug(f"Instruments: source={instruments.source}, static={len(instruments.symbols)}")
    logger.debug(f"Macro: source={macro.source}, path={macro.path}")

    return config
