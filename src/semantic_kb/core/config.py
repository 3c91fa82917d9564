"""
Configuration for the semantic knowledge base.

Values are resolved in three layers: dataclass defaults, an optional YAML
file, then environment variable overrides.

Example YAML:

    store:
      path: data/embeddings.json
    embedding:
      base_url: http://localhost:11434
      model: nomic-embed-text
      timeout_seconds: 60
    generation:
      model: llama3.2
    retrieval:
      threshold: 0.5
      top_k: 4
    chunking:
      delimiter: "."
      max_chunks_per_source: 1000   # omit for no cap
    ingest:
      batch_size: 32
      max_workers: 4
    logging:
      level: INFO
      structured: false
"""

import logging
import math
import os
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from .exceptions import ConfigError


logger = logging.getLogger(__name__)


DEFAULT_STORE_PATH = "data/embeddings.json"
DEFAULT_BASE_URL = "http://localhost:11434"
DEFAULT_EMBED_MODEL = "nomic-embed-text"
DEFAULT_GENERATION_MODEL = "llama3.2"
DEFAULT_THRESHOLD = 0.5
DEFAULT_TOP_K = 4

# (yaml section, yaml key) -> KBConfig attribute
_YAML_KEYS = {
    ("store", "path"): "store_path",
    ("embedding", "base_url"): "base_url",
    ("embedding", "model"): "embed_model",
    ("embedding", "timeout_seconds"): "timeout_seconds",
    ("generation", "model"): "generation_model",
    ("generation", "temperature"): "temperature",
    ("retrieval", "threshold"): "threshold",
    ("retrieval", "top_k"): "top_k",
    ("chunking", "delimiter"): "delimiter",
    ("chunking", "max_chunks_per_source"): "max_chunks_per_source",
    ("ingest", "batch_size"): "batch_size",
    ("ingest", "max_workers"): "max_workers",
    ("logging", "level"): "log_level",
    ("logging", "structured"): "structured_logs",
}

# Attributes whose default is None (unset)
_OPTIONAL_INT_KEYS = {"max_chunks_per_source"}

# env var -> (KBConfig attribute, converter)
_ENV_KEYS = {
    "KB_STORE_PATH": ("store_path", str),
    "OLLAMA_BASE_URL": ("base_url", str),
    "OLLAMA_EMBED_MODEL": ("embed_model", str),
    "OLLAMA_MODEL": ("generation_model", str),
    "KB_TIMEOUT_SECONDS": ("timeout_seconds", float),
    "KB_THRESHOLD": ("threshold", float),
    "KB_TOP_K": ("top_k", int),
    "KB_MAX_WORKERS": ("max_workers", int),
    "KB_LOG_LEVEL": ("log_level", str),
}


@dataclass
class KBConfig:
    """
    Resolved configuration.
    
    Attributes:
        store_path: Path of the JSON embedding store
        base_url: Base URL of the Ollama API
        embed_model: Embedding model name
        generation_model: Text generation model name
        temperature: Sampling temperature for generation
        timeout_seconds: Per-request timeout for provider calls
        threshold: Default similarity threshold (strict)
        top_k: Default number of results
        delimiter: Sentence delimiter for the reference chunker
        max_chunks_per_source: Cap on passages per ingested source (None: no cap)
        batch_size: Texts per embed_batch call during ingestion
        max_workers: Parallel embedding batches during ingestion
        log_level: Logging level name
        structured_logs: Emit JSON log lines instead of plain text
    """
    store_path: str = DEFAULT_STORE_PATH
    base_url: str = DEFAULT_BASE_URL
    embed_model: str = DEFAULT_EMBED_MODEL
    generation_model: str = DEFAULT_GENERATION_MODEL
    temperature: float = 0.0
    timeout_seconds: float = 120.0
    threshold: float = DEFAULT_THRESHOLD
    top_k: int = DEFAULT_TOP_K
    delimiter: str = "."
    max_chunks_per_source: Optional[int] = None
    batch_size: int = 32
    max_workers: int = 1
    log_level: str = "INFO"
    structured_logs: bool = False
    
    def validate(self) -> List[str]:
        """Validate configuration and return any issues."""
        issues = []
        
        if not self.store_path:
            issues.append("store_path must not be empty")
        if self.timeout_seconds <= 0:
            issues.append("timeout_seconds must be > 0")
        if math.isnan(self.threshold) or not -1.0 <= self.threshold <= 1.0:
            issues.append(f"threshold must be within [-1, 1], got {self.threshold}")
        if self.top_k < 0:
            issues.append(f"top_k must be >= 0, got {self.top_k}")
        if not self.delimiter:
            issues.append("delimiter must not be empty")
        if self.max_chunks_per_source is not None and self.max_chunks_per_source < 1:
            issues.append("max_chunks_per_source must be >= 1")
        if self.batch_size < 1:
            issues.append("batch_size must be >= 1")
        if self.max_workers < 1:
            issues.append("max_workers must be >= 1")
        if logging.getLevelName(self.log_level.upper()) not in (
            logging.DEBUG, logging.INFO, logging.WARNING, logging.ERROR, logging.CRITICAL
        ):
            issues.append(f"Invalid log_level: {self.log_level}")
        
        return issues
    
    @property
    def log_level_value(self) -> int:
        """Numeric logging level."""
        return logging.getLevelName(self.log_level.upper())
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return asdict(self)


def _read_yaml(config_path: Path) -> Dict[str, Any]:
    """Load a YAML config file into a dict."""
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")
    
    logger.info(f"Loading config from: {config_path}")
    
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e
    
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping at top level")
    return data


def _coerce(attr: str, value: Any, default: Any) -> Any:
    """Coerce a YAML value to the type of the attribute default."""
    if isinstance(default, bool):
        if isinstance(value, bool):
            return value
        raise ConfigError(f"{attr} must be true or false, got {value!r}")
    convert = type(default)
    if attr in _OPTIONAL_INT_KEYS:
        if value is None:
            return None
        convert = int
    try:
        return convert(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid value for {attr}: {value!r}") from e


def _apply_yaml(config: KBConfig, data: Dict[str, Any]) -> None:
    for (section, key), attr in _YAML_KEYS.items():
        section_data = data.get(section)
        if isinstance(section_data, dict) and key in section_data:
            value = _coerce(attr, section_data[key], getattr(config, attr))
            setattr(config, attr, value)


def _apply_env_overrides(config: KBConfig, environ: Dict[str, str]) -> None:
    for env_name, (attr, convert) in _ENV_KEYS.items():
        raw = environ.get(env_name)
        if raw is None or raw == "":
            continue
        try:
            setattr(config, attr, convert(raw))
        except ValueError as e:
            raise ConfigError(f"Invalid value for {env_name}: {raw!r}") from e


def load_config(
    config_path: Optional[Union[str, Path]] = None,
    environ: Optional[Dict[str, str]] = None,
) -> KBConfig:
    """
    Build a validated KBConfig.
    
    Args:
        config_path: Optional path to a YAML config file
        environ: Environment mapping (defaults to os.environ)
        
    Returns:
        Resolved configuration
        
    Raises:
        ConfigError: If the file cannot be read or values are invalid
    """
    config = KBConfig()
    
    if config_path is not None:
        _apply_yaml(config, _read_yaml(Path(config_path)))
    
    _apply_env_overrides(config, os.environ if environ is None else environ)
    
    issues = config.validate()
    if issues:
        raise ConfigError("Invalid configuration: " + "; ".join(issues))
    
    return config
