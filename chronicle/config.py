"""Config file support for Chronicle.

Thresholds, windows and the source-priority table are carried in explicit
config objects handed to each component; nothing reads ambient state at call
time.  Defaults can be overridden from:

  1. ~/.chronicle.yaml  (user-level)
  2. ./chronicle.yaml   (project-level, overrides user-level)
  3. CHRONICLE_* environment variables
  4. CLI flags (always win)

Example config file:

    # ~/.chronicle.yaml
    db: sqlite:////var/lib/chronicle/chronicle.db
    title_similarity: 0.6
    content_similarity: 0.5
    feed_threshold: 0.4
    flag_threshold: 0.4
    history_window: 48h
    flag_window: 6h
    priority_file: /etc/chronicle/priority.yaml
"""
import logging
import os
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from chronicle.errors import ConfigError
from chronicle.priority import DEFAULT_RANK, load_source_priority
from chronicle.utils import parse_duration

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path.home() / ".cache" / "chronicle" / "chronicle.db"
DEFAULT_DATABASE_URL = f"sqlite:///{DEFAULT_DB_PATH}"
DEFAULT_HISTORY_WINDOW = timedelta(hours=48)
DEFAULT_FLAG_WINDOW = timedelta(hours=6)

_BOOL_FIELDS = {"verbose", "quiet"}
_INT_FIELDS = {"pool_factor", "workers", "default_rank", "limit"}
_FLOAT_FIELDS = {"title_similarity", "content_similarity", "feed_threshold", "flag_threshold"}
_STR_FIELDS = {"db", "format", "history_window", "flag_window", "priority_file"}
_KNOWN_FIELDS = _BOOL_FIELDS | _INT_FIELDS | _FLOAT_FIELDS | _STR_FIELDS
_ENV_PREFIX = "CHRONICLE_"


def _check_unit(name: str, value: float) -> None:
    if not 0.0 <= value <= 1.0:
        raise ConfigError(f"{name} must be between 0.0 and 1.0, got {value}")


@dataclass(frozen=True)
class IngestThresholds:
    """Similarity cut-offs used when classifying a new candidate."""
    title_similarity: float = 0.60
    content_similarity: float = 0.50

    def __post_init__(self):
        _check_unit("title_similarity", self.title_similarity)
        _check_unit("content_similarity", self.content_similarity)


@dataclass(frozen=True)
class FeedConfig:
    """Read-time feed filter settings.

    The filter runs over a pool of ``limit * pool_factor`` recent articles, so
    its threshold is looser than ingestion's.
    """
    similarity_threshold: float = 0.40
    pool_factor: int = 3

    def __post_init__(self):
        _check_unit("feed similarity_threshold", self.similarity_threshold)
        if self.pool_factor < 1:
            raise ConfigError(f"pool_factor must be >= 1, got {self.pool_factor}")


@dataclass(frozen=True)
class FlaggerConfig:
    """Admin duplicate-flagger settings."""
    similarity_threshold: float = 0.40
    window: timedelta = DEFAULT_FLAG_WINDOW
    priorities: Mapping[str, int] = field(default_factory=load_source_priority)
    default_rank: int = DEFAULT_RANK

    def __post_init__(self):
        _check_unit("flag similarity_threshold", self.similarity_threshold)
        if self.window < timedelta(0):
            raise ConfigError("flag window must not be negative")


@dataclass(frozen=True)
class ChronicleConfig:
    """Everything one ingestion run or one read request needs."""
    ingest: IngestThresholds = field(default_factory=IngestThresholds)
    feed: FeedConfig = field(default_factory=FeedConfig)
    flagger: FlaggerConfig = field(default_factory=FlaggerConfig)
    history_window: timedelta = DEFAULT_HISTORY_WINDOW
    database_url: str = DEFAULT_DATABASE_URL
    workers: int = 4

    def __post_init__(self):
        if self.history_window <= timedelta(0):
            raise ConfigError("history_window must be positive")
        if self.workers < 1:
            raise ConfigError(f"workers must be >= 1, got {self.workers}")


def _config_paths() -> List[Path]:
    """User-level files first, so project-level files override them."""
    home = Path.home()
    return [home / ".chronicle.yaml", home / ".chronicle.yml", Path("chronicle.yaml"), Path("chronicle.yml")]


def _coerce(name: str, value: Any) -> Any:
    """Cast *value* to the type of config key *name*.  Raises ValueError."""
    if name in _BOOL_FIELDS:
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)
    if name in _INT_FIELDS:
        return int(value)
    if name in _FLOAT_FIELDS:
        return float(value)
    return str(value)


def load_config() -> Dict[str, Any]:
    """Merge every config file found into one flat mapping.

    Keys are spelled with underscores whichever way the file writes them
    (``flag-window`` and ``flag_window`` are the same key).
    """
    merged: Dict[str, Any] = {}
    for path in _config_paths():
        if not path.is_file():
            continue
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"[Config] Failed to load {path}: {e}")
            continue
        if not isinstance(data, dict):
            logger.warning(f"[Config] Ignoring {path}: expected a mapping")
            continue
        merged.update({str(k).replace("-", "_"): v for k, v in data.items()})
        logger.debug(f"[Config] Loaded {path}")
    return merged


def load_env_config(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """Config keys taken from ``CHRONICLE_*`` variables.

    ``CHRONICLE_FLAG_WINDOW=3h`` becomes ``flag_window``.  Unknown names are
    skipped; values of the wrong type are skipped with a warning.
    """
    environ = os.environ if environ is None else environ
    found: Dict[str, Any] = {}
    for var, raw in environ.items():
        if not var.startswith(_ENV_PREFIX):
            continue
        name = var[len(_ENV_PREFIX):].lower()
        if name not in _KNOWN_FIELDS:
            continue
        try:
            found[name] = _coerce(name, raw)
        except ValueError:
            logger.warning(f"[Config] Ignoring {var}={raw!r}: not a valid {name}")
    return found


def build_config(values: Optional[Mapping[str, Any]] = None) -> ChronicleConfig:
    """Build a ChronicleConfig from a flat mapping of config keys.

    Unknown keys are ignored; missing keys keep their defaults.  Raises
    ConfigError on out-of-range values or malformed durations.
    """
    values = {k: v for k, v in (values or {}).items() if v is not None}
    try:
        priorities = load_source_priority(values.get("priority_file"))
        return ChronicleConfig(
            ingest=IngestThresholds(
                title_similarity=float(values.get("title_similarity", 0.60)),
                content_similarity=float(values.get("content_similarity", 0.50)),
            ),
            feed=FeedConfig(
                similarity_threshold=float(values.get("feed_threshold", 0.40)),
                pool_factor=int(values.get("pool_factor", 3)),
            ),
            flagger=FlaggerConfig(
                similarity_threshold=float(values.get("flag_threshold", 0.40)),
                window=parse_duration(values.get("flag_window", DEFAULT_FLAG_WINDOW)),
                priorities=priorities,
                default_rank=int(values.get("default_rank", DEFAULT_RANK)),
            ),
            history_window=parse_duration(values.get("history_window", DEFAULT_HISTORY_WINDOW)),
            database_url=str(values.get("db", DEFAULT_DATABASE_URL)),
            workers=int(values.get("workers", 4)),
        )
    except ConfigError:
        raise
    except (TypeError, ValueError) as e:
        raise ConfigError(str(e)) from e


def apply_config_defaults(parser, args):
    """Fill CLI options still at their parser default from env and config files.

    Precedence: CLI flags, then ``CHRONICLE_*`` variables, then project and
    user config files.  Keys with no CLI flag (``pool_factor``,
    ``default_rank``) are attached to *args* too, so ``build_config(vars(args))``
    sees them.
    """
    layered = {**load_config(), **load_env_config()}
    for name, value in layered.items():
        if name not in _KNOWN_FIELDS:
            continue
        if hasattr(args, name) and getattr(args, name) != parser.get_default(name):
            continue
        try:
            setattr(args, name, _coerce(name, value))
        except (TypeError, ValueError):
            logger.warning(f"[Config] Ignoring {name}={value!r}: wrong type")
    return args


_STARTER_CONFIG = """\
# Chronicle configuration — customize your defaults here.
# CLI flags always override these values.

# Article store (any SQLAlchemy URL; ~ is expanded in SQLite paths)
# db: sqlite:///~/.cache/chronicle/chronicle.db

# Ingestion: title / content similarity needed to link a candidate to a cluster
# title_similarity: 0.6
# content_similarity: 0.5

# Only articles published within this window are compared at ingestion
# history_window: 48h

# Read-time feed: titles at or above this similarity are shown once
# feed_threshold: 0.4
# pool_factor: 3

# Admin flagging: similarity threshold and pairing window
# flag_threshold: 0.4
# flag_window: 6h

# YAML file with a `sources:` mapping of source id -> rank (1 = most trusted)
# priority_file: ~/.chronicle-priority.yaml

# Parallel outlet batches during ingestion
# workers: 4
"""


def generate_starter_config() -> Path:
    """Write a starter config file to ~/.chronicle.yaml (won't overwrite existing)."""
    path = Path.home() / ".chronicle.yaml"
    if path.exists():
        path = Path.home() / ".chronicle.yaml.new"
    path.write_text(_STARTER_CONFIG, encoding="utf-8")
    return path
