"""Source-priority table lookups for Chronicle."""
import logging
import os
from pathlib import Path
from typing import Dict, Mapping, Optional, Union

import yaml

logger = logging.getLogger(__name__)

DEFAULT_RANK = 99
_PACKAGED = os.path.join(os.path.dirname(__file__), "source_priority.yaml")


def load_source_priority(path: Optional[Union[str, Path]] = None) -> Dict[str, int]:
    """Load a ``{source_id: rank}`` table from YAML.

    Without *path* the packaged table is used.  A missing or unreadable file
    yields an empty table, which ranks every source equally.
    """
    yaml_path = os.path.expanduser(str(path)) if path else _PACKAGED
    try:
        with open(yaml_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        table = {str(k): int(v) for k, v in (data.get("sources") or {}).items()}
        logger.debug(f"[Priority] Loaded {len(table)} source ranks from {yaml_path}")
        return table
    except Exception as e:
        logger.warning(f"[Priority] Failed to load {yaml_path}: {e}")
        return {}


def source_rank(source_id: str, priorities: Mapping[str, int], default: int = DEFAULT_RANK) -> int:
    """Rank of *source_id*; exact match, then case-insensitive, else *default*."""
    if source_id in priorities:
        return priorities[source_id]
    lowered = source_id.lower()
    for key, rank in priorities.items():
        if key.lower() == lowered:
            return rank
    return default
