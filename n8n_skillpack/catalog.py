"""
Node catalog loading for the n8n skill pack
Reads the collected node catalog and optional usage statistics into NodeRecords
"""

import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .models.nodes import NodeRecord

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class CatalogError(Exception):
    """The node catalog cannot be read"""


def _read_json(path: Path) -> Any:
    if not path.exists():
        raise CatalogError(f"Catalog file not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise CatalogError(f"Invalid JSON in {path}: {e}") from e
    except OSError as e:
        raise CatalogError(f"Cannot read {path}: {e}") from e


def parse_node_records(items: List[Any]) -> List[NodeRecord]:
    """Convert raw catalog entries, skipping malformed and duplicate ones"""
    records: List[NodeRecord] = []
    seen = set()

    for index, item in enumerate(items):
        if not isinstance(item, dict) or not item.get("nodeType") or not item.get("displayName"):
            logger.warning(f"Skipping catalog entry #{index}: missing nodeType or displayName")
            continue

        node_type = item["nodeType"]
        if node_type in seen:
            logger.warning(f"Skipping duplicate catalog entry for {node_type}")
            continue

        try:
            record = NodeRecord.from_dict(item)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping catalog entry {node_type}: {e}")
            continue

        seen.add(node_type)
        records.append(record)

    return records


def load_node_catalog(path: PathLike) -> List[NodeRecord]:
    """Load a JSON array of nodes (or {"nodes": [...]})"""
    path = Path(path)
    data = _read_json(path)
    if isinstance(data, dict):
        data = data.get("nodes")
    if not isinstance(data, list):
        raise CatalogError(f"Expected a list of nodes in {path}")

    records = parse_node_records(data)
    logger.info(f"Loaded {len(records)} nodes from {path} ({len(data) - len(records)} skipped)")
    return records


def load_usage_stats(path: PathLike) -> Dict[str, Dict[str, float]]:
    """Load {nodeType: {count, percentage}}"""
    path = Path(path)
    data = _read_json(path)
    if not isinstance(data, dict):
        raise CatalogError(f"Expected an object keyed by node type in {path}")
    return data


def apply_usage_stats(records: List[NodeRecord], stats: Optional[Dict[str, Dict[str, float]]]) -> List[NodeRecord]:
    if not stats:
        return list(records)

    merged = []
    matched = 0
    for record in records:
        entry = stats.get(record.node_type)
        if not isinstance(entry, dict):
            merged.append(record)
            continue
        try:
            usage_count = max(int(entry.get("count") or 0), 0)
            usage_percentage = float(entry.get("percentage") or 0.0)
        except (TypeError, ValueError) as e:
            logger.warning(f"Ignoring usage statistics for {record.node_type}: {e}")
            merged.append(record)
            continue

        matched += 1
        merged.append(replace(record, usage_count=usage_count, usage_percentage=usage_percentage))

    logger.info(f"Applied usage statistics to {matched}/{len(records)} nodes")
    return merged
