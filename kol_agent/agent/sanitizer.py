"""
Tool argument cleaning, applied to model-produced arguments before validation.

Models sometimes invent KOL ids ("kol_1", "fashion-influencer") or send empty
strings for optional fields. Those are removed here so the call proceeds as if
the field had been omitted; the call itself is never rejected.
"""

import copy
import logging
from typing import Any

from kol_agent.schemas.tools import is_uuid

logger = logging.getLogger(__name__)

# Nested objects whose optional members may be pruned when blank.
_FILTER_OBJECTS = ("kol_criteria", "criteria", "filters")
_RANGE_OBJECTS = ("follower_range", "date_range")


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _prune_blank(obj: dict) -> None:
    """Drop None / blank-string members of a filter object and of its range objects, in place."""
    for key in [k for k, v in obj.items() if _is_blank(v)]:
        del obj[key]
    for range_key in _RANGE_OBJECTS:
        inner = obj.get(range_key)
        if isinstance(inner, dict):
            for key in [k for k, v in inner.items() if _is_blank(v)]:
                del inner[key]


def _clean_kol_id(tool_name: str, filters: dict) -> None:
    if "kol_id" not in filters:
        return
    kol_id = filters["kol_id"]
    if not isinstance(kol_id, str) or not kol_id.strip() or not is_uuid(kol_id):
        del filters["kol_id"]
        logger.info("[sanitizer:%s] dropped invalid kol_id=%r", tool_name, kol_id)
    else:
        filters["kol_id"] = kol_id.strip()


def _clean_kol_ids(tool_name: str, filters: dict) -> None:
    if "kol_ids" not in filters:
        return
    raw = filters["kol_ids"]
    valid = [i.strip() for i in raw if isinstance(i, str) and is_uuid(i)] if isinstance(raw, list) else []
    if valid:
        filters["kol_ids"] = valid
        if len(valid) != len(raw):
            logger.info("[sanitizer:%s] narrowed kol_ids %d -> %d", tool_name, len(raw), len(valid))
    else:
        del filters["kol_ids"]
        logger.info("[sanitizer:%s] dropped kol_ids=%r (no valid UUIDs)", tool_name, raw)


def sanitize_tool_args(tool_name: str, raw_args: Any) -> dict:
    """
    Return a cleaned copy of the raw tool arguments; the input is never mutated.

    - analyze_posts: filters.kol_id is dropped unless it is a non-blank UUID string.
    - aggregate_metrics: filters.kol_ids keeps only UUID strings; dropped if none remain.
    - any tool: blank optional members of filter and range objects are dropped.
    """
    if not isinstance(raw_args, dict):
        return {}
    args = copy.deepcopy(raw_args)

    for key in _FILTER_OBJECTS:
        obj = args.get(key)
        if isinstance(obj, dict):
            _prune_blank(obj)
        elif obj is None and key in args:
            del args[key]

    filters = args.get("filters")
    if isinstance(filters, dict):
        if tool_name == "analyze_posts":
            _clean_kol_id(tool_name, filters)
        elif tool_name == "aggregate_metrics":
            _clean_kol_ids(tool_name, filters)
    return args
