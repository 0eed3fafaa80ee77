from __future__ import annotations

import copy
import os
from typing import Any, Dict, Iterable, List, Mapping, Optional

DEFAULT_SOURCE_URL = "http://127.0.0.1:9090"
DEFAULT_TARGET_URL = "http://127.0.0.1:9092"

DEFAULT_RUNTIME: Dict[str, Any] = {
    "job_name": "entity_recon",
    "log_file": None,
    "log_level": "INFO",
    "report_dir": "logs",
    "page_size": 1000,
    "max_pages": 100,
    "max_parallel": 1,
    "dump_snapshots": True,
    "preview_limit": 5,
    "only_types": None,
}


def default_config(env: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """Baseline config; SRC_API / TGT_API override the store addresses."""

    env = os.environ if env is None else env
    return {
        "runtime": dict(DEFAULT_RUNTIME),
        "source": {"base_url": env.get("SRC_API") or DEFAULT_SOURCE_URL},
        "target": {"base_url": env.get("TGT_API") or DEFAULT_TARGET_URL},
    }


def merge_config(base: Dict[str, Any], override: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def validate_config(cfg: Dict[str, Any]) -> None:
    def _positive_int(section: Dict[str, Any], key: str, context: str) -> None:
        value = section.get(key)
        if value is None:
            return
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise ValueError(f"{context}.{key} must be a positive integer")

    def _validate_store(store_cfg: Any, role: str) -> None:
        if not isinstance(store_cfg, dict):
            raise ValueError(f"{role} must be an object")
        base_url = store_cfg.get("base_url") or store_cfg.get("url")
        if not base_url or not isinstance(base_url, str):
            raise ValueError(f"{role}.base_url must be a non-empty string")
        if not base_url.startswith(("http://", "https://")):
            raise ValueError(f"{role}.base_url must be an http(s) URL")
        for key in ["types_path", "records_path", "type_list_field", "count_header"]:
            if key in store_cfg and not isinstance(store_cfg[key], str):
                raise ValueError(f"{role}.{key} must be a string")
        timeout = store_cfg.get("timeout_seconds")
        if timeout is not None:
            if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
                raise ValueError(f"{role}.timeout_seconds must be a positive number")
        headers = store_cfg.get("headers")
        if headers is not None and not isinstance(headers, dict):
            raise ValueError(f"{role}.headers must be an object when provided")

    for key in ["runtime", "source", "target"]:
        if key not in cfg:
            raise ValueError(f"Missing config key: {key}")
    runtime = cfg["runtime"]
    if not isinstance(runtime, dict):
        raise ValueError("runtime must be an object")
    for key in ["page_size", "max_pages", "max_parallel"]:
        _positive_int(runtime, key, "runtime")
    preview = runtime.get("preview_limit")
    if preview is not None and (isinstance(preview, bool) or not isinstance(preview, int) or preview < 0):
        raise ValueError("runtime.preview_limit must be a non-negative integer")
    report_dir = runtime.get("report_dir")
    if not report_dir or not isinstance(report_dir, str):
        raise ValueError("runtime.report_dir must be a non-empty string")
    only_types = runtime.get("only_types")
    if only_types is not None and not isinstance(only_types, (str, list, tuple)):
        raise ValueError("runtime.only_types must be a string or list of strings")
    _validate_store(cfg["source"], "source")
    _validate_store(cfg["target"], "target")


def parse_type_filter(only_types: Any) -> Optional[List[str]]:
    if not only_types:
        return None
    if isinstance(only_types, str):
        entries = only_types.split(",")
    else:
        entries = [str(entry) for entry in only_types]
    allow = [entry.strip() for entry in entries if entry.strip()]
    return allow or None


def filter_types(types: Iterable[str], only_types: Any) -> List[str]:
    allow = parse_type_filter(only_types)
    if not allow:
        return list(types)
    allowed = set(allow)
    return [record_type for record_type in types if record_type in allowed]


__all__ = [
    "DEFAULT_RUNTIME",
    "default_config",
    "merge_config",
    "validate_config",
    "parse_type_filter",
    "filter_types",
]
