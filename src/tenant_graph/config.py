from __future__ import annotations

import argparse
import json
import os
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from .model.filters import DEFAULT_HIDDEN_NODE_TYPES
from .source import DEFAULT_SEARCH_LIMIT

# --------
# Defaults
# --------
DEFAULT_EXPORT_NAME = "selection.json"
ALLOWED_CONFIG_KEYS = {
    "payload",
    "hidden_node_types",
    "search_limit",
    "json_logs",
    "log_level",
    "outdir",
}
BOOL_CONFIG_KEYS = {"json_logs"}
INT_CONFIG_KEYS = {"search_limit"}
PATH_CONFIG_KEYS = {"payload", "outdir"}
STR_CONFIG_KEYS = {"log_level"}
LIST_CONFIG_KEYS = {"hidden_node_types"}


@dataclass(frozen=True)
class ExplorerConfig:
    # General
    payload: Optional[Path] = None
    outdir: Path = field(default_factory=Path.cwd)
    json_logs: bool = False
    log_level: str = "INFO"

    # Explorer defaults
    hidden_node_types: Tuple[str, ...] = tuple(sorted(DEFAULT_HIDDEN_NODE_TYPES))
    search_limit: int = DEFAULT_SEARCH_LIMIT

    # Per-command arguments
    show_types: Tuple[str, ...] = ()
    hide_types: Tuple[str, ...] = ()
    hide_edge_types: Tuple[str, ...] = ()
    name_filter: str = ""
    tags: Tuple[str, ...] = ()
    regions: Tuple[str, ...] = ()
    resource_groups: Tuple[str, ...] = ()
    subscriptions: Tuple[str, ...] = ()
    node_ids: Tuple[str, ...] = ()
    query: Optional[str] = None
    search_type: Optional[str] = None
    out: Optional[Path] = None
    parquet: bool = False


def _parse_config_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text) or {}
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ValueError(f"Failed to parse config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ValueError("Top-level config must be an object")
    return data


def _env_str(name: str) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None:
        return None
    raw = raw.strip()
    if not raw:
        return None
    return raw


def _env_bool(name: str) -> Optional[bool]:
    raw = _env_str(name)
    if raw is None:
        return None
    return raw.lower() in {"1", "true", "yes", "on"}


def _env_int(name: str) -> Optional[int]:
    raw = _env_str(name)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def _coerce_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        raw = value.strip().lower()
        if raw in {"1", "true", "yes", "on"}:
            return True
        if raw in {"0", "false", "no", "off"}:
            return False
    raise ValueError(f"Config field '{key}' must be a boolean")


def _coerce_int(key: str, value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return int(value)
        except ValueError:
            pass
    raise ValueError(f"Config field '{key}' must be an integer")


def _split_list(key: str, value: Any) -> List[str]:
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return [v.strip() for v in value if v.strip()]
    raise ValueError(f"Config field '{key}' must be a list of strings or comma-separated string")


def _normalize_config_file(data: Dict[str, Any]) -> Dict[str, Any]:
    unknown = sorted(set(data.keys()) - ALLOWED_CONFIG_KEYS)
    if unknown:
        warnings.warn(f"Unknown config keys ignored: {', '.join(unknown)}")
    normalized: Dict[str, Any] = {}
    for key, value in data.items():
        if key not in ALLOWED_CONFIG_KEYS:
            continue
        if value is None:
            normalized[key] = None
        elif key in LIST_CONFIG_KEYS:
            normalized[key] = _split_list(key, value)
        elif key in BOOL_CONFIG_KEYS:
            normalized[key] = _coerce_bool(key, value)
        elif key in INT_CONFIG_KEYS:
            normalized[key] = _coerce_int(key, value)
        elif key in PATH_CONFIG_KEYS:
            if not isinstance(value, (str, Path)):
                raise ValueError(f"Config field '{key}' must be a string path")
            normalized[key] = value
        elif key in STR_CONFIG_KEYS:
            if not isinstance(value, str):
                raise ValueError(f"Config field '{key}' must be a string")
            normalized[key] = value
    return _compact_dict(normalized)


def _compact_dict(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Drop keys with None values so they don't override lower-precedence config.
    """
    return {k: v for k, v in data.items() if v is not None}


def _merge_dicts(a: Dict[str, Any], b: Dict[str, Any]) -> Dict[str, Any]:
    """
    Shallow merge: values in b override a.
    """
    merged = dict(a)
    merged.update(b)
    return merged


def _csv_args(values: Optional[List[str]]) -> Tuple[str, ...]:
    """Flatten repeatable flags that may also hold comma-separated values."""
    out: List[str] = []
    for value in values or []:
        out.extend(v.strip() for v in value.split(",") if v.strip())
    return tuple(out)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tg-explore", description="Tenant graph explorer")
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_common(p: argparse.ArgumentParser) -> None:
        p.add_argument("--config", type=Path, help="Optional YAML/JSON config file")
        p.add_argument("--payload", type=Path, default=None, help="Graph payload JSON document")
        p.add_argument(
            "--json-logs",
            action=argparse.BooleanOptionalAction,
            default=None,
            help="Enable JSON logs",
        )
        p.add_argument("--log-level", default=None, help="Log level (INFO, DEBUG, ...)")

    def add_filters(p: argparse.ArgumentParser) -> None:
        p.add_argument("--show-type", action="append", default=None, help="Make a node type visible (repeatable)")
        p.add_argument("--hide-type", action="append", default=None, help="Hide a node type (repeatable)")
        p.add_argument("--hide-edge-type", action="append", default=None, help="Hide an edge type (repeatable)")
        p.add_argument("--name", dest="name_filter", default=None, help="Case-insensitive name substring")
        p.add_argument("--tag", action="append", default=None, help="Tag name filter (repeatable)")
        p.add_argument("--region", action="append", default=None, help="Region/location filter (repeatable)")
        p.add_argument("--resource-group", action="append", default=None, help="Resource group filter (repeatable)")
        p.add_argument("--subscription", action="append", default=None, help="Subscription filter (repeatable)")

    p_view = subparsers.add_parser("view", help="Build the filtered view model")
    add_common(p_view)
    add_filters(p_view)
    p_view.add_argument("--out", type=Path, default=None, help="Write {nodes, edges, options} JSON here")

    p_node = subparsers.add_parser("node", help="Show one node with its neighbors")
    add_common(p_node)
    p_node.add_argument("node_ids", nargs=1, metavar="NODE_ID")

    p_search = subparsers.add_parser("search", help="Search nodes by name")
    add_common(p_search)
    p_search.add_argument("query")
    p_search.add_argument("--type", dest="search_type", default=None, help="Restrict to a node type")
    p_search.add_argument("--limit", dest="search_limit", type=int, default=None, help="Max results")

    p_select = subparsers.add_parser("select", help="Select node neighborhoods and export them")
    add_common(p_select)
    add_filters(p_select)
    p_select.add_argument("node_ids", nargs="+", metavar="NODE_ID", help="Nodes to click, in order")
    p_select.add_argument("--out", type=Path, default=None, help=f"Export file (default {DEFAULT_EXPORT_NAME})")
    p_select.add_argument(
        "--parquet",
        action=argparse.BooleanOptionalAction,
        default=False,
        help="Also write Parquet (pyarrow)",
    )

    p_opts = subparsers.add_parser("filter-options", help="List values available to attribute filters")
    add_common(p_opts)

    p_legend = subparsers.add_parser("legend", help="List node/edge types with their styles")
    add_common(p_legend)

    return parser


def load_explorer_config(
    args: Optional[argparse.Namespace] = None,
    argv: Optional[List[str]] = None,
) -> Tuple[str, ExplorerConfig]:
    """
    Build ExplorerConfig by merging defaults, optional config file, env vars, and CLI args.
    Precedence (low -> high): defaults < config file < env < CLI.

    Returns:
      (command, ExplorerConfig) where command is one of: view|node|search|select|filter-options|legend
    """
    ns = args if args is not None else build_parser().parse_args(argv)
    command = ns.command

    base: Dict[str, Any] = {
        "payload": None,
        "outdir": None,
        "json_logs": False,
        "log_level": "INFO",
        "hidden_node_types": sorted(DEFAULT_HIDDEN_NODE_TYPES),
        "search_limit": DEFAULT_SEARCH_LIMIT,
    }

    file_cfg: Dict[str, Any] = {}
    if getattr(ns, "config", None):
        file_cfg = _normalize_config_file(_parse_config_file(Path(ns.config)))

    env_hidden = _env_str("TG_HIDDEN_NODE_TYPES")
    env_cfg: Dict[str, Any] = _compact_dict(
        {
            "payload": _env_str("TG_PAYLOAD"),
            "outdir": _env_str("TG_OUTDIR"),
            "json_logs": _env_bool("TG_JSON_LOGS"),
            "log_level": _env_str("TG_LOG_LEVEL"),
            "hidden_node_types": _split_list("hidden_node_types", env_hidden) if env_hidden else None,
            "search_limit": _env_int("TG_SEARCH_LIMIT"),
        }
    )

    cli_cfg: Dict[str, Any] = _compact_dict(
        {
            "payload": getattr(ns, "payload", None),
            "json_logs": getattr(ns, "json_logs", None),
            "log_level": getattr(ns, "log_level", None),
            "search_limit": getattr(ns, "search_limit", None),
        }
    )

    merged = _merge_dicts(base, _merge_dicts(file_cfg, _merge_dicts(env_cfg, cli_cfg)))

    raw_limit = merged.get("search_limit")
    search_limit = int(raw_limit) if raw_limit is not None else DEFAULT_SEARCH_LIMIT
    if search_limit < 1:
        raise ValueError("search_limit must be >= 1")

    payload = Path(merged["payload"]) if merged.get("payload") else None
    outdir = Path(merged["outdir"]) if merged.get("outdir") else Path.cwd()
    out = getattr(ns, "out", None)
    if command == "select" and out is None:
        out = outdir / DEFAULT_EXPORT_NAME

    cfg = ExplorerConfig(
        payload=payload,
        outdir=outdir,
        json_logs=bool(merged["json_logs"]),
        log_level=str(merged.get("log_level") or "INFO").upper(),
        hidden_node_types=tuple(merged.get("hidden_node_types") or ()),
        search_limit=search_limit,
        show_types=_csv_args(getattr(ns, "show_type", None)),
        hide_types=_csv_args(getattr(ns, "hide_type", None)),
        hide_edge_types=_csv_args(getattr(ns, "hide_edge_type", None)),
        name_filter=getattr(ns, "name_filter", None) or "",
        tags=_csv_args(getattr(ns, "tag", None)),
        regions=_csv_args(getattr(ns, "region", None)),
        resource_groups=_csv_args(getattr(ns, "resource_group", None)),
        subscriptions=_csv_args(getattr(ns, "subscription", None)),
        node_ids=tuple(getattr(ns, "node_ids", None) or ()),
        query=getattr(ns, "query", None),
        search_type=getattr(ns, "search_type", None),
        out=Path(out) if out is not None else None,
        parquet=bool(getattr(ns, "parquet", False)),
    )
    return command, cfg


def dump_config(cfg: ExplorerConfig) -> Dict[str, Any]:
    return {
        "payload": str(cfg.payload) if cfg.payload else None,
        "outdir": str(cfg.outdir),
        "json_logs": cfg.json_logs,
        "log_level": cfg.log_level,
        "hidden_node_types": list(cfg.hidden_node_types),
        "search_limit": cfg.search_limit,
    }
