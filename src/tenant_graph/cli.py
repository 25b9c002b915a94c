from __future__ import annotations

import logging
import sys
from time import perf_counter
from typing import Any, Dict, List, Optional

from .config import ExplorerConfig, dump_config, load_explorer_config
from .export import write_export_json, write_export_parquet
from .logging import LogConfig, get_logger, setup_logging
from .session import ExplorerSession
from .source import FileGraphSource
from .util.console import (
    render_export_summary,
    render_filter_options,
    render_legend,
    render_node_detail,
    render_search_results,
    render_view_summary,
)
from .util.errors import ConfigError, ExportError, PayloadError, as_exit_code
from .util.serialization import stable_json_dumps
from .view.styles import legend_entries

LOG = get_logger(__name__)


class _StepTimers:
    def __init__(self) -> None:
        self._starts: Dict[str, float] = {}

    def start(self, key: str) -> None:
        self._starts[key] = perf_counter()

    def finish(self, key: str) -> Optional[int]:
        started = self._starts.pop(key, None)
        if started is None:
            return None
        return int((perf_counter() - started) * 1000)


def _log_event(
    logger: Any,
    level: int,
    message: str,
    *,
    step: str,
    phase: str,
    timers: Optional[_StepTimers] = None,
    **extra: Any,
) -> None:
    duration_ms = None
    if timers is not None:
        if phase == "start":
            timers.start(step)
        elif phase in {"complete", "error"}:
            duration_ms = timers.finish(step)
    payload: Dict[str, Any] = {"step": step, "phase": phase, "event": f"{step}.{phase}"}
    if duration_ms is not None:
        payload["duration_ms"] = duration_ms
    payload.update(extra)
    logger.log(level, message, extra=payload)


def _open_source(cfg: ExplorerConfig) -> FileGraphSource:
    if cfg.payload is None:
        raise ConfigError("A graph payload is required (--payload, TG_PAYLOAD or config 'payload')")
    return FileGraphSource(cfg.payload, search_limit=cfg.search_limit)


def _load_session(cfg: ExplorerConfig) -> ExplorerSession:
    session = ExplorerSession(_open_source(cfg), hidden_node_types=cfg.hidden_node_types)
    session.refresh()
    if not session.payload.valid:
        raise PayloadError(f"Invalid graph payload: {session.payload.error}")
    return session


def _apply_filter_args(session: ExplorerSession, cfg: ExplorerConfig) -> None:
    filters = session.filters
    filters.visible_node_types.update(cfg.show_types)
    filters.visible_node_types.difference_update(cfg.hide_types)
    filters.visible_edge_types.difference_update(cfg.hide_edge_types)
    filters.name_filter = cfg.name_filter
    filters.set_facet("tags", cfg.tags)
    filters.set_facet("regions", cfg.regions)
    filters.set_facet("resource_groups", cfg.resource_groups)
    filters.set_facet("subscriptions", cfg.subscriptions)
    session.rebuild()


def cmd_view(cfg: ExplorerConfig) -> int:
    timers = _StepTimers()
    _log_event(LOG, logging.INFO, "View build started", step="view", phase="start", timers=timers)
    session = _load_session(cfg)
    _apply_filter_args(session, cfg)
    view = session.view
    _log_event(
        LOG,
        logging.INFO,
        "View build complete",
        step="view",
        phase="complete",
        timers=timers,
        visible_nodes=len(view.visible_nodes),
        visible_edges=len(view.visible_edges),
        dangling_edges=view.dangling_edges,
    )
    render_view_summary(view, session.payload.stats)
    if cfg.out is not None:
        nodes, edges, options = view.render_triple()
        try:
            cfg.out.parent.mkdir(parents=True, exist_ok=True)
            cfg.out.write_text(
                stable_json_dumps({"nodes": nodes, "edges": edges, "options": options}) + "\n",
                encoding="utf-8",
            )
        except OSError as e:
            raise ExportError(f"Failed to write view model {cfg.out}: {e}") from e
        print(f"Wrote {cfg.out}")
    return 0


def cmd_node(cfg: ExplorerConfig) -> int:
    source = _open_source(cfg)
    render_node_detail(source.fetch_node_detail(cfg.node_ids[0]))
    return 0


def cmd_search(cfg: ExplorerConfig) -> int:
    source = _open_source(cfg)
    render_search_results(source.search_nodes(cfg.query or "", cfg.search_type))
    return 0


def cmd_select(cfg: ExplorerConfig) -> int:
    session = _load_session(cfg)
    _apply_filter_args(session, cfg)
    session.toggle_mode()
    for node_id in cfg.node_ids:
        result = session.click(node_id)
        if result.action == "ignored":
            LOG.warning(
                "Node is not visible; click ignored",
                extra={"step": "select", "phase": "click", "node_id": node_id},
            )
    payload = session.export()
    if payload is None:
        raise ExportError("Nothing selected; no export written")

    out = cfg.out or (cfg.outdir / "selection.json")
    paths: List[str] = [str(write_export_json(payload, out))]
    if cfg.parquet:
        paths.append(str(write_export_parquet(payload, out.with_suffix(".parquet"))))
    render_export_summary(payload["nodeDetails"], paths)
    return 0


def cmd_filter_options(cfg: ExplorerConfig) -> int:
    session = _load_session(cfg)
    render_filter_options(session.filter_options())
    return 0


def cmd_legend(cfg: ExplorerConfig) -> int:
    session = _load_session(cfg)
    render_legend(legend_entries(session.payload.stats))
    return 0


COMMANDS = {
    "view": cmd_view,
    "node": cmd_node,
    "search": cmd_search,
    "select": cmd_select,
    "filter-options": cmd_filter_options,
    "legend": cmd_legend,
}


def main(argv: Optional[List[str]] = None) -> None:
    try:
        command, cfg = load_explorer_config(argv=argv)
        setup_logging(LogConfig(level=cfg.log_level, json_logs=cfg.json_logs))
        LOG.debug("Configuration resolved", extra={"command": command, "config": dump_config(cfg)})

        handler = COMMANDS.get(command)
        if handler is None:
            raise ConfigError(f"Unknown command: {command}")
        sys.exit(handler(cfg))
    except SystemExit:
        raise
    except BrokenPipeError:
        # Common when users pipe to `head`; avoid logging after stdout is closed.
        sys.exit(0)
    except Exception as e:
        setup_logging(LogConfig())
        LOG.error("Execution failed", extra={"error": str(e)})
        sys.exit(as_exit_code(e))


if __name__ == "__main__":
    main()
