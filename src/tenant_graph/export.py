from __future__ import annotations

from pathlib import Path
from typing import Any, AbstractSet, Dict, List, Mapping, Optional, Sequence, TypedDict

from .logging import get_logger
from .model.payload import get_str_prop, node_id, node_label, node_type
from .util.errors import ExportError
from .util.serialization import stable_json_dumps

LOG = get_logger(__name__)


class NodeDetail(TypedDict):
    id: str
    type: Optional[str]
    label: Optional[str]
    resourceName: Optional[str]
    azureId: Optional[str]


class ExportPayload(TypedDict):
    nodeIds: List[str]
    nodeDetails: List[NodeDetail]


def _resolve_detail(ident: str, node: Optional[Mapping[str, Any]]) -> NodeDetail:
    if node is None:
        return {"id": ident, "type": None, "label": None, "resourceName": None, "azureId": None}
    return {
        "id": ident,
        "type": node_type(node),
        "label": node_label(node),
        "resourceName": get_str_prop(node, "resourceName"),
        "azureId": get_str_prop(node, "azureId") or get_str_prop(node, "id"),
    }


def build_export_payload(
    selected_ids: AbstractSet[str],
    nodes: Sequence[Mapping[str, Any]],
) -> ExportPayload:
    """
    Resolve a selection into the payload handed to the IaC generation step.
    Ids follow payload node order; ids with no matching node go last, sorted.
    """
    ordered: List[str] = []
    by_id: Dict[str, Mapping[str, Any]] = {}
    for node in nodes:
        ident = node_id(node)
        if ident is None or ident in by_id:
            continue
        by_id[ident] = node
        if ident in selected_ids:
            ordered.append(ident)
    ordered.extend(sorted(i for i in selected_ids if i not in by_id))
    return {
        "nodeIds": ordered,
        "nodeDetails": [_resolve_detail(i, by_id.get(i)) for i in ordered],
    }


def write_export_json(payload: ExportPayload, path: Path) -> Path:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(stable_json_dumps(payload) + "\n", encoding="utf-8")
    except OSError as e:
        raise ExportError(f"Failed to write selection export {path}: {e}") from e
    LOG.info(
        "Selection export written",
        extra={"step": "export", "phase": "complete", "artifact": "json", "nodes": len(payload["nodeIds"])},
    )
    return path


class ParquetNotAvailable(ExportError):
    pass


def _require_pyarrow():
    try:
        import pyarrow as pa  # type: ignore
        import pyarrow.parquet as pq  # type: ignore
    except ImportError as e:  # pragma: no cover
        raise ParquetNotAvailable(
            "pyarrow is required for Parquet export. Install with: pip install .[parquet]"
        ) from e
    return pa, pq


def write_export_parquet(payload: ExportPayload, path: Path) -> Path:
    """One row per selected node with its resolved metadata."""
    pa, pq = _require_pyarrow()
    path.parent.mkdir(parents=True, exist_ok=True)
    schema = pa.schema(
        [
            pa.field("id", pa.string(), nullable=False),
            pa.field("type", pa.string()),
            pa.field("label", pa.string()),
            pa.field("resourceName", pa.string()),
            pa.field("azureId", pa.string()),
        ]
    )
    rows = [dict(detail) for detail in payload["nodeDetails"]]
    try:
        table = pa.Table.from_pylist(rows, schema=schema)
        pq.write_table(table, path)
    except (pa.ArrowException, OSError) as e:
        LOG.error(
            "Parquet export failed",
            extra={"step": "export", "phase": "error", "artifact": "parquet", "error": str(e)},
        )
        raise ExportError(f"Failed to write Parquet export {path}: {e}") from e
    LOG.info(
        "Selection export written",
        extra={"step": "export", "phase": "complete", "artifact": "parquet", "nodes": len(rows)},
    )
    return path
