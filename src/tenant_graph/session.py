from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Collection, Dict, FrozenSet, Iterable, List, Optional, Protocol, Sequence

from .export import ExportPayload, build_export_payload
from .logging import get_logger
from .model.filters import DEFAULT_HIDDEN_NODE_TYPES, FilterOptions, FilterState, extract_filter_options
from .model.payload import GraphEdge, PayloadResult, edge_endpoints, invalid_payload, node_id, parse_payload
from .selection import toggle_selection
from .source import GraphSource
from .util.errors import SourceError
from .view.builder import ViewModel, build_view, empty_view

LOG = get_logger(__name__)


class InteractionMode(str, Enum):
    NORMAL = "normal"
    SELECTING = "selecting"


class Renderer(Protocol):
    """Rendering collaborator; only the calls the session makes are listed."""

    def render(self, nodes: List[Dict[str, Any]], edges: List[Dict[str, Any]], options: Dict[str, Any]) -> None:
        ...

    def select_nodes(self, node_ids: Sequence[str]) -> None:
        ...

    def unselect_all(self) -> None:
        ...

    def focus(self, node_id: str) -> None:
        ...


ExportSink = Callable[[ExportPayload], None]


@dataclass(frozen=True)
class ClickResult:
    action: str  # "detail" | "selection" | "ignored"
    node_id: str
    detail: Optional[Dict[str, Any]] = None
    selection: FrozenSet[str] = frozenset()


class ExplorerSession:
    """
    Interactive state for one explorer view: the current payload, filters,
    interaction mode and export selection.

    Node clicks open details in NORMAL mode and toggle neighborhoods in SELECTING
    mode. Every filter change rebuilds the view model from scratch.
    """

    def __init__(
        self,
        source: GraphSource,
        *,
        renderer: Optional[Renderer] = None,
        export_sink: Optional[ExportSink] = None,
        hidden_node_types: Collection[str] = DEFAULT_HIDDEN_NODE_TYPES,
    ) -> None:
        self._source = source
        self._renderer = renderer
        self._export_sink = export_sink
        self._hidden_node_types = frozenset(hidden_node_types)
        self._payload: PayloadResult = invalid_payload("graph not loaded")
        self._graph_edges: List[GraphEdge] = []
        self._view: ViewModel = empty_view(self._payload.error)
        self._mode = InteractionMode.NORMAL
        self._selected: FrozenSet[str] = frozenset()
        self.filters = FilterState()

    # ----- state accessors -----

    @property
    def mode(self) -> InteractionMode:
        return self._mode

    @property
    def selected_node_ids(self) -> FrozenSet[str]:
        return self._selected

    @property
    def payload(self) -> PayloadResult:
        return self._payload

    @property
    def view(self) -> ViewModel:
        return self._view

    # ----- loading & filtering -----

    def refresh(self) -> ViewModel:
        """Re-fetch the payload, reset type visibility from its stats and rebuild."""
        self._payload = parse_payload(self._source.fetch_graph())
        known = set(self._payload.node_index())
        self._graph_edges = [e for e in self._payload.edges if _endpoints_known(e, known)]
        if self._payload.valid:
            defaults = FilterState()
            defaults.reset(self._payload.stats, self._hidden_node_types)
            self.filters.visible_node_types = defaults.visible_node_types
            self.filters.visible_edge_types = defaults.visible_edge_types
        return self.rebuild()

    def rebuild(self) -> ViewModel:
        self._view = build_view(self._payload, self.filters)
        if self._renderer is not None:
            self._renderer.render(*self._view.render_triple())
        return self._view

    def filter_options(self) -> FilterOptions:
        return extract_filter_options(self._payload.nodes)

    def toggle_node_type(self, type_name: str) -> ViewModel:
        self.filters.toggle_node_type(type_name)
        return self.rebuild()

    def toggle_edge_type(self, type_name: str) -> ViewModel:
        self.filters.toggle_edge_type(type_name)
        return self.rebuild()

    def set_name_filter(self, text: str) -> ViewModel:
        self.filters.name_filter = text or ""
        return self.rebuild()

    def set_facet(self, facet: str, values: Iterable[str]) -> ViewModel:
        self.filters.set_facet(facet, values)
        return self.rebuild()

    def clear_filters(self) -> ViewModel:
        self.filters.reset(self._payload.stats, self._hidden_node_types)
        return self.rebuild()

    # ----- interaction state machine -----

    def toggle_mode(self) -> InteractionMode:
        """Switch between NORMAL and SELECTING; both directions clear the selection."""
        previous = self._mode
        self._mode = InteractionMode.NORMAL if previous is InteractionMode.SELECTING else InteractionMode.SELECTING
        self.clear_selection()
        LOG.info(
            "Interaction mode changed",
            extra={"step": "session", "phase": "mode", "from_mode": previous.value, "to_mode": self._mode.value},
        )
        return self._mode

    def clear_selection(self) -> None:
        self._selected = frozenset()
        if self._renderer is not None:
            self._renderer.unselect_all()

    def click(self, node_id: str) -> ClickResult:
        if self._mode is InteractionMode.SELECTING:
            return self._click_selecting(node_id)
        return self._click_normal(node_id)

    def _click_normal(self, node_id: str) -> ClickResult:
        try:
            detail = self._source.fetch_node_detail(node_id)
        except SourceError as e:
            LOG.warning(
                "Node detail unavailable",
                extra={"step": "session", "phase": "detail", "node_id": node_id, "error": str(e)},
            )
            return ClickResult("ignored", node_id, selection=self._selected)
        return ClickResult("detail", node_id, detail=detail, selection=self._selected)

    def _click_selecting(self, node_id: str) -> ClickResult:
        visible = set(self._view.node_ids())
        if node_id not in visible:
            return ClickResult("ignored", node_id, selection=self._selected)
        self._selected = frozenset(
            toggle_selection(node_id, self._selected, self._graph_edges, visible_ids=visible)
        )
        if self._renderer is not None:
            self._renderer.select_nodes(sorted(self._selected))
        return ClickResult("selection", node_id, selection=self._selected)

    def export(self) -> Optional[ExportPayload]:
        """
        Hand the selection to the export sink and return to NORMAL mode.
        Returns None (and changes nothing) outside SELECTING mode or with an empty selection.
        """
        if self._mode is not InteractionMode.SELECTING or not self._selected:
            return None
        payload = build_export_payload(self._selected, self._payload.nodes)
        if self._export_sink is not None:
            self._export_sink(payload)
        LOG.info(
            "Selection exported",
            extra={"step": "session", "phase": "export", "nodes": len(payload["nodeIds"])},
        )
        self.toggle_mode()
        return payload

    # ----- search -----

    def search(self, query: str, node_type: Optional[str] = None) -> List[str]:
        """Select search hits in the renderer and center on a single hit."""
        if not (query or "").strip():
            return []
        hits = self._source.search_nodes(query, node_type)
        ids = [i for i in (node_id(n) for n in hits) if i is not None]
        if ids and self._renderer is not None:
            self._renderer.select_nodes(ids)
            if len(ids) == 1:
                self._renderer.focus(ids[0])
        return ids


def _endpoints_known(edge: GraphEdge, known: Collection[str]) -> bool:
    source, target = edge_endpoints(edge)
    return source in known and target in known
