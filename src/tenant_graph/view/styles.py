from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

DEFAULT_NODE_COLOR = "#95A5A6"

NODE_COLORS: Dict[str, str] = {
    # Core hierarchy
    "Tenant": "#FF6B6B",
    "Subscription": "#4ECDC4",
    "ResourceGroup": "#45B7D1",
    "Resource": "#96CEB4",
    "Region": "#FFA500",
    # Compute
    "VirtualMachines": "#FFEAA7",
    "VirtualMachine": "#FFEAA7",
    "Disks": "#DDA0DD",
    "AvailabilitySets": "#F0E68C",
    "VirtualMachineScaleSets": "#FFB347",
    # Storage
    "StorageAccounts": "#74B9FF",
    "StorageAccount": "#74B9FF",
    # Network
    "VirtualNetworks": "#6C5CE7",
    "VirtualNetwork": "#6C5CE7",
    "PrivateEndpoint": "#FF69B4",
    "NetworkInterfaces": "#A29BFE",
    "NetworkInterface": "#A29BFE",
    "NetworkSecurityGroups": "#9966CC",
    "PublicIPAddresses": "#87CEEB",
    "LoadBalancers": "#20B2AA",
    "ApplicationGateways": "#4682B4",
    # Security
    "KeyVaults": "#DC143C",
    "SecurityCenter": "#8B0000",
    # Databases
    "SqlServers": "#FF4500",
    "CosmosDBAccounts": "#FF6347",
    # Web
    "Websites": "#32CD32",
    "AppServicePlans": "#228B22",
    "FunctionApps": "#9ACD32",
    # Containers
    "ContainerInstances": "#48D1CC",
    "ContainerRegistries": "#00CED1",
    "KubernetesClusters": "#5F9EA0",
    # Identity
    "User": "#FD79A8",
    "ServicePrincipal": "#FDCB6E",
    "Application": "#E17055",
    "Group": "#00B894",
    "Role": "#00CEC9",
    # Monitoring
    "LogAnalytics": "#CD853F",
    "ApplicationInsights": "#D2691E",
}

Dashes = Union[bool, Tuple[int, ...]]


@dataclass(frozen=True)
class EdgeStyle:
    color: str
    width: int = 2
    dashes: Dashes = False
    arrows: str = "to"

    def as_dict(self) -> Dict[str, Any]:
        dashes: Any = list(self.dashes) if isinstance(self.dashes, tuple) else self.dashes
        return {"color": self.color, "width": self.width, "dashes": dashes, "arrows": self.arrows}


DEFAULT_EDGE_STYLE = EdgeStyle(color="#95A5A6", width=1)

EDGE_STYLES: Dict[str, EdgeStyle] = {
    "CONTAINS": EdgeStyle(color="#2E86DE", width=3),
    "USES_IDENTITY": EdgeStyle(color="#10AC84", dashes=(5, 5)),
    "CONNECTED_TO": EdgeStyle(color="#FF9F43"),
    "DEPENDS_ON": EdgeStyle(color="#A55EEA", dashes=(10, 5)),
    "HAS_ROLE": EdgeStyle(color="#EE5A52"),
    "MEMBER_OF": EdgeStyle(color="#FD79A8"),
    "ASSIGNED_TO": EdgeStyle(color="#00CEC9"),
    "MANAGES": EdgeStyle(color="#FDCB6E", dashes=(3, 3)),
    "INHERITS": EdgeStyle(color="#6C5CE7", dashes=(8, 3)),
    "ACCESSES": EdgeStyle(color="#A29BFE"),
    "OWNS": EdgeStyle(color="#00B894", width=3),
    "SUBSCRIBES_TO": EdgeStyle(color="#E17055", dashes=(15, 5)),
    "PART_OF": EdgeStyle(color="#74B9FF"),
    "DELEGATES_TO": EdgeStyle(color="#55A3FF", dashes=(7, 7)),
    "ENABLES": EdgeStyle(color="#26DE81"),
}

CUSTOM_EDGE_DESCRIPTION = "Custom relationship type"

EDGE_DESCRIPTIONS: Dict[str, str] = {
    "CONTAINS": "Hierarchical containment relationship",
    "USES_IDENTITY": "Uses identity or authentication",
    "CONNECTED_TO": "Network or direct connection",
    "DEPENDS_ON": "Has a dependency on another resource",
    "HAS_ROLE": "Has assigned role or permission",
    "MEMBER_OF": "Is a member of a group or collection",
    "ASSIGNED_TO": "Is assigned to a specific resource",
    "MANAGES": "Has management authority over",
    "INHERITS": "Inherits properties or permissions",
    "ACCESSES": "Has access to a resource",
    "OWNS": "Has ownership of a resource",
    "SUBSCRIBES_TO": "Subscribes to events or notifications",
    "PART_OF": "Is part of a larger structure",
    "DELEGATES_TO": "Delegates authority or responsibility",
    "ENABLES": "Enables functionality or access",
}

NODE_SHAPE = "dot"
NODE_SIZE = 20
NODE_FONT = {"size": 12, "color": "#2c3e50"}
EDGE_FONT = {"size": 10, "align": "middle", "background": "white"}

DEFAULT_RENDER_OPTIONS: Dict[str, Any] = {
    "nodes": {"font": {"size": 12}},
    "edges": {"smooth": {"type": "continuous", "roundness": 0.5}},
    "physics": {
        "enabled": True,
        "solver": "forceAtlas2Based",
        "forceAtlas2Based": {
            "gravitationalConstant": -50,
            "centralGravity": 0.01,
            "springLength": 100,
            "springConstant": 0.08,
            "damping": 0.4,
            "avoidOverlap": 0.5,
        },
        "stabilization": {"enabled": True, "iterations": 200, "updateInterval": 10},
    },
    "interaction": {"hover": True, "tooltipDelay": 200, "navigationButtons": False, "keyboard": True},
    "layout": {"improvedLayout": True},
}


def node_color(type_name: Optional[str]) -> str:
    return NODE_COLORS.get(type_name or "", DEFAULT_NODE_COLOR)


def edge_style(type_name: Optional[str]) -> EdgeStyle:
    return EDGE_STYLES.get(type_name or "", DEFAULT_EDGE_STYLE)


def edge_description(type_name: Optional[str]) -> str:
    return EDGE_DESCRIPTIONS.get(type_name or "", CUSTOM_EDGE_DESCRIPTION)


@dataclass(frozen=True)
class LegendEntry:
    kind: str  # "node" | "edge"
    type_name: str
    count: int
    color: str
    description: Optional[str] = None


def legend_entries(stats: Optional[Mapping[str, Any]]) -> List[LegendEntry]:
    """Legend rows for the node and edge types present in a payload, sorted by type."""
    stats = stats if isinstance(stats, Mapping) else {}
    out: List[LegendEntry] = []
    node_types = stats.get("nodeTypes")
    if isinstance(node_types, Mapping):
        for name in sorted(node_types):
            out.append(LegendEntry("node", name, int(node_types[name] or 0), node_color(name)))
    edge_types = stats.get("edgeTypes")
    if isinstance(edge_types, Mapping):
        for name in sorted(edge_types):
            out.append(
                LegendEntry(
                    "edge",
                    name,
                    int(edge_types[name] or 0),
                    edge_style(name).color,
                    description=edge_description(name),
                )
            )
    return out
