"""
Graph Building for Security Group Reachability

Exports:
    GraphBuilder - Builds the ordered node/edge op sequence
    build_graph - Functional wrapper around GraphBuilder
    NodeOp, EdgeOp - Graph operations emitted by the builder
    PeerResolver - CIDR to peer-name mapping table
    ExclusionFilter - Regex based name exclusion
"""

from .builder import EdgeOp, GraphBuilder, GraphOp, NodeOp, build_graph, port_label
from .peers import ExclusionFilter, PeerResolver

__all__ = [
    'GraphBuilder',
    'build_graph',
    'port_label',
    'GraphOp',
    'NodeOp',
    'EdgeOp',
    'PeerResolver',
    'ExclusionFilter',
]
