"""
Security Group Graph Builder

Turns a batch of security groups into an ordered script of graph operations:
one node per (non-excluded) group followed by one edge per ingress rule, from
the resolved peer to the group.

The output order is part of the contract. Consumers replay the ops in sequence,
so for every group its NodeOp comes first, then its edges in rule order, and
groups appear in input order.

Classes:
    NodeOp: Declares a graph node for a security group
    EdgeOp: Declares a directed, labelled edge from a peer to a security group
    GraphBuilder: Builds the op sequence with peer resolution, exclusion and dedup

Functions:
    build_graph: Convenience wrapper around GraphBuilder
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple, Union

from ..models import CidrRule, GroupRule, IngressRule, SecurityGroup
from .peers import ExclusionFilter, PeerResolver

logger = logging.getLogger(__name__)

EDGE_COLOR = 'blue'


@dataclass(frozen=True)
class NodeOp:
    """Graph node for a security group in the batch."""
    name: str
    kind: str = field(default='node', init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {'op': self.kind, 'name': self.name}


@dataclass(frozen=True)
class EdgeOp:
    """
    Directed edge from a peer to the security group it may reach.

    Attributes:
        source: Peer name (source group name or resolved CIDR)
        target: Destination security group name
        label: Port label, '<port>/tcp'
        color: Edge color, always 'blue'
    """
    source: str
    target: str
    label: str
    color: str = EDGE_COLOR
    kind: str = field(default='edge', init=False)

    @property
    def attributes(self) -> Dict[str, str]:
        return {'color': self.color, 'label': self.label}

    def to_dict(self) -> Dict[str, Any]:
        return {
            'op': self.kind,
            'from': self.source,
            'to': self.target,
            'attributes': self.attributes,
        }


GraphOp = Union[NodeOp, EdgeOp]


def port_label(port: str) -> str:
    return f"{port}/tcp"


class GraphBuilder:
    """
    Builds graph operations from security groups.

    The peer resolver and exclusion filter are injected at construction; both
    default to no-ops (identity mapping, nothing excluded).

    Exclusion rules:
        - An excluded group emits no node and no edges.
        - An edge whose resolved peer is excluded is dropped.
        - Excluding a peer never affects the peer's own node or its own edges.

    Edges are deduplicated on (peer, group, label) after CIDR resolution, so
    several ranges mapped to the same name collapse into one edge. The first
    occurrence wins.

    Usage:
        builder = GraphBuilder(PeerResolver({'127.0.0.1/32': 'Work'}),
                               ExclusionFilter(['App']))
        ops = builder.build(groups)
    """

    def __init__(self, resolver: Optional[PeerResolver] = None,
                 exclusion_filter: Optional[ExclusionFilter] = None):
        self.resolver = resolver if resolver is not None else PeerResolver()
        self.exclusion_filter = exclusion_filter if exclusion_filter is not None else ExclusionFilter()

    def peer_name(self, rule: IngressRule) -> str:
        """
        Resolve the display name of a rule's source.

        Raises:
            TypeError: If the rule is neither a GroupRule nor a CidrRule
        """
        if isinstance(rule, GroupRule):
            return rule.source_group_name
        if isinstance(rule, CidrRule):
            return self.resolver.resolve(rule.cidr_block)
        raise TypeError(f"Unsupported ingress rule type: {type(rule).__name__}")

    def build(self, groups: Iterable[SecurityGroup]) -> List[GraphOp]:
        ops: List[GraphOp] = []
        seen: Set[Tuple[str, str, str]] = set()

        for group in groups:
            if not isinstance(group, SecurityGroup):
                raise TypeError(f"Expected SecurityGroup, got {type(group).__name__}")

            group_excluded = self.exclusion_filter.matches(group.name)
            if not group_excluded:
                ops.append(NodeOp(group.name))

            for rule in group.ingress_rules:
                # Unknown rule variants fail even inside excluded groups
                peer = self.peer_name(rule)
                if group_excluded or self.exclusion_filter.matches(peer):
                    logger.debug("Excluded edge %s -> %s (%s)", peer, group.name, rule.port)
                    continue

                label = port_label(rule.port)
                key = (peer, group.name, label)
                if key in seen:
                    logger.debug("Duplicate edge %s -> %s (%s) skipped", *key)
                    continue
                seen.add(key)
                ops.append(EdgeOp(peer, group.name, label))

        logger.debug("Built %d graph operations", len(ops))
        return ops


def build_graph(groups: Iterable[SecurityGroup],
                resolver: Optional[PeerResolver] = None,
                exclusion_filter: Optional[ExclusionFilter] = None) -> List[GraphOp]:
    """
    Build the graph op sequence for a batch of security groups.

    Args:
        groups: Security groups in the order they should be drawn
        resolver: CIDR to peer-name mapping (identity if omitted)
        exclusion_filter: Names to hide (nothing hidden if omitted)

    Returns:
        Ordered list of NodeOp and EdgeOp
    """
    return GraphBuilder(resolver, exclusion_filter).build(groups)
