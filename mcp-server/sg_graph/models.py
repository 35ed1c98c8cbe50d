"""
Data Model for Security Group Reachability Graphs

This module defines the in-memory representation of security groups that the
graph builder consumes. It is deliberately independent of any cloud API: the
AWS parser (see parsers/aws_security_groups.py) converts raw API responses into
these types, and tests construct them directly.

Classes:
    GroupRule: Ingress rule whose source is another security group
    CidrRule: Ingress rule whose source is a raw IP range
    SecurityGroup: A named security group and its ordered ingress rules

Types:
    IngressRule: Union of GroupRule and CidrRule
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Tuple, Union


@dataclass(frozen=True)
class GroupRule:
    """
    Ingress rule allowing traffic from another security group.

    The source group may be external, i.e. not part of the batch being graphed
    (another account, a load balancer group, etc.).

    Attributes:
        source_group_name: Name of the security group traffic originates from
        port: Raw port identifier as supplied by the data source (e.g. '22')
    """
    source_group_name: str
    port: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'kind': 'group',
            'source_group_name': self.source_group_name,
            'port': self.port,
        }


@dataclass(frozen=True)
class CidrRule:
    """
    Ingress rule allowing traffic from an IP range.

    Attributes:
        cidr_block: Source range in slash notation (e.g. '127.0.0.1/32')
        port: Raw port identifier as supplied by the data source (e.g. '22')
    """
    cidr_block: str
    port: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'kind': 'cidr',
            'cidr_block': self.cidr_block,
            'port': self.port,
        }


IngressRule = Union[GroupRule, CidrRule]


@dataclass(frozen=True)
class SecurityGroup:
    """
    A security group as seen by the graph builder.

    Identity is the name; names are assumed unique within one batch.

    Attributes:
        name: Security group name (used as the graph node name)
        ingress_rules: Ingress rules in data-source order
    """
    name: str
    ingress_rules: Tuple[IngressRule, ...] = field(default_factory=tuple)

    def __post_init__(self):
        # Accept any iterable of rules but store an immutable tuple
        object.__setattr__(self, 'ingress_rules', tuple(self.ingress_rules))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'ingress_rules': [rule.to_dict() for rule in self.ingress_rules],
        }
