"""
Parsers for Security Group Configurations

This package contains the data-source adapters that turn cloud security group
configurations into the graph data model (sg_graph.models).

Exports:
    AWSSecurityGroupsParser - Loader for AWS Security Groups (API or exported JSON)
    parse_security_groups - Convert raw describe_security_groups data
    port_identifier - Raw port identifier for one AWS IpPermissions entry
"""

from .aws_security_groups import (
    AWSSecurityGroupsParser,
    parse_security_groups,
    port_identifier,
)

__all__ = [
    'AWSSecurityGroupsParser',
    'parse_security_groups',
    'port_identifier',
]
