"""
Security Group Reachability Graphs

This package inspects cloud security group configurations and builds a directed
graph describing which sources may reach which security groups, and on which
ports. The graph is produced as an ordered script of node/edge operations that
a renderer or an LLM client can replay.

Package Structure:
    models.py - Security group and ingress rule data model
    config.py - Exclude patterns, CIDR mapping table and AWS settings
    graph/    - Graph builder, peer resolver and exclusion filter
    parsers/  - Security group loaders (AWS API or exported JSON)
    tools/    - MCP tool definitions and handlers
"""

__version__ = "0.1.0"
