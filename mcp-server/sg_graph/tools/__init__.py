"""
MCP Tool Definitions for Security Group Graphs

Tools are defined in graph_tools.py and handle:
    - Loading security groups from AWS or an exported JSON file
    - Listing the loaded security groups and their ingress rules
    - Building the reachability graph with exclusion and CIDR mapping
"""
