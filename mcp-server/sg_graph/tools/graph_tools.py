"""
MCP Tools for Security Group Graph Queries

This module defines the MCP tools (functions) that LLMs can call to load
security groups and build the reachability graph between them.

Tools:
    - get_config: Load security groups from AWS or an exported JSON file, or get summary of already-loaded groups
    - list_security_groups: List loaded security groups with their ingress rules
    - build_graph: Build the ordered node/edge operations of the reachability graph

Design Philosophy:
    - MCP server = Data access layer (load groups, build the graph script)
    - Client = Rendering and analysis (draws or reasons about the ops)
    - Read-only: No configuration modification capabilities
"""

from typing import Optional, List, Dict, Any
from mcp.types import Tool, TextContent
import json
import os

from ..config import GraphConfig
from ..graph import EdgeOp, NodeOp, build_graph
from ..parsers.aws_security_groups import AWSSecurityGroupsParser


# Global parser instance (in-memory storage)
# Once security groups are loaded, subsequent tool calls operate on the same data
_parser: Optional[AWSSecurityGroupsParser] = None


def get_graph_tools() -> List[Tool]:
    """
    Get list of MCP tools available for security group graphs.

    Returns:
        List[Tool]: List of MCP tool definitions
    """
    return [
        Tool(
            name="get_config",
            description=(
                "Load AWS Security Groups directly from AWS or from an exported JSON file "
                "(output of 'aws ec2 describe-security-groups'), or get summary of already-loaded groups. "
                "Loads security groups by VPC ID, specific group IDs, or all groups in the region when load_all is true. "
                "If called without any source and groups are already loaded, returns the summary without reloading. "
                "Requires AWS credentials to be configured when loading from AWS."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "vpc_id": {
                        "type": "string",
                        "description": "AWS VPC ID to load all security groups from (e.g., 'vpc-production-001')"
                    },
                    "security_group_ids": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "List of specific security group IDs to load (e.g., ['sg-prod-db-001'])"
                    },
                    "load_all": {
                        "type": "boolean",
                        "description": "Load every security group in the region (default: false)"
                    },
                    "file_path": {
                        "type": "string",
                        "description": "Path to an exported describe-security-groups JSON file to load instead of calling AWS"
                    },
                    "aws_region": {
                        "type": "string",
                        "description": "AWS region to use (optional - auto-detected from AWS profile/config if not specified, defaults to 'us-east-1')"
                    },
                    "aws_profile": {
                        "type": "string",
                        "description": "AWS profile name to use for credentials (defaults to default profile)"
                    }
                },
                "required": []
            }
        ),
        Tool(
            name="list_security_groups",
            description=(
                "List the loaded security groups with their ingress rules. "
                "Each rule is either group-sourced (another security group) or CIDR-sourced. "
                "Must call get_config first to load security groups."
            ),
            inputSchema={
                "type": "object",
                "properties": {},
                "required": []
            }
        ),
        Tool(
            name="build_graph",
            description=(
                "Build the reachability graph of the loaded security groups as an ordered list of operations. "
                "Each security group yields a node operation followed by one edge operation per ingress rule, "
                "from the source peer to the group, labelled '<port>/tcp'. "
                "CIDR blocks can be collapsed into named peers with cidr_mapping; "
                "groups and peers whose name matches an exclude pattern are left out. "
                "Must call get_config first to load security groups."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "exclude": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "Regular expressions; any group or peer name they match anywhere is excluded (e.g., ['127.*', 'App'])"
                    },
                    "cidr_mapping": {
                        "type": "object",
                        "additionalProperties": {"type": "string"},
                        "description": "CIDR block to peer display name (e.g., {'127.0.0.1/32': 'Work'})"
                    },
                    "config_path": {
                        "type": "string",
                        "description": "Path to a JSON config file with 'exclude' and 'cidr_mapping' (defaults to SG_GRAPH_CONFIG)"
                    }
                },
                "required": []
            }
        )
    ]


def _text(data: Dict[str, Any]) -> List[TextContent]:
    return [TextContent(type="text", text=json.dumps(data, indent=2))]


async def handle_get_config(arguments: Dict[str, Any]) -> List[TextContent]:
    """
    Handle get_config tool call - loads security groups, or returns summary of already-loaded groups.

    Args:
        arguments: Dictionary containing tool arguments:
            - vpc_id (str, optional): VPC ID to load all security groups from
            - security_group_ids (list[str], optional): Specific security group IDs to load
            - load_all (bool, optional): Load every security group in the region
            - file_path (str, optional): Exported JSON file to load instead of AWS
            - aws_region (str, optional): AWS region
            - aws_profile (str, optional): AWS profile name for credentials

    Returns:
        List[TextContent]: JSON response with status, message and summary,
        or an error object
    """
    global _parser

    vpc_id = arguments.get("vpc_id")
    security_group_ids = arguments.get("security_group_ids")
    load_all = arguments.get("load_all", False)
    file_path = arguments.get("file_path")

    # If no source specified, return summary of what is already loaded
    if not (vpc_id or security_group_ids or load_all or file_path):
        if _parser is None:
            return _text({
                "error": "Either vpc_id, security_group_ids, load_all or file_path must be provided to load security groups, or security groups must already be loaded"
            })
        summary = _parser.get_summary()
        return _text({
            "status": "success",
            "message": f"Summary of loaded security groups: {summary.get('aws_source') or summary.get('config_path')}",
            "summary": summary
        })

    try:
        # Only AWS settings matter here; exclude/mapping config is read by build_graph
        parser = AWSSecurityGroupsParser(
            aws_region=arguments.get("aws_region"),
            aws_profile=arguments.get("aws_profile") or os.environ.get("AWS_PROFILE"),
        )

        if file_path:
            parser.parse_file(file_path)
            message = f"Security groups loaded from file: {file_path}"
        else:
            parser.load_from_aws(vpc_id=vpc_id, security_group_ids=security_group_ids)
            message = f"Security groups loaded from AWS: {parser.aws_source}"

        _parser = parser
        return _text({
            "status": "success",
            "message": message,
            "summary": parser.get_summary()
        })
    except Exception as e:
        # Return error as JSON for the client to handle
        return _text({"error": str(e)})


async def handle_list_security_groups(arguments: Dict[str, Any]) -> List[TextContent]:
    """
    Handle list_security_groups tool call - lists loaded groups and their ingress rules.

    Returns:
        List[TextContent]: JSON response containing:
            - total: Number of security groups
            - security_groups: List of {name, ingress_rules} dictionaries
    """
    if _parser is None:
        return _text({"error": "No security groups loaded. Call get_config first."})

    groups = _parser.security_groups
    return _text({
        "total": len(groups),
        "security_groups": [sg.to_dict() for sg in groups]
    })


async def handle_build_graph(arguments: Dict[str, Any]) -> List[TextContent]:
    """
    Handle build_graph tool call - builds the reachability graph of the loaded groups.

    Exclude patterns and mapping entries passed as arguments are added on top
    of the config file (config_path argument, else SG_GRAPH_CONFIG).

    Args:
        arguments: Dictionary containing tool arguments:
            - exclude (list[str], optional): Exclude patterns
            - cidr_mapping (dict, optional): CIDR block to peer name
            - config_path (str, optional): JSON config file

    Returns:
        List[TextContent]: JSON response containing:
            - ops: Ordered node/edge operations
            - nodes: Number of node operations
            - edges: Number of edge operations
            - config: Effective exclude patterns and mapping

    Example Response:
        {
            "ops": [
                {"op": "node", "name": "Db"},
                {"op": "edge", "from": "Work", "to": "Db",
                 "attributes": {"color": "blue", "label": "22/tcp"}}
            ],
            "nodes": 1,
            "edges": 1,
            "config": {...}
        }
    """
    if _parser is None:
        return _text({"error": "No security groups loaded. Call get_config first."})

    try:
        config_path = arguments.get("config_path")
        base_config = GraphConfig.load(config_path) if config_path else GraphConfig.from_env()
        config = base_config.merged(
            exclude=arguments.get("exclude"),
            cidr_mapping=arguments.get("cidr_mapping"),
        )

        ops = build_graph(_parser.security_groups, config.peer_resolver(), config.exclusion_filter())

        return _text({
            "ops": [op.to_dict() for op in ops],
            "nodes": sum(1 for op in ops if isinstance(op, NodeOp)),
            "edges": sum(1 for op in ops if isinstance(op, EdgeOp)),
            "config": {
                "exclude": config.exclude,
                "cidr_mapping": config.cidr_mapping,
                "config_path": str(config.config_path) if config.config_path else None,
            }
        })
    except Exception as e:
        return _text({"error": str(e)})


async def handle_tool_call(tool_name: str, arguments: Dict[str, Any]) -> List[TextContent]:
    """
    Route tool calls to appropriate handler functions.

    Args:
        tool_name: Name of the tool to execute (must match tool definitions)
        arguments: Dictionary of arguments for the tool call

    Returns:
        List[TextContent]: Response from the handler function, or error JSON
        for an unknown tool name
    """
    handlers = {
        "get_config": handle_get_config,
        "list_security_groups": handle_list_security_groups,
        "build_graph": handle_build_graph,
    }

    handler = handlers.get(tool_name)
    if not handler:
        return _text({"error": f"Unknown tool: {tool_name}"})

    return await handler(arguments or {})
