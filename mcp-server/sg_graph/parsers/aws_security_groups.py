"""
Parser for AWS Security Groups Configuration

This module loads AWS Security Groups and converts them into the graph data
model (sg_graph.models). Only ingress rules matter for the reachability graph:
each rule names a source (another security group or a CIDR block) and a port.

Groups can be loaded directly from the EC2 API or from an exported JSON file
(e.g. the output of `aws ec2 describe-security-groups`).

Classes:
    AWSSecurityGroupsParser: Loads security groups and keeps them in API order

Functions:
    parse_security_groups: Convert raw describe_security_groups data to SecurityGroup objects
    port_identifier: Derive the raw port identifier for one IpPermissions entry

Key Features:
    - Direct AWS API integration via boto3
    - Support for CIDR blocks (IPv4 and IPv6) and security group references
    - Read-only operations (no configuration modification)
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import boto3
from botocore.exceptions import ClientError, NoCredentialsError

from ..config import resolve_aws_region
from ..models import CidrRule, GroupRule, IngressRule, SecurityGroup

logger = logging.getLogger(__name__)


def port_identifier(permission: Dict[str, Any]) -> str:
    """
    Derive the raw port identifier for an IpPermissions entry.

    Returns:
        'all' for protocol -1 or missing ports, the single port when FromPort
        equals ToPort, otherwise '<from>-<to>'. A port of -1 (ICMP type/code
        wildcard) is open-ended.

    Example:
        {'IpProtocol': 'tcp', 'FromPort': 22, 'ToPort': 22} -> '22'
        {'IpProtocol': 'tcp', 'FromPort': 1024, 'ToPort': 65535} -> '1024-65535'
        {'IpProtocol': '-1'} -> 'all'
        {'IpProtocol': 'icmp', 'FromPort': 8, 'ToPort': -1} -> '8'
    """
    protocol = str(permission.get('IpProtocol', '-1'))
    from_port = permission.get('FromPort')
    to_port = permission.get('ToPort')

    if protocol in ('-1', 'all') or from_port is None or from_port == -1:
        return 'all'
    if to_port is None or to_port == -1 or from_port == to_port:
        return str(from_port)
    return f"{from_port}-{to_port}"


def _ingress_rules(permissions: List[Dict[str, Any]]) -> List[IngressRule]:
    rules: List[IngressRule] = []
    for permission in permissions:
        port = port_identifier(permission)

        # Security group references first, then IPv4 and IPv6 ranges
        for pair in permission.get('UserIdGroupPairs', []):
            # Cross-account pairs may carry only the group ID
            source = pair.get('GroupName') or pair.get('GroupId')
            if not source:
                raise ValueError(f"Security group reference without GroupName or GroupId: {pair!r}")
            rules.append(GroupRule(source_group_name=source, port=port))

        for ip_range in permission.get('IpRanges', []):
            rules.append(CidrRule(cidr_block=ip_range['CidrIp'], port=port))

        for ip_range in permission.get('Ipv6Ranges', []):
            rules.append(CidrRule(cidr_block=ip_range['CidrIpv6'], port=port))

    return rules


def parse_security_groups(sg_list: List[Dict[str, Any]]) -> List[SecurityGroup]:
    """
    Convert describe_security_groups entries into SecurityGroup objects.

    Input order is preserved; it becomes the drawing order of the graph.
    Egress rules are ignored.

    Raises:
        ValueError: If a group has no GroupName or a rule has no usable source
    """
    groups = []
    for sg_data in sg_list:
        name = sg_data.get('GroupName')
        if not name:
            raise ValueError(f"Security group without GroupName: {sg_data.get('GroupId', '<unknown>')}")
        groups.append(SecurityGroup(name=name, ingress_rules=_ingress_rules(sg_data.get('IpPermissions', []))))
    return groups


class AWSSecurityGroupsParser:
    """
    Loader for AWS Security Groups.

    Supports loading security groups directly from AWS API or from exported JSON
    files. The loaded groups are kept in API order so the graph is drawn
    consistently between runs.

    Usage:
        parser = AWSSecurityGroupsParser(aws_region='us-east-1')
        groups = parser.load_from_aws(vpc_id='vpc-production-001')
        ops = build_graph(groups)
    """

    def __init__(self, aws_region: Optional[str] = None, aws_profile: Optional[str] = None):
        """
        Initialize parser with AWS configuration.

        Args:
            aws_region: AWS region to use for API calls. Auto-detected from the
                environment or profile config if not provided.
            aws_profile: AWS profile name to use for credentials (defaults to default profile)

        Security Note:
            **NEVER hardcode AWS credentials in this code.**
            Credentials are resolved by boto3 from the profile, environment
            variables, ~/.aws/credentials or an IAM role.
        """
        self.security_groups: List[SecurityGroup] = []

        # Path to config file if loaded from file (None if loaded from AWS)
        self.config_path: Optional[Path] = None

        # Source tracking for AWS loads (e.g., "AWS VPC: vpc-production-001")
        self.aws_source: Optional[str] = None

        self.aws_profile = aws_profile
        self.aws_region = resolve_aws_region(aws_region, aws_profile)

        # Lazy-loaded EC2 client (created on first AWS API call)
        self._ec2_client = None

    def parse_file(self, file_path: str) -> List[SecurityGroup]:
        """
        Parse AWS Security Groups from exported JSON file.

        Supports multiple JSON formats:
        - Array of security groups: [{"GroupName": "...", ...}, ...]
        - Object with SecurityGroups key: {"SecurityGroups": [...]}
        - Single security group object: {"GroupName": "...", ...}

        Raises:
            FileNotFoundError: If file doesn't exist
            ValueError: If JSON structure is invalid
        """
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"Security groups file not found: {file_path}")

        with open(path, 'r') as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid JSON in {file_path}: {e}") from e

        if isinstance(data, list):
            sg_list = data
        elif isinstance(data, dict):
            sg_list = data.get('SecurityGroups', [data] if 'GroupName' in data else [])
        else:
            raise ValueError(f"Invalid JSON structure in {file_path}")

        self.security_groups = parse_security_groups(sg_list)
        self.config_path = path
        self.aws_source = None
        logger.debug("Loaded %d security groups from %s", len(self.security_groups), path)
        return self.security_groups

    def _get_ec2_client(self):
        if self._ec2_client is None:
            # Session handles credential resolution - NEVER pass credentials directly
            session = boto3.Session(
                profile_name=self.aws_profile,
                region_name=self.aws_region
            )
            self._ec2_client = session.client('ec2')

        return self._ec2_client

    def load_from_aws(self, vpc_id: Optional[str] = None,
                      security_group_ids: Optional[List[str]] = None) -> List[SecurityGroup]:
        """
        Load security groups directly from AWS via API.

        Args:
            vpc_id: Optional VPC ID to filter security groups (loads all SGs in VPC)
            security_group_ids: Optional list of specific security group IDs to load

        Returns:
            List of SecurityGroup objects in API order

        Raises:
            ValueError: If AWS credentials not found or API errors occur

        Note:
            If both vpc_id and security_group_ids are None, loads ALL security
            groups in the region.
        """
        try:
            ec2 = self._get_ec2_client()

            if security_group_ids:
                params: Dict[str, Any] = {'GroupIds': security_group_ids}
            else:
                filters = []
                if vpc_id:
                    filters.append({'Name': 'vpc-id', 'Values': [vpc_id]})
                params = {'Filters': filters}

            sg_list: List[Dict[str, Any]] = []
            while True:
                response = ec2.describe_security_groups(**params)
                sg_list.extend(response.get('SecurityGroups', []))
                next_token = response.get('NextToken')
                if not next_token:
                    break
                params = dict(params, NextToken=next_token)

        except NoCredentialsError:
            raise ValueError(
                "AWS credentials not found. Configure credentials using:\n"
                "  - AWS CLI: aws configure\n"
                "  - Environment variables: AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY\n"
                "  - IAM role (if running on EC2)\n"
                "  - AWS profile: set AWS_PROFILE environment variable"
            )
        except ClientError as e:
            error_code = e.response.get('Error', {}).get('Code', 'Unknown')
            error_message = e.response.get('Error', {}).get('Message', str(e))
            raise ValueError(f"AWS API error ({error_code}): {error_message}")

        self.security_groups = parse_security_groups(sg_list)
        self.config_path = None

        if vpc_id:
            self.aws_source = f"AWS VPC: {vpc_id}"
        elif security_group_ids:
            self.aws_source = f"AWS Security Groups: {', '.join(security_group_ids)}"
        else:
            self.aws_source = "AWS Account (all security groups)"

        logger.debug("Loaded %d security groups from %s", len(self.security_groups), self.aws_source)
        return self.security_groups

    def get_summary(self) -> Dict[str, Any]:
        """
        Get high-level summary of the loaded security groups.

        Example:
            {
                "total_security_groups": 3,
                "total_ingress_rules": 5,
                "group_sourced_rules": 2,
                "cidr_sourced_rules": 3,
                "security_groups": ["Web", "App", "Db"],
                "config_path": null,
                "aws_source": "AWS VPC: vpc-production-001"
            }
        """
        rules = [rule for sg in self.security_groups for rule in sg.ingress_rules]

        return {
            'total_security_groups': len(self.security_groups),
            'total_ingress_rules': len(rules),
            'group_sourced_rules': sum(1 for rule in rules if isinstance(rule, GroupRule)),
            'cidr_sourced_rules': sum(1 for rule in rules if isinstance(rule, CidrRule)),
            'security_groups': [sg.name for sg in self.security_groups],
            'config_path': str(self.config_path) if self.config_path else None,
            'aws_source': self.aws_source,
        }
