"""
Configuration for Security Group Graph Builds

Holds the two user-supplied tables that shape a graph (exclude patterns and the
CIDR to peer-name mapping) together with the AWS connection settings used to
fetch security groups.

Configuration can come from a JSON file, a dictionary (e.g. MCP tool
arguments) or the environment:

    SG_GRAPH_CONFIG     Path to a JSON config file (optional)
    AWS_PROFILE         AWS profile name for credentials
    AWS_DEFAULT_REGION  AWS region (AWS_REGION is also honoured)

Config file format:
    {
        "exclude": ["127.*", "App"],
        "cidr_mapping": {"127.0.0.1/32": "Work", "192.168.0.1/32": "Work"},
        "aws_region": "eu-west-1",
        "aws_profile": "audit"
    }

The mapping table is also accepted under its historical key "groups".

Security Note:
    **NEVER put AWS credentials in the config file.** Only the profile name is
    read; credentials are resolved by boto3 (environment, ~/.aws/credentials,
    IAM role).
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import boto3
from botocore.exceptions import BotoCoreError
from netaddr import AddrFormatError, IPNetwork

from .graph.peers import ExclusionFilter, PeerResolver

DEFAULT_AWS_REGION = 'us-east-1'
CONFIG_ENV_VAR = 'SG_GRAPH_CONFIG'


def resolve_aws_region(aws_region: Optional[str] = None, aws_profile: Optional[str] = None) -> str:
    """
    Pick the AWS region to use.

    Order: explicit argument, AWS_DEFAULT_REGION / AWS_REGION environment
    variables, the boto3 session (profile config), then 'us-east-1'.
    """
    if aws_region:
        return aws_region

    region = os.environ.get('AWS_DEFAULT_REGION') or os.environ.get('AWS_REGION')
    if region:
        return region

    try:
        session = boto3.Session(profile_name=aws_profile) if aws_profile else boto3.Session()
    except BotoCoreError:
        # Profile missing locally; use the default region
        return DEFAULT_AWS_REGION
    return session.region_name or DEFAULT_AWS_REGION


def _validate_exclude(value: Any) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(p, str) for p in value):
        raise ValueError("'exclude' must be a list of pattern strings")
    return list(value)


def _validate_mapping(value: Any) -> Dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError("'cidr_mapping' must be an object of CIDR block to peer name")

    mapping = {}
    for cidr, name in value.items():
        if not isinstance(cidr, str) or not isinstance(name, str):
            raise ValueError(f"Invalid cidr_mapping entry: {cidr!r} -> {name!r}")
        try:
            IPNetwork(cidr)
        except (AddrFormatError, ValueError) as e:
            raise ValueError(f"Invalid CIDR block in cidr_mapping: {cidr!r} ({e})") from e
        # Keys stay verbatim; lookups against API data are exact
        mapping[cidr] = name
    return mapping


@dataclass
class GraphConfig:
    """
    Settings for one graph build.

    Attributes:
        exclude: Regular expressions naming groups/peers to hide
        cidr_mapping: CIDR block to peer display name
        aws_region: AWS region (None means auto-detect)
        aws_profile: AWS profile name (None means default credentials chain)
        config_path: File the config was loaded from, if any
    """
    exclude: List[str] = field(default_factory=list)
    cidr_mapping: Dict[str, str] = field(default_factory=dict)
    aws_region: Optional[str] = None
    aws_profile: Optional[str] = None
    config_path: Optional[Path] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any], config_path: Optional[Path] = None) -> 'GraphConfig':
        """
        Build a config from a dictionary.

        Raises:
            ValueError: If a field has the wrong shape or a mapping key is not a CIDR block
        """
        if not isinstance(data, dict):
            raise ValueError("Configuration must be a JSON object")

        mapping = data.get('cidr_mapping')
        if mapping is None:
            mapping = data.get('groups')

        return cls(
            exclude=_validate_exclude(data.get('exclude')),
            cidr_mapping=_validate_mapping(mapping),
            aws_region=data.get('aws_region'),
            aws_profile=data.get('aws_profile'),
            config_path=config_path,
        )

    @classmethod
    def load(cls, file_path: str) -> 'GraphConfig':
        """
        Load a config from a JSON file.

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValueError: If the JSON is malformed or has the wrong structure
        """
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {file_path}")

        with open(path, 'r') as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid JSON in {file_path}: {e}") from e

        return cls.from_dict(data, config_path=path)

    @classmethod
    def from_env(cls) -> 'GraphConfig':
        """
        Build a config from environment variables.

        Loads the file named by SG_GRAPH_CONFIG when set; AWS_PROFILE and
        AWS_DEFAULT_REGION / AWS_REGION fill in connection settings the file
        leaves empty.
        """
        config_file = os.environ.get(CONFIG_ENV_VAR)
        config = cls.load(config_file) if config_file else cls()

        if not config.aws_profile:
            config.aws_profile = os.environ.get('AWS_PROFILE')
        if not config.aws_region:
            config.aws_region = os.environ.get('AWS_DEFAULT_REGION') or os.environ.get('AWS_REGION')
        return config

    def merged(self, exclude: Optional[List[str]] = None,
               cidr_mapping: Optional[Dict[str, str]] = None) -> 'GraphConfig':
        """Return a copy with extra exclude patterns appended and mapping entries overlaid."""
        combined_mapping = dict(self.cidr_mapping)
        combined_mapping.update(_validate_mapping(cidr_mapping))
        return GraphConfig(
            exclude=self.exclude + _validate_exclude(exclude),
            cidr_mapping=combined_mapping,
            aws_region=self.aws_region,
            aws_profile=self.aws_profile,
            config_path=self.config_path,
        )

    def peer_resolver(self) -> PeerResolver:
        return PeerResolver(self.cidr_mapping)

    def exclusion_filter(self) -> ExclusionFilter:
        return ExclusionFilter(self.exclude)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'exclude': list(self.exclude),
            'cidr_mapping': dict(self.cidr_mapping),
            'aws_region': self.aws_region,
            'aws_profile': self.aws_profile,
            'config_path': str(self.config_path) if self.config_path else None,
        }
