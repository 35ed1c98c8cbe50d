"""
Unit Tests for the MCP Graph Tools

Drives the tool handlers the way the MCP server does and checks the JSON
responses. Security groups are loaded from temporary exported JSON files or a
mocked EC2 client, so no AWS credentials are needed.
"""

import asyncio
import json
import os
import sys
import tempfile
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

# Add parent directory to Python path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from sg_graph.tools import graph_tools
from sg_graph.tools.graph_tools import get_graph_tools, handle_tool_call


EXPORTED_SGS = {
    "SecurityGroups": [
        {
            "GroupId": "sg-web",
            "GroupName": "Web",
            "IpPermissions": [
                {"IpProtocol": "tcp", "FromPort": 80, "ToPort": 80,
                 "UserIdGroupPairs": [{"GroupId": "sg-ext", "GroupName": "External"}]}
            ]
        },
        {
            "GroupId": "sg-db",
            "GroupName": "Db",
            "IpPermissions": [
                {"IpProtocol": "tcp", "FromPort": 7474, "ToPort": 7474,
                 "UserIdGroupPairs": [{"GroupId": "sg-app", "GroupName": "App"}]},
                {"IpProtocol": "tcp", "FromPort": 22, "ToPort": 22,
                 "IpRanges": [{"CidrIp": "127.0.0.1/32"}]}
            ]
        }
    ]
}


@pytest.fixture(autouse=True)
def reset_state():
    graph_tools._parser = None
    with patch.dict(os.environ, {'AWS_DEFAULT_REGION': 'us-east-1'}, clear=True):
        yield
    graph_tools._parser = None


@pytest.fixture
def exported_file():
    with tempfile.NamedTemporaryFile('w', suffix='.json', delete=False) as handle:
        json.dump(EXPORTED_SGS, handle)
    yield handle.name
    os.unlink(handle.name)


def call(name, arguments=None):
    result = asyncio.run(handle_tool_call(name, arguments or {}))
    assert len(result) == 1
    return json.loads(result[0].text)


def test_tool_definitions():
    names = [tool.name for tool in get_graph_tools()]

    assert names == ['get_config', 'list_security_groups', 'build_graph']


def test_unknown_tool():
    assert call('list_vpcs') == {'error': 'Unknown tool: list_vpcs'}


def test_tools_require_loaded_groups():
    assert 'error' in call('get_config')
    assert 'error' in call('list_security_groups')
    assert 'error' in call('build_graph')


def test_get_config_from_file(exported_file):
    response = call('get_config', {'file_path': exported_file})

    assert response['status'] == 'success'
    assert response['summary']['total_security_groups'] == 2
    assert response['summary']['security_groups'] == ['Web', 'Db']

    # Without a source the loaded summary is returned
    again = call('get_config')
    assert again['summary'] == response['summary']


def test_get_config_ignores_broken_graph_config(exported_file):
    """A malformed SG_GRAPH_CONFIG only fails build_graph, not loading groups."""
    with tempfile.NamedTemporaryFile('w', suffix='.json', delete=False) as handle:
        handle.write('{not json')
    try:
        with patch.dict(os.environ, {'SG_GRAPH_CONFIG': handle.name}):
            loaded = call('get_config', {'file_path': exported_file})
            built = call('build_graph')
    finally:
        os.unlink(handle.name)

    assert loaded['status'] == 'success'
    assert 'Invalid JSON' in built['error']


def test_get_config_missing_file_returns_error():
    response = call('get_config', {'file_path': '/nonexistent/sgs.json'})

    assert 'not found' in response['error']
    assert graph_tools._parser is None


@patch('sg_graph.parsers.aws_security_groups.boto3')
def test_get_config_from_aws(mock_boto3):
    mock_ec2_client = MagicMock()
    mock_boto3.Session.return_value.client.return_value = mock_ec2_client
    mock_ec2_client.describe_security_groups.return_value = EXPORTED_SGS

    response = call('get_config', {'vpc_id': 'vpc-1', 'aws_region': 'eu-west-1'})

    assert response['message'] == 'Security groups loaded from AWS: AWS VPC: vpc-1'
    mock_boto3.Session.assert_called_once_with(profile_name=None, region_name='eu-west-1')


def test_list_security_groups(exported_file):
    call('get_config', {'file_path': exported_file})

    response = call('list_security_groups')

    assert response['total'] == 2
    assert response['security_groups'][1] == {
        'name': 'Db',
        'ingress_rules': [
            {'kind': 'group', 'source_group_name': 'App', 'port': '7474'},
            {'kind': 'cidr', 'cidr_block': '127.0.0.1/32', 'port': '22'},
        ]
    }


def test_build_graph(exported_file):
    call('get_config', {'file_path': exported_file})

    response = call('build_graph')

    assert response['nodes'] == 2
    assert response['edges'] == 3
    assert response['ops'] == [
        {'op': 'node', 'name': 'Web'},
        {'op': 'edge', 'from': 'External', 'to': 'Web', 'attributes': {'color': 'blue', 'label': '80/tcp'}},
        {'op': 'node', 'name': 'Db'},
        {'op': 'edge', 'from': 'App', 'to': 'Db', 'attributes': {'color': 'blue', 'label': '7474/tcp'}},
        {'op': 'edge', 'from': '127.0.0.1/32', 'to': 'Db', 'attributes': {'color': 'blue', 'label': '22/tcp'}},
    ]


def test_build_graph_with_mapping_and_exclude(exported_file):
    call('get_config', {'file_path': exported_file})

    response = call('build_graph', {'exclude': ['App'], 'cidr_mapping': {'127.0.0.1/32': 'Work'}})

    assert [op.get('from') for op in response['ops'] if op['op'] == 'edge'] == ['External', 'Work']
    assert response['config']['exclude'] == ['App']


def test_build_graph_with_config_file(exported_file):
    with tempfile.NamedTemporaryFile('w', suffix='.json', delete=False) as handle:
        json.dump({'exclude': ['D.*b']}, handle)
    try:
        call('get_config', {'file_path': exported_file})
        response = call('build_graph', {'config_path': handle.name, 'exclude': ['External']})
    finally:
        os.unlink(handle.name)

    assert response['ops'] == [{'op': 'node', 'name': 'Web'}]
    assert response['config']['exclude'] == ['D.*b', 'External']


def test_build_graph_invalid_pattern_returns_error(exported_file):
    call('get_config', {'file_path': exported_file})

    response = call('build_graph', {'exclude': ['(unclosed']})

    assert 'Invalid exclude pattern' in response['error']


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
