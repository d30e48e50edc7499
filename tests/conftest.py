"""Pytest configuration and shared fixtures"""
import pytest
import os
import sys
from unittest.mock import Mock, patch

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src', 'egress'))

DEFAULT_QUERY = (
    'SELECT mean("tWater")*9/5+32 as "tWater" from "compost" '
    "where \"deviceid\" = 'device-02-6a' AND time > now() - 1d "
    "GROUP BY time(1ms) fill(none) tz('America/New_York')"
)

MOCK_INFLUX_RESPONSE = b'{\n    "results": [\n        {\n            "statement_id": 0\n        }\n    ]\n}\n'


@pytest.fixture
def mock_get():
    """Patch requests.get with a 200 response carrying a raw json body"""
    response = Mock()
    response.status_code = 200
    response.content = MOCK_INFLUX_RESPONSE
    response.text = MOCK_INFLUX_RESPONSE.decode()
    with patch('influx_extract.requests.get', return_value=response) as get:
        yield get


@pytest.fixture
def mock_getpass():
    """Answer the password prompt without a terminal"""
    with patch('influx_extract.getpass.getpass', return_value="secret") as prompt:
        yield prompt
