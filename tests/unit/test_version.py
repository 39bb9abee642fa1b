"""Test basic package functionality."""

import json_api_client


def test_version():
    """Test that package version is defined."""
    assert hasattr(json_api_client, "__version__")
    assert json_api_client.__version__ == "0.1.0"
