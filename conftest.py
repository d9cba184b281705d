"""
Root conftest.py for pytest configuration

Registers the markers used across the suite.
"""


def pytest_configure(config):
    """
    Configure pytest with custom markers.
    """
    markers = {
        "unit": "Fast, isolated unit tests",
        "slow": "Property-based or otherwise slow tests",
        "core": "Ambient configuration, logging and error tests",
        "place_matching": "Place matching and scoring tests",
    }

    for marker_name, description in markers.items():
        config.addinivalue_line("markers", f"{marker_name}: {description}")
