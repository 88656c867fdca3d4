"""
Pytest configuration for genai-bridge tests

Sets up Python path to allow imports from python/ directory and keeps the
process-wide config and telemetry singletons from leaking between tests.
"""
import sys
from pathlib import Path

import pytest

# Add python directory to path for imports
python_dir = Path(__file__).parent.parent / 'python'
sys.path.insert(0, str(python_dir))


@pytest.fixture(autouse=True)
def reset_bridge_state(monkeypatch):
    """Reset global config and telemetry before each test"""
    from genai_bridge import config_loader, telemetry

    monkeypatch.delenv("GENAI_BRIDGE_CONFIG", raising=False)
    monkeypatch.setenv("GENAI_BRIDGE_ENV", "test")
    config_loader.reset_config()
    telemetry.reset_telemetry()

    yield

    config_loader.reset_config()
    telemetry.reset_telemetry()
