"""
Shared pytest configuration for all tests.
Points the API at the fixture corpus and provides common fixtures.
"""
import os
import sys
import tempfile
from pathlib import Path

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

# Load test environment variables before any imports
from dotenv import load_dotenv

FIXTURE_DATA_DIR = Path(__file__).parent / "fixtures" / "data"

# Load test-specific environment variables
test_env_path = Path(__file__).parent.parent / ".env.test"
if test_env_path.exists():
    load_dotenv(test_env_path, override=True)
else:
    # Fallback to hardcoded test values if .env.test doesn't exist
    os.environ["DATA_DIR"] = str(FIXTURE_DATA_DIR)
    os.environ["LOG_FILE"] = str(Path(tempfile.gettempdir()) / "mailbox-export-tests.log")
    os.environ["ENRICHMENT_BATCH_DELAY_SECONDS"] = "0"
    os.environ["MAP_SETTLE_MS"] = "0"
    os.environ["MAP_FETCH_RETRIES"] = "0"


@pytest.fixture
def fixture_registry():
    """Registry over the checked-in fixture corpus."""
    from services.source_registry import SourceRegistry
    return SourceRegistry(data_dir=FIXTURE_DATA_DIR)


@pytest.fixture
def loader(fixture_registry):
    """Loader over the fixture corpus."""
    from services.location_loader import LocationDataLoader
    return LocationDataLoader(fixture_registry)
