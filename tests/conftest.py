import os
import pytest
from unittest.mock import MagicMock
from pathlib import Path

from dotenv import load_dotenv

# load test env first
env_path = Path(__file__).resolve().parents[1] / '.env.test'
if env_path.exists():
    load_dotenv(env_path)

os.environ.setdefault('TESTING', '1')


@pytest.fixture(autouse=True)
def silence_logger(monkeypatch):
    # Patch any project logger acquisition to avoid noisy logs
    import notesync.utils.logger as logger_mod
    monkeypatch.setattr(logger_mod, 'get_logger', lambda *a, **k: MagicMock())
    yield


@pytest.fixture
def scan_config():
    from notesync.config import ScanConfig
    return ScanConfig()


@pytest.fixture
def make_scanner(scan_config):
    from notesync.scanning import DocumentScanner

    def _make(text, config=None, **kwargs):
        return DocumentScanner(text, kwargs.pop('path', 'notes/sample.md'), config or scan_config, **kwargs)

    return _make


@pytest.fixture
def sample_document():
    from tests.fixtures.sample_data import SAMPLE_DOCUMENT
    return SAMPLE_DOCUMENT
