"""Pytest configuration and shared fixtures."""

import shutil
import tempfile
import threading

import pytest

from secretary.config import SecretaryConfig
from secretary.providers.base import SecretSource
from secretary.secrets import MemoryEnvironment


class FakeSource(SecretSource):
    """In-memory secret source with injectable failures."""

    def __init__(self):
        self.values = {}
        self.versions = {}
        self.version_errors = {}
        self.value_errors = {}
        self.calls = []
        self._lock = threading.Lock()

    def set_secret(self, identifier, value, version):
        with self._lock:
            self.values[identifier] = value
            self.versions[identifier] = version

    def get_value(self, identifier):
        with self._lock:
            self.calls.append(("value", identifier))
            if identifier in self.value_errors:
                raise self.value_errors[identifier]
            return self.values[identifier]

    def get_version(self, identifier):
        with self._lock:
            self.calls.append(("version", identifier))
            if identifier in self.version_errors:
                raise self.version_errors[identifier]
            return self.versions[identifier]

    def count(self, kind, identifier):
        with self._lock:
            return self.calls.count((kind, identifier))


@pytest.fixture
def temp_directory():
    """Create a temporary directory for testing."""
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def fake_source():
    """Secret source holding one database secret."""
    source = FakeSource()
    source.set_secret("arn:db-secret", b"pw123", "v1")
    return source


@pytest.fixture
def memory_environment():
    """Empty in-memory environment."""
    return MemoryEnvironment()


@pytest.fixture
def config(temp_directory):
    """Fast-polling settings writing into the temporary directory."""
    return SecretaryConfig(
        poll_frequency=0.05,
        poll_timeout=2.0,
        base_path=temp_directory,
    )


@pytest.fixture(autouse=True)
def isolate_filesystem(temp_directory, monkeypatch):
    """Isolate filesystem operations to temporary directory."""
    monkeypatch.chdir(temp_directory)
    return temp_directory
