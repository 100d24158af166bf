"""Tests for secret materialization."""

import os
import subprocess
import sys
import time
from unittest.mock import patch

import pytest

from secretary.config import SecretaryConfig
from secretary.secrets import MemoryEnvironment, Secret, SecretStore, parse_declarations
from secretary.utils.errors import MaterializationError, SecretSourceError, SecretTimeoutError

EXIT_AFTER_TIMEOUT = """
import time

from secretary.config import SecretaryConfig
from secretary.providers.base import SecretSource
from secretary.secrets import MemoryEnvironment, SecretStore
from secretary.utils.errors import SecretTimeoutError


class StuckSource(SecretSource):
    def get_value(self, identifier):
        time.sleep(30)

    def get_version(self, identifier):
        time.sleep(30)


store = SecretStore(StuckSource(), SecretaryConfig(poll_timeout=0.2), environment=MemoryEnvironment())
try:
    store.get_version("stuck")
except SecretTimeoutError:
    store.clean()
else:
    raise SystemExit(2)
"""


class TestParseDeclarations:
    """Test discovery of secret declarations."""

    def test_parse_from_strings(self, temp_directory):
        """Test KEY=VALUE entries with the prefix become secrets."""
        entries = ["PATH=/usr/bin", "SECRETARY_DB=arn:db-secret", "SECRETARY_API=ssm:key=with=equals"]

        secrets = parse_declarations(entries, "SECRETARY_", temp_directory)

        assert [s.env_name for s in secrets] == ["DB", "API"]
        assert secrets[0].identifier == "arn:db-secret"
        assert secrets[1].identifier == "ssm:key=with=equals"
        assert secrets[0].path == os.path.join(temp_directory, "DB")
        assert secrets[0].version == ""

    def test_parse_from_mapping(self, temp_directory):
        """Test mappings such as os.environ are accepted."""
        secrets = parse_declarations({"SECRETARY_TOKEN": "id-1", "HOME": "/root"}, "SECRETARY_", temp_directory)

        assert len(secrets) == 1
        assert secrets[0].env_name == "TOKEN"

    def test_parse_skips_malformed_and_empty_names(self, temp_directory):
        """Test entries without '=' or without a name are ignored."""
        entries = ["SECRETARY_BROKEN", "SECRETARY_=orphan", "SECRETARY_OK=id"]

        secrets = parse_declarations(entries, "SECRETARY_", temp_directory)

        assert [s.env_name for s in secrets] == ["OK"]

    def test_paths_are_absolute(self):
        """Test relative base paths are resolved."""
        secrets = parse_declarations(["SECRETARY_DB=id"], "SECRETARY_", "relative/dir")

        assert os.path.isabs(secrets[0].path)


class TestSecretStore:
    """Test secret store functionality."""

    def setup_method(self):
        """Setup test environment."""
        self.environment = MemoryEnvironment()

    def _store(self, source, config):
        return SecretStore(source, config, environment=self.environment)

    def test_materialize_from_environment_scenario(self, fake_source, config, temp_directory):
        """Test SECRETARY_DB becomes a file and a DB variable."""
        self.environment.set("SECRETARY_DB", "arn:db-secret")
        store = self._store(fake_source, config)

        materialized = store.materialize_from_environment(["SECRETARY_DB=arn:db-secret"])

        expected_path = os.path.join(temp_directory, "DB")
        assert len(materialized) == 1
        with open(expected_path, "rb") as f:
            assert f.read() == b"pw123"
        assert self.environment.get("DB") == expected_path
        assert "SECRETARY_DB" not in self.environment

    def test_create_secret_tracks_version(self, fake_source, config, temp_directory):
        """Test created secrets are tracked with their version."""
        store = self._store(fake_source, config)
        secret = Secret("arn:db-secret", "DB", os.path.join(temp_directory, "DB"))

        tracked = store.create_secret(secret)

        assert tracked is secret
        assert tracked.version == "v1"
        assert tracked.materialized
        assert store.secrets == [secret]

    def test_create_secret_fetches_version_before_value(self, fake_source, config, temp_directory):
        """Test the version lookup precedes the value fetch."""
        store = self._store(fake_source, config)

        store.create_secret(Secret("arn:db-secret", "DB", os.path.join(temp_directory, "DB")))

        assert fake_source.calls == [("version", "arn:db-secret"), ("value", "arn:db-secret")]

    def test_create_secret_twice_does_not_duplicate(self, fake_source, config, temp_directory):
        """Test tracking is keyed by identifier, not object identity."""
        store = self._store(fake_source, config)
        path = os.path.join(temp_directory, "DB")

        first = store.create_secret(Secret("arn:db-secret", "DB", path))
        second = store.create_secret(Secret("arn:db-secret", "DB", path))

        assert len(store.secrets) == 1
        assert second is first
        assert first.version == "v1"

    def test_redeclaration_updates_in_place(self, fake_source, config, temp_directory):
        """Test a new version for a known identifier updates the tracked entry."""
        store = self._store(fake_source, config)
        path = os.path.join(temp_directory, "DB")
        store.create_secret(Secret("arn:db-secret", "DB", path))

        fake_source.set_secret("arn:db-secret", b"pw456", "v2")
        store.create_secret(Secret("arn:db-secret", "DB", path))

        assert len(store.secrets) == 1
        assert store.secrets[0].version == "v2"
        with open(path, "rb") as f:
            assert f.read() == b"pw456"

    def test_version_error_does_not_register(self, fake_source, config, temp_directory):
        """Test failed version lookups leave the store untouched."""
        fake_source.version_errors["arn:db-secret"] = RuntimeError("throttled")
        store = self._store(fake_source, config)
        path = os.path.join(temp_directory, "DB")

        with pytest.raises(SecretSourceError):
            store.create_secret(Secret("arn:db-secret", "DB", path))

        assert store.secrets == []
        assert not os.path.exists(path)
        assert self.environment.get("DB") is None

    def test_value_error_does_not_register(self, fake_source, config, temp_directory):
        """Test failed value fetches leave the store untouched."""
        fake_source.value_errors["arn:db-secret"] = RuntimeError("access denied")
        store = self._store(fake_source, config)
        secret = Secret("arn:db-secret", "DB", os.path.join(temp_directory, "DB"))

        with pytest.raises(SecretSourceError):
            store.create_secret(secret)

        assert store.secrets == []
        assert secret.version == ""

    def test_materialize_fails_fast_without_rollback(self, fake_source, config, temp_directory):
        """Test the first failure aborts but earlier secrets stay in place."""
        fake_source.set_secret("id-ok", b"ok", "v1")
        store = self._store(fake_source, config)
        entries = ["SECRETARY_FIRST=id-ok", "SECRETARY_SECOND=id-missing", "SECRETARY_THIRD=arn:db-secret"]
        for entry in entries:
            key, _, value = entry.partition("=")
            self.environment.set(key, value)

        with pytest.raises(SecretSourceError):
            store.materialize_from_environment(entries)

        assert [s.identifier for s in store.secrets] == ["id-ok"]
        assert os.path.exists(os.path.join(temp_directory, "FIRST"))
        assert "SECRETARY_FIRST" not in self.environment
        assert "SECRETARY_SECOND" in self.environment
        assert not os.path.exists(os.path.join(temp_directory, "THIRD"))

    def test_file_permissions(self, fake_source, config, temp_directory):
        """Test secret files are readable by the owner only."""
        store = self._store(fake_source, config)
        path = os.path.join(temp_directory, "DB")

        store.create_secret(Secret("arn:db-secret", "DB", path))

        assert os.stat(path).st_mode & 0o777 == 0o600

    def test_creates_missing_base_directory(self, fake_source, temp_directory):
        """Test the base directory is created when absent."""
        base_path = os.path.join(temp_directory, "nested", "secrets")
        store = self._store(fake_source, SecretaryConfig(base_path=base_path))

        store.materialize_from_environment(["SECRETARY_DB=arn:db-secret"])

        assert os.path.exists(os.path.join(base_path, "DB"))

    def test_value_written_without_transformation(self, config, temp_directory, fake_source):
        """Test binary values are written byte for byte."""
        payload = bytes(range(256)) + b"\n\x00trailing"
        fake_source.set_secret("bin", payload, "v1")
        store = self._store(fake_source, config)
        path = os.path.join(temp_directory, "BIN")

        store.create_secret(Secret("bin", "BIN", path))

        with open(path, "rb") as f:
            assert f.read() == payload

    def test_write_failure_raises_materialization_error(self, fake_source, config, temp_directory):
        """Test unwritable paths surface as MaterializationError."""
        store = self._store(fake_source, config)
        secret = Secret("arn:db-secret", "DB", os.path.join(temp_directory, "DB"))

        with patch("secretary.secrets.store.os.open", side_effect=PermissionError("denied")):
            with pytest.raises(MaterializationError):
                store.create_secret(secret)

        assert store.secrets == []

    def test_call_deadline(self, fake_source, temp_directory):
        """Test slow sources are cut off after poll_timeout."""
        original = fake_source.get_version

        def slow_version(identifier):
            time.sleep(0.5)
            return original(identifier)

        fake_source.get_version = slow_version
        store = self._store(fake_source, SecretaryConfig(base_path=temp_directory, poll_timeout=0.05))

        with pytest.raises(SecretTimeoutError):
            store.get_version("arn:db-secret")

    def test_timed_out_call_does_not_delay_exit(self):
        """Test a process exits promptly after a source call times out."""
        root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
        pythonpath = os.pathsep.join(filter(None, [root, os.environ.get("PYTHONPATH")]))
        env = dict(os.environ, PYTHONPATH=pythonpath)

        started = time.monotonic()
        result = subprocess.run([sys.executable, "-c", EXIT_AFTER_TIMEOUT], env=env, capture_output=True, timeout=60)
        elapsed = time.monotonic() - started

        assert result.returncode == 0, result.stderr.decode()
        assert elapsed < 15

    def test_failed_rewrite_keeps_previous_value(self, fake_source, config, temp_directory):
        """Test a failed write leaves the old file intact and no temporary files."""
        store = self._store(fake_source, config)
        path = os.path.join(temp_directory, "DB")
        store.create_secret(Secret("arn:db-secret", "DB", path))
        fake_source.set_secret("arn:db-secret", b"pw456", "v2")

        with patch("secretary.secrets.store.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(MaterializationError):
                store.create_secret(Secret("arn:db-secret", "DB", path))

        with open(path, "rb") as f:
            assert f.read() == b"pw123"
        assert os.listdir(temp_directory) == ["DB"]
        assert store.secrets[0].version == "v1"

    def test_rewrite_replaces_file(self, fake_source, config, temp_directory):
        """Test a rotation swaps in a new file rather than truncating the old one."""
        store = self._store(fake_source, config)
        path = os.path.join(temp_directory, "DB")
        store.create_secret(Secret("arn:db-secret", "DB", path))
        with open(path, "rb") as reader:
            fake_source.set_secret("arn:db-secret", b"pw456", "v2")
            store.create_secret(Secret("arn:db-secret", "DB", path))

            assert reader.read() == b"pw123"

        with open(path, "rb") as f:
            assert f.read() == b"pw456"
        assert os.stat(path).st_mode & 0o777 == 0o600

    def test_clean_removes_files_and_variables(self, fake_source, config, temp_directory):
        """Test clean removes every file and variable."""
        fake_source.set_secret("id-2", b"two", "v1")
        store = self._store(fake_source, config)
        store.materialize_from_environment(["SECRETARY_DB=arn:db-secret", "SECRETARY_OTHER=id-2"])

        results = store.clean()

        assert results["total"] == 2
        assert results["removed"] == 2
        assert results["failed"] == 0
        assert not os.path.exists(os.path.join(temp_directory, "DB"))
        assert not os.path.exists(os.path.join(temp_directory, "OTHER"))
        assert self.environment.get("DB") is None
        assert self.environment.get("OTHER") is None
        assert store.secrets == []

    def test_clean_continues_after_failure(self, fake_source, config, temp_directory):
        """Test one failed removal does not stop the others."""
        fake_source.set_secret("id-2", b"two", "v1")
        store = self._store(fake_source, config)
        store.materialize_from_environment(["SECRETARY_DB=arn:db-secret", "SECRETARY_OTHER=id-2"])
        db_path = os.path.join(temp_directory, "DB")
        real_remove = os.remove

        def flaky_remove(path):
            if path == db_path:
                raise PermissionError("busy")
            real_remove(path)

        with patch("secretary.secrets.store.os.remove", side_effect=flaky_remove):
            results = store.clean()

        assert results["failed"] == 1
        assert results["removed"] == 1
        assert len(results["errors"]) == 1
        assert not os.path.exists(os.path.join(temp_directory, "OTHER"))
        assert self.environment.get("DB") is None
        assert self.environment.get("OTHER") is None

    def test_clean_removes_every_file_ever_written(self, fake_source, config, temp_directory):
        """Test files from a re-declared identifier are removed too."""
        store = self._store(fake_source, config)
        store.materialize_from_environment(["SECRETARY_DB=arn:db-secret", "SECRETARY_DB_COPY=arn:db-secret"])

        assert len(store.secrets) == 1

        results = store.clean()

        assert results["total"] == 2
        assert not os.path.exists(os.path.join(temp_directory, "DB"))
        assert not os.path.exists(os.path.join(temp_directory, "DB_COPY"))

    def test_clean_twice_is_noop(self, fake_source, config):
        """Test a second clean has nothing left to do."""
        store = self._store(fake_source, config)
        store.materialize_from_environment(["SECRETARY_DB=arn:db-secret"])

        store.clean()
        results = store.clean()

        assert results["total"] == 0
