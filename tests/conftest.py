"""Shared fixtures for gh-envclone tests."""
import base64
import threading
from pathlib import Path

import pytest
from nacl.public import PrivateKey

from gh_envclone.environments.domains.errors import RemoteFetchError, RemoteWriteError
from gh_envclone.environments.domains.models import (
    Capabilities,
    CloneOptions,
    EnvironmentVariable,
    RecipientPublicKey,
    SecretDescriptor,
    SecretsMode,
)


class FakeGitHubClient:
    """In-memory stand-in for GitHubEnvironmentClient."""

    def __init__(self, variables=None, secrets=None, public_key=None):
        self.variables = variables or []
        self.secrets = [SecretDescriptor(name=n) for n in (secrets or [])]
        self.public_key = public_key
        self.created_variables = []
        self.uploaded_secrets = []
        self.public_key_calls = 0
        self.list_calls = 0
        self.fail_variable_names = set()
        self.fail_secret_names = set()
        self.list_error = None
        self.public_key_error = None
        self._lock = threading.Lock()

    @property
    def write_calls(self):
        return len(self.created_variables) + len(self.uploaded_secrets)

    def list_variables(self, env):
        self.list_calls += 1
        if self.list_error:
            raise self.list_error
        return list(self.variables)

    def create_variable(self, env, name, value):
        if name in self.fail_variable_names:
            raise RemoteWriteError(f"Failed to create variable '{name}' in '{env}'",
                                   status_code=409, body='{"message": "Already exists"}')
        with self._lock:
            self.created_variables.append((env, name, value))

    def list_secret_names(self, env):
        self.list_calls += 1
        if self.list_error:
            raise self.list_error
        return list(self.secrets)

    def get_public_key(self, env):
        with self._lock:
            self.public_key_calls += 1
        if self.public_key_error:
            raise self.public_key_error
        return self.public_key

    def upsert_secret(self, env, sealed):
        if sealed.name in self.fail_secret_names:
            raise RemoteWriteError(f"Failed to add secret '{sealed.name}' to '{env}'",
                                   status_code=422, body='{"message": "Invalid request"}')
        with self._lock:
            self.uploaded_secrets.append((env, sealed))
        return True


@pytest.fixture
def private_key():
    """Fresh recipient key pair."""
    return PrivateKey.generate()


@pytest.fixture
def recipient_key(private_key):
    """RecipientPublicKey for the fixture key pair."""
    encoded = base64.b64encode(bytes(private_key.public_key)).decode("ascii")
    return RecipientPublicKey(key_id="568250167242549743", key=encoded)


@pytest.fixture
def make_client(recipient_key):
    """Factory for FakeGitHubClient serving the fixture public key."""
    def _make(**kwargs):
        kwargs.setdefault("public_key", recipient_key)
        return FakeGitHubClient(**kwargs)
    return _make


@pytest.fixture
def can_encrypt():
    return Capabilities(can_encrypt=True)


@pytest.fixture
def make_options():
    """Factory for CloneOptions with sensible defaults."""
    def _make(mode=SecretsMode.NONE, **kwargs):
        values = {
            "source_env": "integration",
            "target_env": "production",
            "repo": "octocat/hello-world",
            "secrets_mode": mode,
            "max_workers": 1,
        }
        values.update(kwargs)
        return CloneOptions(**values)
    return _make


@pytest.fixture
def variables():
    return [
        EnvironmentVariable(name="FOO", value="bar"),
        EnvironmentVariable(name="BAZ", value=""),
        EnvironmentVariable(name="1BAD", value="x"),
    ]


@pytest.fixture
def temp_home(tmp_path, monkeypatch):
    """Fixture to create a temporary home directory for testing."""
    fake_home = tmp_path / "home"
    fake_home.mkdir()
    monkeypatch.setenv("HOME", str(fake_home))
    monkeypatch.setattr(Path, "home", lambda: fake_home)
    monkeypatch.delenv("GH_ENVCLONE_CONFIG", raising=False)
    monkeypatch.delenv("GITHUB_API_URL", raising=False)
    return fake_home


@pytest.fixture
def listing_error():
    return RemoteFetchError("Failed to list", status_code=404, body='{"message": "Not Found"}')
