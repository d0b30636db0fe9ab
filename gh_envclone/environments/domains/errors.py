"""Exceptions raised while cloning environment configuration."""
from typing import Optional


class EnvCloneError(Exception):
    """Base exception for gh-envclone."""
    pass


class ConfigError(EnvCloneError):
    """Configuration error exception."""
    pass


class DependencyMissing(EnvCloneError):
    """A required external tool or credential is unavailable."""
    pass


class CapabilityUnavailable(EnvCloneError):
    """Secret cloning was requested but encryption is not available."""
    pass


class EncryptionUnavailable(EnvCloneError):
    """The sealed-box primitive could not be loaded."""
    pass


class InvalidPublicKey(EnvCloneError):
    """Recipient public key is not a base64-encoded 32-byte key."""
    pass


class RemoteError(EnvCloneError):
    """A GitHub API call failed."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    def __str__(self):
        message = super().__str__()
        if self.status_code is not None:
            message = f"{message} (HTTP {self.status_code})"
        if self.body:
            message = f"{message}. Response: {self.body}"
        return message


class RemoteFetchError(RemoteError):
    """Listing or reading from the source environment failed."""
    pass


class RemoteWriteError(RemoteError):
    """Creating a variable or uploading a secret failed."""
    pass


class TemplateWriteError(EnvCloneError):
    """The secrets template file could not be written."""
    pass


class SecretsFileError(EnvCloneError):
    """The secrets file could not be used."""
    pass


class SecretsFileNotFound(SecretsFileError):
    """The secrets file does not exist."""
    pass


class SecretsFileInvalid(SecretsFileError):
    """The secrets file is not a flat JSON object of strings."""
    pass
