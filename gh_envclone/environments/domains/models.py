"""Domain models for environment cloning."""
import re
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

# GitHub variable and secret names: letters, digits, underscores, not starting with a digit
NAME_PATTERN = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')


def is_valid_name(name: str) -> bool:
    """Return True if name is a valid GitHub variable/secret identifier."""
    return bool(name) and NAME_PATTERN.fullmatch(name) is not None


@dataclass
class EnvironmentVariable:
    """A plaintext variable as listed by the source environment."""
    name: str
    value: str


@dataclass
class SecretDescriptor:
    """A secret known only by name (values are never readable)."""
    name: str


@dataclass
class SecretValue:
    """A secret name paired with a locally supplied plaintext."""
    name: str
    plaintext: str


@dataclass
class RecipientPublicKey:
    """Target environment public key used for sealing secrets."""
    key_id: str
    key: str  # base64 of the 32 raw key bytes


@dataclass
class SealedSecret:
    """Payload for the create/update secret endpoint."""
    name: str
    encrypted_value: str
    key_id: str


class SecretsMode(Enum):
    """How secrets are handled during a clone run."""
    NONE = "none"
    INTERACTIVE = "interactive"
    FROM_FILE = "from_file"
    LIST_ONLY = "list_only"
    GENERATE_TEMPLATE = "generate_template"
    EMPTY_VALUES = "empty_values"

    @property
    def uploads(self) -> bool:
        """Whether this mode seals and uploads secret values."""
        return self in (SecretsMode.INTERACTIVE, SecretsMode.FROM_FILE, SecretsMode.EMPTY_VALUES)


@dataclass(frozen=True)
class CloneOptions:
    """Immutable options for a single clone run."""
    source_env: str
    target_env: str
    repo: str
    secrets_mode: SecretsMode = SecretsMode.NONE
    secrets_file: Optional[str] = None
    template_file: Optional[str] = None
    max_workers: int = 4


@dataclass(frozen=True)
class Capabilities:
    """Result of the startup capability check."""
    can_encrypt: bool
    reason: Optional[str] = None


class ItemStatus(Enum):
    """Terminal state of a single variable or secret."""
    CREATED = "created"
    UPLOADED = "uploaded"
    SKIPPED = "skipped"
    FAILED = "failed"
    UPLOAD_FAILED = "upload_failed"
    SEAL_FAILED = "seal_failed"

    @property
    def succeeded(self) -> bool:
        return self in (ItemStatus.CREATED, ItemStatus.UPLOADED)

    @property
    def is_failure(self) -> bool:
        return self in (ItemStatus.FAILED, ItemStatus.UPLOAD_FAILED, ItemStatus.SEAL_FAILED)


@dataclass
class ItemOutcome:
    """Outcome of processing one variable or secret."""
    name: str
    status: ItemStatus
    reason: Optional[str] = None


@dataclass
class CopyReport:
    """Accumulated outcomes of one pipeline run.

    Appends are lock-guarded so worker threads can record outcomes directly.
    """
    kind: str  # "variables" or "secrets"
    source_env: str
    target_env: str
    outcomes: List[ItemOutcome] = field(default_factory=list)
    listed: List[str] = field(default_factory=list)
    template_path: Optional[str] = None
    cancelled: bool = False
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record(self, name: str, status: ItemStatus, reason: Optional[str] = None) -> ItemOutcome:
        outcome = ItemOutcome(name=name, status=status, reason=reason)
        with self._lock:
            self.outcomes.append(outcome)
        return outcome

    def outcome_for(self, name: str) -> Optional[ItemOutcome]:
        with self._lock:
            for outcome in self.outcomes:
                if outcome.name == name:
                    return outcome
        return None

    def _count(self, predicate) -> int:
        with self._lock:
            return sum(1 for o in self.outcomes if predicate(o.status))

    @property
    def succeeded(self) -> int:
        return self._count(lambda s: s.succeeded)

    @property
    def skipped(self) -> int:
        return self._count(lambda s: s is ItemStatus.SKIPPED)

    @property
    def failed(self) -> int:
        return self._count(lambda s: s.is_failure)

    @property
    def has_failures(self) -> bool:
        return self.failed > 0
