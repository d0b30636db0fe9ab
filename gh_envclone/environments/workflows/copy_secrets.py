"""Workflow for copying environment secrets.

GitHub never returns secret values, so only names are copied from the source
environment. Values come from a secrets file, an interactive prompt, or are
left empty, and are sealed with the target environment's public key before
upload.
"""
import getpass
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from ..domains.errors import (
    CapabilityUnavailable,
    EncryptionUnavailable,
    InvalidPublicKey,
    RemoteFetchError,
    RemoteWriteError,
)
from ..domains.github_client import GitHubEnvironmentClient
from ..domains.models import (
    Capabilities,
    CloneOptions,
    CopyReport,
    ItemStatus,
    RecipientPublicKey,
    SealedSecret,
    SecretDescriptor,
    SecretsMode,
    SecretValue,
    is_valid_name,
)
from ..domains.sealer import seal_secret
from ..domains.secrets_file import load_secrets_file, write_secrets_template
from .runner import CANCELLED, run_items

logger = logging.getLogger(__name__)

SKIP_INVALID_NAME = "invalid name"
SKIP_NOT_IN_FILE = "not found in secrets file"
SKIP_EMPTY_INPUT = "empty value"


def prompt_secret(name: str) -> str:
    """Read a secret value from the terminal with echo suppressed."""
    return getpass.getpass(f"Enter value for secret '{name}' (input will be hidden): ")


class PublicKeyCache:
    """Fetch the target environment public key once per run.

    Failed fetches are not cached, so the next secret retries.
    """

    def __init__(self, client: GitHubEnvironmentClient, env: str):
        self._client = client
        self._env = env
        self._key: Optional[RecipientPublicKey] = None
        self._lock = threading.Lock()

    def get(self) -> RecipientPublicKey:
        with self._lock:
            if self._key is None:
                self._key = self._client.get_public_key(self._env)
                logger.info(f"Fetched public key for {self._env} (key_id: {self._key.key_id})")
            return self._key


@dataclass
class _PendingSecret:
    name: str
    value: Optional[SecretValue] = None
    skip_reason: Optional[str] = None


def _resolve_values(
    secrets: List[SecretDescriptor],
    options: CloneOptions,
    prompt: Callable[[str], str],
    cancel: threading.Event,
) -> List[_PendingSecret]:
    """Decide each secret's plaintext, in listing order, before any upload."""
    file_values: Dict[str, str] = {}
    if options.secrets_mode is SecretsMode.FROM_FILE:
        file_values = load_secrets_file(options.secrets_file)

    pending = []
    for secret in secrets:
        name = secret.name
        if cancel.is_set():
            pending.append(_PendingSecret(name, skip_reason=CANCELLED))
            continue
        if not is_valid_name(name):
            pending.append(_PendingSecret(name, skip_reason=SKIP_INVALID_NAME))
            continue

        if options.secrets_mode is SecretsMode.EMPTY_VALUES:
            plaintext = ""
        elif options.secrets_mode is SecretsMode.FROM_FILE:
            plaintext = file_values.get(name, "")
            if not plaintext:
                logger.debug(f"Secret '{name}' not found in secrets file")
                pending.append(_PendingSecret(name, skip_reason=SKIP_NOT_IN_FILE))
                continue
        else:
            try:
                plaintext = prompt(name)
            except EOFError:
                plaintext = ""
            if not plaintext:
                pending.append(_PendingSecret(name, skip_reason=SKIP_EMPTY_INPUT))
                continue

        pending.append(_PendingSecret(name, value=SecretValue(name=name, plaintext=plaintext)))
    return pending


def copy_secrets(
    client: GitHubEnvironmentClient,
    options: CloneOptions,
    capabilities: Capabilities,
    cancel: Optional[threading.Event] = None,
    prompt: Callable[[str], str] = prompt_secret,
    on_listed: Optional[Callable[[List[str]], None]] = None,
) -> CopyReport:
    """
    Copy secrets from the source environment according to options.secrets_mode.

    Per-secret failures (public key fetch, sealing, upload) are recorded in
    the report and do not stop the remaining secrets.
    on_listed, when given, receives the source secret names right after the
    listing and before any prompt.

    Raises:
        CapabilityUnavailable: If values must be uploaded but encryption is unavailable
        RemoteFetchError: If the source secrets cannot be listed
        SecretsFileError: If the secrets file is missing or malformed
        TemplateWriteError: If the template file cannot be written
    """
    mode = options.secrets_mode
    if mode.uploads and not capabilities.can_encrypt:
        raise CapabilityUnavailable(
            f"Cannot clone secrets: {capabilities.reason or 'encryption is unavailable'}"
        )
    if cancel is None:
        cancel = threading.Event()

    report = CopyReport(kind="secrets", source_env=options.source_env, target_env=options.target_env)
    if cancel.is_set():
        report.cancelled = True
        return report

    secrets = client.list_secret_names(options.source_env)
    report.listed = [s.name for s in secrets]
    if on_listed is not None:
        on_listed(report.listed)

    if mode is SecretsMode.LIST_ONLY or not secrets:
        return report

    if mode is SecretsMode.GENERATE_TEMPLATE:
        if cancel.is_set():
            report.cancelled = True
            return report
        write_secrets_template(options.template_file, report.listed)
        report.template_path = options.template_file
        return report

    pending = _resolve_values(secrets, options, prompt, cancel)
    keys = PublicKeyCache(client, options.target_env)

    if mode is SecretsMode.EMPTY_VALUES:
        logger.warning("GitHub may not accept empty secrets. Attempting to set empty values...")

    def _upload(item: _PendingSecret):
        if item.skip_reason:
            return ItemStatus.SKIPPED, item.skip_reason
        logger.info(f"Adding secret: {item.name}")
        try:
            key = keys.get()
        except RemoteFetchError as e:
            return ItemStatus.SEAL_FAILED, f"public key unavailable: {e}"
        try:
            encrypted = seal_secret(key.key, item.value.plaintext)
        except (InvalidPublicKey, EncryptionUnavailable) as e:
            return ItemStatus.SEAL_FAILED, str(e)
        try:
            created = client.upsert_secret(
                options.target_env,
                SealedSecret(name=item.name, encrypted_value=encrypted, key_id=key.key_id),
            )
        except RemoteWriteError as e:
            return ItemStatus.UPLOAD_FAILED, str(e)
        return ItemStatus.UPLOADED, "created" if created else "updated"

    return run_items(
        [(p.name, p) for p in pending],
        _upload,
        report,
        max_workers=options.max_workers,
        cancel=cancel,
    )
