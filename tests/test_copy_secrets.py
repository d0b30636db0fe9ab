"""Tests for the secret-copy workflow."""
import base64
import json
import logging
import threading

import pytest
from nacl.public import SealedBox

from gh_envclone.environments.domains.errors import (
    CapabilityUnavailable,
    RemoteFetchError,
    SecretsFileInvalid,
    SecretsFileNotFound,
    TemplateWriteError,
)
from gh_envclone.environments.domains.models import (
    Capabilities,
    ItemStatus,
    RecipientPublicKey,
    SecretsMode,
)
from gh_envclone.environments.workflows.copy_secrets import (
    SKIP_EMPTY_INPUT,
    SKIP_INVALID_NAME,
    SKIP_NOT_IN_FILE,
    copy_secrets,
)


def _opened(private_key, sealed):
    return SealedBox(private_key).decrypt(base64.b64decode(sealed.encrypted_value)).decode("utf-8")


@pytest.fixture
def secrets_file(tmp_path):
    def _write(content):
        path = tmp_path / "secrets.json"
        path.write_text(content if isinstance(content, str) else json.dumps(content))
        return str(path)
    return _write


class TestListAndTemplate:
    """Test suite for modes that never upload."""

    def test_list_only_issues_no_writes(self, make_client, make_options, can_encrypt):
        client = make_client(secrets=[f"SECRET_{i}" for i in range(40)])

        report = copy_secrets(client, make_options(SecretsMode.LIST_ONLY), can_encrypt)

        assert report.listed == [f"SECRET_{i}" for i in range(40)]
        assert report.outcomes == []
        assert client.write_calls == 0
        assert client.public_key_calls == 0

    def test_list_only_works_without_encryption(self, make_client, make_options):
        client = make_client(secrets=["A"])

        report = copy_secrets(client, make_options(SecretsMode.LIST_ONLY), Capabilities(can_encrypt=False))

        assert report.listed == ["A"]

    def test_generate_template_writes_empty_values(self, make_client, make_options, can_encrypt, tmp_path):
        client = make_client(secrets=["B", "A"])
        path = tmp_path / "template.json"

        report = copy_secrets(client, make_options(SecretsMode.GENERATE_TEMPLATE, template_file=str(path)),
                              can_encrypt)

        assert json.loads(path.read_text()) == {"A": "", "B": ""}
        assert report.template_path == str(path)
        assert client.write_calls == 0

    def test_generate_template_unwritable_path_raises(self, make_client, make_options, can_encrypt, tmp_path):
        client = make_client(secrets=["A"])
        path = tmp_path / "missing-dir" / "template.json"

        with pytest.raises(TemplateWriteError):
            copy_secrets(client, make_options(SecretsMode.GENERATE_TEMPLATE, template_file=str(path)),
                         can_encrypt)

    def test_no_secrets_writes_no_template(self, make_client, make_options, can_encrypt, tmp_path):
        path = tmp_path / "template.json"

        report = copy_secrets(make_client(), make_options(SecretsMode.GENERATE_TEMPLATE, template_file=str(path)),
                              can_encrypt)

        assert report.listed == []
        assert not path.exists()


class TestFromFile:
    """Test suite for values supplied by a secrets file."""

    def test_only_secrets_present_in_file_are_uploaded(self, make_client, make_options, can_encrypt,
                                                         secrets_file, private_key):
        client = make_client(secrets=["A", "B"])
        path = secrets_file({"A": "v1"})

        report = copy_secrets(client, make_options(SecretsMode.FROM_FILE, secrets_file=path), can_encrypt)

        assert [sealed.name for _, sealed in client.uploaded_secrets] == ["A"]
        env, sealed = client.uploaded_secrets[0]
        assert env == "production"
        assert sealed.key_id == "568250167242549743"
        assert _opened(private_key, sealed) == "v1"
        assert report.outcome_for("A").status is ItemStatus.UPLOADED
        assert report.outcome_for("B").status is ItemStatus.SKIPPED
        assert report.outcome_for("B").reason == SKIP_NOT_IN_FILE
        assert len(report.outcomes) == 2

    def test_empty_value_in_file_is_skipped(self, make_client, make_options, can_encrypt, secrets_file):
        client = make_client(secrets=["A"])
        path = secrets_file({"A": ""})

        report = copy_secrets(client, make_options(SecretsMode.FROM_FILE, secrets_file=path), can_encrypt)

        assert client.uploaded_secrets == []
        assert report.outcome_for("A").reason == SKIP_NOT_IN_FILE

    def test_values_with_special_characters_survive(self, make_client, make_options, can_encrypt,
                                                    secrets_file, private_key):
        value = "p|a$$\"w'o\nrd"
        client = make_client(secrets=["A"])
        path = secrets_file({"A": value})

        copy_secrets(client, make_options(SecretsMode.FROM_FILE, secrets_file=path), can_encrypt)

        assert _opened(private_key, client.uploaded_secrets[0][1]) == value

    def test_missing_file_raises(self, make_client, make_options, can_encrypt, tmp_path):
        client = make_client(secrets=["A"])
        options = make_options(SecretsMode.FROM_FILE, secrets_file=str(tmp_path / "nope.json"))

        with pytest.raises(SecretsFileNotFound):
            copy_secrets(client, options, can_encrypt)

    @pytest.mark.parametrize("content", ["not json", "[1, 2]", '{"A": 1}'])
    def test_malformed_file_raises(self, make_client, make_options, can_encrypt, secrets_file, content):
        client = make_client(secrets=["A"])

        with pytest.raises(SecretsFileInvalid):
            copy_secrets(client, make_options(SecretsMode.FROM_FILE, secrets_file=secrets_file(content)),
                         can_encrypt)


class TestInteractiveAndEmpty:
    """Test suite for prompted and empty values."""

    def test_prompted_values_uploaded_and_blank_input_skipped(self, make_client, make_options, can_encrypt,
                                                               private_key):
        client = make_client(secrets=["A", "B"])
        answers = {"A": "typed", "B": ""}
        prompted = []

        def prompt(name):
            prompted.append(name)
            return answers[name]

        report = copy_secrets(client, make_options(SecretsMode.INTERACTIVE), can_encrypt, prompt=prompt)

        assert prompted == ["A", "B"]
        assert _opened(private_key, client.uploaded_secrets[0][1]) == "typed"
        assert report.outcome_for("B").reason == SKIP_EMPTY_INPUT

    def test_invalid_names_are_not_prompted(self, make_client, make_options, can_encrypt):
        client = make_client(secrets=["bad-name", "GOOD"])
        prompted = []

        def prompt(name):
            prompted.append(name)
            return "x"

        report = copy_secrets(client, make_options(SecretsMode.INTERACTIVE), can_encrypt, prompt=prompt)

        assert prompted == ["GOOD"]
        assert report.outcome_for("bad-name").reason == SKIP_INVALID_NAME

    def test_closed_stdin_skips_secret(self, make_client, make_options, can_encrypt):
        def prompt(name):
            raise EOFError

        report = copy_secrets(make_client(secrets=["A"]), make_options(SecretsMode.INTERACTIVE), can_encrypt,
                              prompt=prompt)

        assert report.outcome_for("A").status is ItemStatus.SKIPPED

    def test_empty_values_attempted_and_rejections_recorded(self, make_client, make_options, can_encrypt,
                                                            private_key):
        client = make_client(secrets=["A", "B", "C"])
        client.fail_secret_names.add("B")

        report = copy_secrets(client, make_options(SecretsMode.EMPTY_VALUES), can_encrypt)

        assert [sealed.name for _, sealed in client.uploaded_secrets] == ["A", "C"]
        assert all(_opened(private_key, sealed) == "" for _, sealed in client.uploaded_secrets)
        rejected = report.outcome_for("B")
        assert rejected.status is ItemStatus.UPLOAD_FAILED
        assert "Invalid request" in rejected.reason
        assert (report.succeeded, report.failed) == (2, 1)


class TestPerSecretFailures:
    """Test suite for failures isolated to one secret."""

    def test_public_key_fetched_once_per_run(self, make_client, make_options, can_encrypt):
        client = make_client(secrets=[f"S{i}" for i in range(10)])

        copy_secrets(client, make_options(SecretsMode.EMPTY_VALUES, max_workers=4), can_encrypt)

        assert client.public_key_calls == 1
        assert len(client.uploaded_secrets) == 10

    def test_public_key_failure_recorded_per_secret(self, make_client, make_options, can_encrypt):
        client = make_client(secrets=["A", "B"])
        client.public_key_error = RemoteFetchError("Failed to get public key", status_code=404)

        report = copy_secrets(client, make_options(SecretsMode.EMPTY_VALUES), can_encrypt)

        assert [o.status for o in report.outcomes] == [ItemStatus.SEAL_FAILED, ItemStatus.SEAL_FAILED]
        assert client.public_key_calls == 2
        assert client.uploaded_secrets == []

    def test_invalid_public_key_is_seal_failure(self, make_client, make_options, can_encrypt):
        bad_key = RecipientPublicKey(key_id="1", key=base64.b64encode(b"short").decode("ascii"))
        client = make_client(secrets=["A"], public_key=bad_key)

        report = copy_secrets(client, make_options(SecretsMode.EMPTY_VALUES), can_encrypt)

        assert report.outcome_for("A").status is ItemStatus.SEAL_FAILED
        assert client.uploaded_secrets == []

    def test_uploading_modes_require_encryption(self, make_client, make_options):
        client = make_client(secrets=["A"])

        with pytest.raises(CapabilityUnavailable):
            copy_secrets(client, make_options(SecretsMode.EMPTY_VALUES),
                         Capabilities(can_encrypt=False, reason="PyNaCl is not available"))

        assert client.write_calls == 0

    def test_listing_failure_raises(self, make_client, make_options, can_encrypt, listing_error):
        client = make_client()
        client.list_error = listing_error

        with pytest.raises(RemoteFetchError):
            copy_secrets(client, make_options(SecretsMode.LIST_ONLY), can_encrypt)


class TestCancellation:
    """Test suite for cancelling a secrets run."""

    def test_cancel_before_listing_makes_no_calls(self, make_client, make_options, can_encrypt):
        client = make_client(secrets=["A", "B"])
        cancel = threading.Event()
        cancel.set()

        report = copy_secrets(client, make_options(SecretsMode.EMPTY_VALUES), can_encrypt, cancel=cancel)

        assert report.cancelled is True
        assert report.outcomes == []
        assert client.list_calls == 0
        assert client.write_calls == 0

    def test_cancel_before_listing_writes_no_template(self, make_client, make_options, can_encrypt, tmp_path):
        client = make_client(secrets=["A"])
        path = tmp_path / "template.json"
        cancel = threading.Event()
        cancel.set()

        report = copy_secrets(client, make_options(SecretsMode.GENERATE_TEMPLATE, template_file=str(path)),
                              can_encrypt, cancel=cancel)

        assert report.cancelled is True
        assert client.list_calls == 0
        assert not path.exists()

    def test_cancel_after_listing_writes_no_template(self, make_client, make_options, can_encrypt, tmp_path):
        client = make_client(secrets=["A"])
        path = tmp_path / "template.json"
        cancel = threading.Event()

        report = copy_secrets(client, make_options(SecretsMode.GENERATE_TEMPLATE, template_file=str(path)),
                              can_encrypt, cancel=cancel, on_listed=lambda names: cancel.set())

        assert report.cancelled is True
        assert report.listed == ["A"]
        assert report.template_path is None
        assert not path.exists()

    def test_cancel_during_prompts_skips_every_upload(self, make_client, make_options, can_encrypt):
        client = make_client(secrets=["A", "B"])
        cancel = threading.Event()
        prompted = []

        def prompt(name):
            prompted.append(name)
            cancel.set()
            return "typed"

        report = copy_secrets(client, make_options(SecretsMode.INTERACTIVE), can_encrypt,
                              cancel=cancel, prompt=prompt)

        assert prompted == ["A"]
        assert report.cancelled is True
        assert [(o.name, o.reason) for o in report.outcomes] == [("A", "cancelled"), ("B", "cancelled")]
        assert client.uploaded_secrets == []


class TestListingAnnouncement:
    """Test suite for the on_listed callback."""

    def test_names_announced_before_first_prompt(self, make_client, make_options, can_encrypt):
        client = make_client(secrets=["A", "B"])
        events = []

        def prompt(name):
            events.append(("prompt", name))
            return "typed"

        copy_secrets(client, make_options(SecretsMode.INTERACTIVE), can_encrypt, prompt=prompt,
                     on_listed=lambda names: events.append(("listed", list(names))))

        assert events == [("listed", ["A", "B"]), ("prompt", "A"), ("prompt", "B")]

    def test_empty_listing_is_announced(self, make_client, make_options, can_encrypt):
        announced = []

        copy_secrets(make_client(), make_options(SecretsMode.LIST_ONLY), can_encrypt, on_listed=announced.append)

        assert announced == [[]]

    def test_secret_missing_from_file_is_not_logged_as_warning(self, make_client, make_options, can_encrypt,
                                                               secrets_file, caplog):
        client = make_client(secrets=["A", "B"])
        path = secrets_file({"A": "v1"})

        with caplog.at_level(logging.DEBUG):
            report = copy_secrets(client, make_options(SecretsMode.FROM_FILE, secrets_file=path), can_encrypt)

        assert report.outcome_for("B").reason == SKIP_NOT_IN_FILE
        assert not [r for r in caplog.records if r.levelno >= logging.WARNING]
        assert not any("Warning:" in r.getMessage() for r in caplog.records)
