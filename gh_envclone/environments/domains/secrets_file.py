"""Secrets file and template handling.

Both files are a flat JSON object mapping secret name to value:

    {
      "SECRET_NAME_1": "secret_value_1",
      "SECRET_NAME_2": "secret_value_2"
    }
"""
import json
import logging
from pathlib import Path
from typing import Dict, Iterable

from .errors import SecretsFileInvalid, SecretsFileNotFound, TemplateWriteError

logger = logging.getLogger(__name__)


def load_secrets_file(path: str) -> Dict[str, str]:
    """
    Load secret values from a JSON file.

    Args:
        path: Path to the secrets file

    Returns:
        Mapping of secret name to plaintext value

    Raises:
        SecretsFileNotFound: If the file doesn't exist
        SecretsFileInvalid: If the file is not a flat JSON object of strings
    """
    secrets_path = Path(path)
    if not secrets_path.is_file():
        raise SecretsFileNotFound(f"Secrets file '{path}' not found.")

    try:
        with open(secrets_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise SecretsFileInvalid(f"Failed to parse secrets file '{path}': {e}")
    except OSError as e:
        raise SecretsFileInvalid(f"Failed to read secrets file '{path}': {e}")

    if not isinstance(data, dict):
        raise SecretsFileInvalid(f"Secrets file '{path}' must contain a JSON object")

    for name, value in data.items():
        if value is not None and not isinstance(value, str):
            raise SecretsFileInvalid(f"Value for '{name}' in '{path}' must be a string")

    logger.info(f"Loaded {len(data)} value(s) from secrets file {path}")
    return {name: value or "" for name, value in data.items()}


def write_secrets_template(path: str, names: Iterable[str]) -> None:
    """
    Write a secrets template with an empty value for each name.

    Raises:
        TemplateWriteError: If the file cannot be written
    """
    template = {name: "" for name in names}
    try:
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(template, f, indent=2)
            f.write("\n")
    except OSError as e:
        raise TemplateWriteError(f"Failed to create template file '{path}': {e}")
    logger.info(f"Wrote {len(template)} secret name(s) to {path}")
