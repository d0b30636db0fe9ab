"""Startup checks for optional capabilities and required tools."""
import logging
import shutil

from .errors import EncryptionUnavailable
from .models import Capabilities
from .sealer import _load_nacl

logger = logging.getLogger(__name__)


def check_capabilities() -> Capabilities:
    """Check whether secrets can be sealed in this runtime."""
    try:
        _load_nacl()
    except EncryptionUnavailable as e:
        logger.debug(f"Encryption check failed: {e}")
        return Capabilities(can_encrypt=False, reason=str(e))
    return Capabilities(can_encrypt=True)


def gh_cli_available() -> bool:
    """Check whether the GitHub CLI is on PATH."""
    return shutil.which("gh") is not None
