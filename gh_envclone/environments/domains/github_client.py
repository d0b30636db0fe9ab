"""GitHub REST client for environment variables and secrets."""
import os
import logging
import subprocess
from typing import Any, Dict, Iterator, List, Optional
from urllib.parse import quote

import requests

from .capabilities import gh_cli_available
from .config_loader import Settings
from .errors import DependencyMissing, RemoteFetchError, RemoteWriteError
from .models import EnvironmentVariable, RecipientPublicKey, SealedSecret, SecretDescriptor

logger = logging.getLogger(__name__)

GITHUB_HEADERS = {
    "Accept": "application/vnd.github+json",
    "X-GitHub-Api-Version": "2022-11-28",
}
PAGE_SIZE = 30


def resolve_token(settings: Settings) -> str:
    """
    Resolve a GitHub token from multiple sources.

    Priority order:
    1. GH_TOKEN / GITHUB_TOKEN environment variables
    2. Config file (github.token)
    3. gh auth token (GitHub CLI)

    Raises:
        DependencyMissing: If no token can be found
    """
    for env_var in ("GH_TOKEN", "GITHUB_TOKEN"):
        token = os.getenv(env_var)
        if token:
            logger.debug(f"Using token from {env_var}")
            return token

    if settings.token:
        logger.debug("Using token from config file")
        return settings.token

    if gh_cli_available():
        try:
            result = subprocess.run(
                ["gh", "auth", "token"],
                capture_output=True, text=True, check=True
            )
            token = result.stdout.strip()
            if token:
                logger.debug("Using token from gh CLI")
                return token
        except (subprocess.CalledProcessError, OSError) as e:
            logger.warning(f"Failed to get token from gh CLI: {e}")

    raise DependencyMissing(
        "No GitHub token available. Set GH_TOKEN or GITHUB_TOKEN, add github.token "
        "to the config file, or install and log in to the GitHub CLI "
        "(https://cli.github.com/, then 'gh auth login')."
    )


class GitHubEnvironmentClient:
    """Wrapper around the GitHub environments REST API for one repository."""

    def __init__(self, repo: str, token: str, api_url: str = "https://api.github.com",
                 timeout: float = 30, session: Optional[requests.Session] = None):
        self.repo = repo
        self.api_url = api_url.rstrip('/')
        self.timeout = timeout
        self._token = token
        self._session = session

    @classmethod
    def from_settings(cls, repo: str, settings: Settings) -> "GitHubEnvironmentClient":
        return cls(repo, resolve_token(settings), api_url=settings.api_url, timeout=settings.timeout)

    @property
    def session(self) -> requests.Session:
        """Lazy-initialize HTTP session."""
        if self._session is None:
            self._session = requests.Session()
        return self._session

    def _headers(self) -> Dict[str, str]:
        return {**GITHUB_HEADERS, "Authorization": f"Bearer {self._token}"}

    def _env_url(self, env: str, *parts: str) -> str:
        path = "/".join(quote(p, safe="") for p in (env,) + parts)
        return f"{self.api_url}/repos/{self.repo}/environments/{path}"

    def _request(self, method: str, url: str, error_cls, action: str, **kwargs) -> requests.Response:
        try:
            resp = self.session.request(method, url, headers=self._headers(), timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise error_cls(f"Failed to {action}: {e}")
        if not resp.ok:
            raise error_cls(f"Failed to {action}", status_code=resp.status_code, body=resp.text)
        return resp

    def _paginate(self, url: str, key: str, action: str) -> Iterator[Dict[str, Any]]:
        params: Optional[Dict[str, Any]] = {"per_page": PAGE_SIZE}
        while url:
            resp = self._request("GET", url, RemoteFetchError, action, params=params)
            try:
                data = resp.json()
                items = data[key]
                if not isinstance(items, list):
                    raise TypeError(f"'{key}' is not a list")
            except (ValueError, KeyError, TypeError):
                raise RemoteFetchError(f"Failed to {action}: unexpected response",
                                       status_code=resp.status_code, body=resp.text)
            for item in items:
                yield item
            # The next link already carries the query string
            url = resp.links.get("next", {}).get("url")
            params = None

    def list_variables(self, env: str) -> List[EnvironmentVariable]:
        """List every variable of an environment, following pagination."""
        action = f"list variables for environment '{env}'"
        variables = [
            EnvironmentVariable(name=item["name"], value="" if item.get("value") is None else str(item["value"]))
            for item in self._paginate(self._env_url(env, "variables"), "variables", action)
        ]
        logger.info(f"Found {len(variables)} variable(s) in {env}")
        return variables

    def create_variable(self, env: str, name: str, value: str) -> None:
        """Create a variable in an environment."""
        self._request(
            "POST", self._env_url(env, "variables"), RemoteWriteError,
            f"create variable '{name}' in '{env}'",
            json={"name": name, "value": value},
        )

    def list_secret_names(self, env: str) -> List[SecretDescriptor]:
        """List the names of every secret in an environment."""
        action = f"list secrets for environment '{env}'"
        secrets = [
            SecretDescriptor(name=item["name"])
            for item in self._paginate(self._env_url(env, "secrets"), "secrets", action)
        ]
        logger.info(f"Found {len(secrets)} secret(s) in {env}")
        return secrets

    def get_public_key(self, env: str) -> RecipientPublicKey:
        """Fetch the current public key used to encrypt secrets for an environment."""
        action = f"get public key for environment '{env}'"
        resp = self._request("GET", self._env_url(env, "secrets", "public-key"), RemoteFetchError, action)
        try:
            data = resp.json()
            return RecipientPublicKey(key_id=data["key_id"], key=data["key"])
        except (ValueError, KeyError, TypeError):
            raise RemoteFetchError(f"Failed to {action}: unexpected response",
                                   status_code=resp.status_code, body=resp.text)

    def upsert_secret(self, env: str, sealed: SealedSecret) -> bool:
        """
        Create or update an environment secret.

        Returns:
            True if the secret was created, False if an existing one was updated
        """
        resp = self._request(
            "PUT", self._env_url(env, "secrets", sealed.name), RemoteWriteError,
            f"add secret '{sealed.name}' to '{env}'",
            json={"encrypted_value": sealed.encrypted_value, "key_id": sealed.key_id},
        )
        return resp.status_code == 201
