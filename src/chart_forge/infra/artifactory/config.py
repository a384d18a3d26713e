"""Connection settings for the Artifactory Helm repository."""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger
from pydantic import BaseModel, ConfigDict, SecretStr

from chart_forge.core.errors import MissingCredentials

ENV_FIELDS: dict[str, str] = {
    "endpoint": "ARTIFACTORY_URL",
    "repository": "ARTIFACTORY_REPO",
    "user": "ARTIFACTORY_USER",
    "token": "ARTIFACTORY_TOKEN",
}


def _artifactory_endpoint(url: str) -> str:
    """Return the API base for a server URL, appending ``/artifactory`` if absent."""
    url = url.strip().rstrip("/")
    if not url or url.endswith("/artifactory"):
        return url
    return f"{url}/artifactory"


class PublisherConfig(BaseModel):
    """Repository coordinates and credentials.

    Attributes:
        endpoint: Artifactory API base, e.g. ``https://repo.example.com/artifactory``
        repository: Helm repository key
        user: Account used for basic authentication
        token: API token or password
    """

    model_config = ConfigDict(frozen=True)

    endpoint: str = ""
    repository: str = ""
    user: str = ""
    token: SecretStr = SecretStr("")

    @classmethod
    def from_env(cls, env_file: Path | None = None) -> PublisherConfig:
        """Build settings from ``ARTIFACTORY_*`` environment variables.

        The ``.env`` file, when given and present, is loaded first without
        overriding variables that are already set.
        """
        if env_file is not None and env_file.exists():
            load_dotenv(env_file, override=False)
            logger.debug(f"Loaded environment from {env_file}")

        return cls(
            endpoint=_artifactory_endpoint(os.getenv(ENV_FIELDS["endpoint"], "")),
            repository=os.getenv(ENV_FIELDS["repository"], "").strip(),
            user=os.getenv(ENV_FIELDS["user"], "").strip(),
            token=SecretStr(os.getenv(ENV_FIELDS["token"], "").strip()),
        )

    def missing_fields(self) -> list[str]:
        """Return the environment variable names of every empty setting."""
        values = {
            "endpoint": self.endpoint,
            "repository": self.repository,
            "user": self.user,
            "token": self.token.get_secret_value(),
        }
        return [ENV_FIELDS[name] for name, value in values.items() if not value]

    def require_complete(self) -> None:
        """Raise MissingCredentials naming every empty setting."""
        missing = self.missing_fields()
        if missing:
            raise MissingCredentials(missing)

    @property
    def repository_url(self) -> str:
        return f"{self.endpoint}/{self.repository}"
