"""Upload packaged charts to an Artifactory Helm repository.

Publishing is three HTTP calls with basic authentication:

1. ``PUT <endpoint>/<repo>/<name>/<file>`` uploads the package (must succeed)
2. ``POST <endpoint>/api/helm/<repo>/reindex`` refreshes the index
3. ``GET <endpoint>/api/storage/<repo>/<name>/<file>`` confirms availability

Only the upload decides success; index and verification problems are
recorded as warnings.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path

import httpx
from loguru import logger

from chart_forge.core.errors import (
    ArtifactNotFound,
    RepositoryUnreachable,
    UnparseableArtifactName,
    UploadFailed,
)

from .config import PublisherConfig

ARTIFACT_NAME_PATTERN = re.compile(
    r"^(?P<name>.+?)-(?P<version>\d+\.\d+\.\d+(?:-[0-9A-Za-z.-]+)?)\.tgz$"
)
UPLOAD_OK_STATUSES = (200, 201)
DEFAULT_TIMEOUT = 30.0


def parse_artifact_name(filename: str) -> tuple[str, str]:
    """Split a package filename into chart name and version.

    Example:
        >>> parse_artifact_name("mimir-custom-0.1.1-build.42.tgz")
        ('mimir-custom', '0.1.1-build.42')

    Raises:
        UnparseableArtifactName: If the name has no ``-<x.y.z>.tgz`` suffix
    """
    match = ARTIFACT_NAME_PATTERN.match(Path(filename).name)
    if not match:
        raise UnparseableArtifactName(filename)
    return match.group("name"), match.group("version")


@dataclass
class PublishResult:
    """Outcome of a successful upload."""

    chart_name: str
    version: str
    upload_url: str
    status_code: int
    reindexed: bool = False
    verified: bool = False
    warnings: list[str] = field(default_factory=list)
    install_commands: list[str] = field(default_factory=list)


def install_commands(
    config: PublisherConfig,
    chart_name: str,
    version: str,
    *,
    repo_alias: str = "custom-charts",
    release_name: str = "my-mimir",
) -> list[str]:
    """Return the helm commands a consumer runs to install the published chart."""
    return [
        f"helm repo add {repo_alias} {config.repository_url}",
        "helm repo update",
        f"helm install {release_name} {repo_alias}/{chart_name} --version {version}",
    ]


class ChartPublisher:
    """Publishes chart packages using a shared HTTP client."""

    def __init__(
        self,
        config: PublisherConfig,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.Client | None = None,
        repo_alias: str = "custom-charts",
    ) -> None:
        config.require_complete()
        self.config = config
        self.timeout = timeout
        self.repo_alias = repo_alias
        self._client = client

    def _auth(self) -> httpx.BasicAuth:
        return httpx.BasicAuth(self.config.user, self.config.token.get_secret_value())

    def publish(self, artifact_path: Path) -> PublishResult:
        """Upload a package, reindex the repository and verify availability.

        Raises:
            ArtifactNotFound: If the package file does not exist
            UnparseableArtifactName: If the filename carries no version
            UploadFailed: If the upload returns anything but 200 or 201
            RepositoryUnreachable: If the upload request cannot be completed
        """
        if not artifact_path.is_file():
            raise ArtifactNotFound(str(artifact_path))

        filename = artifact_path.name
        chart_name, version = parse_artifact_name(filename)

        if self._client is not None:
            return self._publish(self._client, artifact_path, chart_name, version)
        with httpx.Client(timeout=self.timeout) as client:
            return self._publish(client, artifact_path, chart_name, version)

    def _publish(
        self,
        client: httpx.Client,
        artifact_path: Path,
        chart_name: str,
        version: str,
    ) -> PublishResult:
        cfg = self.config
        filename = artifact_path.name
        upload_url = f"{cfg.endpoint}/{cfg.repository}/{chart_name}/{filename}"

        logger.debug(f"PUT {upload_url}")
        try:
            response = client.put(
                upload_url,
                content=artifact_path.read_bytes(),
                auth=self._auth(),
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            raise RepositoryUnreachable(upload_url, e) from e
        logger.debug(f"Upload returned HTTP {response.status_code}")
        if response.status_code not in UPLOAD_OK_STATUSES:
            raise UploadFailed(response.status_code, upload_url)

        result = PublishResult(
            chart_name=chart_name,
            version=version,
            upload_url=upload_url,
            status_code=response.status_code,
        )

        index_url = f"{cfg.endpoint}/api/helm/{cfg.repository}/reindex"
        logger.debug(f"POST {index_url}")
        try:
            response = client.post(index_url, auth=self._auth(), timeout=self.timeout)
        except httpx.HTTPError as e:
            logger.debug(f"Reindex request failed: {e!r}")
            result.warnings.append(
                f"Repository index update failed: {e}; "
                "the chart may not be immediately available"
            )
        else:
            result.reindexed = response.status_code == 200
            if not result.reindexed:
                result.warnings.append(
                    f"Repository index update failed with HTTP status: "
                    f"{response.status_code}; the chart may not be immediately "
                    "available"
                )

        storage = f"{cfg.endpoint}/api/storage/{cfg.repository}"
        info_url = f"{storage}/{chart_name}/{filename}"
        logger.debug(f"GET {info_url}")
        try:
            response = client.get(info_url, auth=self._auth(), timeout=self.timeout)
        except httpx.HTTPError as e:
            logger.debug(f"Verification request failed: {e!r}")
        else:
            result.verified = response.status_code == 200
        if not result.verified:
            result.warnings.append(
                "Chart verification failed; chart may not be immediately available"
            )

        result.install_commands = install_commands(
            cfg, chart_name, version, repo_alias=self.repo_alias
        )
        return result


def publish(
    artifact_path: Path,
    config: PublisherConfig,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    client: httpx.Client | None = None,
    repo_alias: str = "custom-charts",
) -> PublishResult:
    """Publish a chart package.

    Args:
        artifact_path: Path of the ``.tgz`` package
        config: Repository coordinates and credentials
        timeout: Seconds applied to every request; no retries are made
        client: Optional pre-configured HTTP client
        repo_alias: Repository alias used in the install instructions

    Raises:
        MissingCredentials: If any repository setting is empty
        ArtifactNotFound: If the package file does not exist
        UnparseableArtifactName: If the filename carries no version
        UploadFailed: If the upload is rejected
        RepositoryUnreachable: If the repository cannot be reached
    """
    publisher = ChartPublisher(
        config, timeout=timeout, client=client, repo_alias=repo_alias
    )
    return publisher.publish(artifact_path)
