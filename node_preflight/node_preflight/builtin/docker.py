"""Built-in check that validates the local Docker engine.

Queries ``GET /info`` on the Docker Engine API over its unix socket and
compares the server version and storage driver with ``DockerSpec``.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from node_preflight.base import BaseCheck
from node_preflight.errors import CheckFailure
from node_preflight.models import ResultCategory
from node_preflight.reporters import BaseReporter
from node_preflight.sysspec import DockerSpec, SysSpec

logger = logging.getLogger(__name__)

DEFAULT_DOCKER_SOCKET = "/var/run/docker.sock"
_DEFAULT_TIMEOUT = 5.0


class DockerInfo(BaseModel):
    """The subset of ``/info`` the check inspects."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    server_version: str = Field(default="", alias="ServerVersion")
    driver: str = Field(default="", alias="Driver")


class DockerClient:
    """Minimal synchronous client for the Docker Engine API.

    Parameters
    ----------
    socket_path:
        Path of the engine's unix socket.
    timeout:
        Per-request timeout in seconds.
    transport:
        Optional transport override, e.g. ``httpx.MockTransport`` in
        tests.  When given, ``socket_path`` is ignored.
    """

    def __init__(
        self,
        socket_path: str = DEFAULT_DOCKER_SOCKET,
        *,
        timeout: float = _DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._client = httpx.Client(
            base_url="http://docker",
            transport=transport or httpx.HTTPTransport(uds=socket_path),
            timeout=httpx.Timeout(timeout),
        )

    def info(self) -> DockerInfo:
        """Fetch engine information.

        Raises
        ------
        httpx.HTTPError
            On transport failures and non-2xx responses.
        """
        response = self._client.get("/info")
        response.raise_for_status()
        return DockerInfo.model_validate(response.json())

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> DockerClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class DockerCheck(BaseCheck):
    """Validate the Docker server version and storage driver.

    Parameters
    ----------
    reporter:
        Sink for ``DOCKER_*`` observations.
    client:
        Pre-built client.  When ``None`` a client for *socket_path* is
        opened for each validation and closed afterwards.
    """

    def __init__(
        self,
        reporter: BaseReporter,
        *,
        client: DockerClient | None = None,
        socket_path: str = DEFAULT_DOCKER_SOCKET,
        timeout: float = _DEFAULT_TIMEOUT,
    ) -> None:
        super().__init__(reporter)
        self._client = client
        self._socket_path = socket_path
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "docker"

    def validate(self, spec: SysSpec) -> None:
        docker_spec = spec.runtime_spec.docker_spec
        if docker_spec is None:
            self.report("DOCKER", "no docker requirements in spec", ResultCategory.WARN)
            return

        info = self._fetch_info()
        failures = [
            f
            for f in (
                self._validate_version(info.server_version, docker_spec.version),
                self._validate_graph_driver(info.driver, docker_spec),
            )
            if f is not None
        ]
        if failures:
            raise CheckFailure.merge(failures, check_name=self.name)

    def _fetch_info(self) -> DockerInfo:
        try:
            if self._client is not None:
                return self._client.info()
            with DockerClient(self._socket_path, timeout=self._timeout) as client:
                return client.info()
        except (httpx.HTTPError, ValidationError, ValueError) as exc:
            logger.debug("Docker info request failed: %s", exc)
            raise CheckFailure(f"failed to get docker info: {exc}", check_name=self.name) from exc

    def _validate_version(self, version: str, patterns: Sequence[str]) -> CheckFailure | None:
        if any(re.fullmatch(p, version) for p in patterns):
            self.report("DOCKER_VERSION", version, ResultCategory.GOOD)
            return None
        self.report("DOCKER_VERSION", version, ResultCategory.BAD)
        return CheckFailure(f"unsupported docker version: {version}", check_name=self.name)

    def _validate_graph_driver(self, driver: str, docker_spec: DockerSpec) -> CheckFailure | None:
        if driver in docker_spec.graph_driver:
            self.report("DOCKER_GRAPH_DRIVER", driver, ResultCategory.GOOD)
            return None
        self.report("DOCKER_GRAPH_DRIVER", driver, ResultCategory.BAD)
        return CheckFailure(f"unsupported graph driver: {driver}", check_name=self.name)
