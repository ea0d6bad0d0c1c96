"""Repository registration.

Registers every configured sync repository with the query engine and adds
its servers, resolving the ``$repo`` and ``$arch`` placeholders of each
server URL template.
"""

from typing import TYPE_CHECKING, Iterable, List, Optional

from ..common.errors import ConfigError, EngineError, RegistrationError
from ..common.logger import get_logger
from ..engine.base import QueryEngine

if TYPE_CHECKING:
    from ..common.config import RepositoryConfig

logger = get_logger("repo_registry")


def resolve_server(template: str, repository: str, architecture: Optional[str] = None) -> str:
    """Resolve a server URL template.

    Args:
        template: Server URL, may contain ``$repo`` and ``$arch``
        repository: Repository name substituted for ``$repo``
        architecture: Architecture substituted for ``$arch``

    Returns:
        Resolved server URL

    Raises:
        ConfigError: If ``$arch`` is used but no architecture is configured
    """
    server = template.replace("$repo", repository)
    if architecture:
        return server.replace("$arch", architecture)
    if "$arch" in server:
        raise ConfigError(
            f"Server {template} contains the $arch variable, "
            f"but no Architecture was defined"
        )
    return server


class RepositoryRegistry:
    """Registers repositories into a query engine."""

    def __init__(self, engine: QueryEngine):
        self.engine = engine

    def register(
        self,
        repositories: Iterable["RepositoryConfig"],
        architecture: Optional[str] = None,
    ) -> List[str]:
        """Register repositories and their servers.

        Args:
            repositories: Repository descriptors in configuration order
            architecture: Configured architecture, if any

        Returns:
            Names of the registered repositories

        Raises:
            ConfigError: If a server template cannot be resolved
            RegistrationError: If the engine refuses a repository or server
        """
        registered = []
        for repo in repositories:
            logger.debug(f"register {repo.name}")
            try:
                self.engine.register_repository(repo.name, repo.sig_level)
            except EngineError as e:
                raise RegistrationError(
                    f"Could not register database {repo.name}: {e}"
                ) from e

            for template in repo.servers:
                server = resolve_server(template, repo.name, architecture)
                logger.debug(f"add server {server} into {repo.name}")
                try:
                    self.engine.add_server(repo.name, server)
                except EngineError as e:
                    raise RegistrationError(
                        f"Could not add server {server} to database {repo.name}: {e}"
                    ) from e

            registered.append(repo.name)

        return registered
