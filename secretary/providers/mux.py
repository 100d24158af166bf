"""Routing of identifiers to the secret source that understands them."""

import logging
from typing import Callable, Dict, Optional, Tuple

from secretary.config.settings import SecretaryConfig
from secretary.utils.errors import ProviderError

from .aws import ParameterStoreSource, SecretsManagerSource
from .base import SecretSource, parse_arn
from .dummy import DummySource

logger = logging.getLogger(__name__)

SourceFactory = Callable[[Optional[str], Optional[float]], SecretSource]

DEFAULT_FACTORIES: Dict[str, SourceFactory] = {
    "secretsmanager": lambda region, timeout: SecretsManagerSource(region=region, timeout=timeout),
    "ssm": lambda region, timeout: ParameterStoreSource(region=region, timeout=timeout),
}


class ProviderMux(SecretSource):
    """Chooses a backend from the shape of each identifier.

    ``arn:aws:secretsmanager:...`` goes to Secrets Manager and
    ``arn:aws:ssm:...`` to Parameter Store. Anything that does not look
    like an AWS ARN falls back to the dummy source. Backends are created on
    first use and reused per service and region.
    """

    def __init__(
        self,
        config: Optional[SecretaryConfig] = None,
        factories: Optional[Dict[str, SourceFactory]] = None,
        fallback: Optional[SecretSource] = None,
    ):
        self.config = config or SecretaryConfig()
        self.factories = factories if factories is not None else dict(DEFAULT_FACTORIES)
        self.fallback = fallback or DummySource()
        self._providers: Dict[Tuple[str, Optional[str]], SecretSource] = {}

    def resolve(self, identifier: str) -> SecretSource:
        """
        Return the source responsible for ``identifier``.

        Raises:
            ProviderError: If the identifier is an ARN for an unsupported service
        """
        if not identifier.startswith("arn:aws"):
            return self.fallback

        arn = parse_arn(identifier)
        factory = self.factories.get(arn.service)
        if factory is None:
            raise ProviderError(f"Unknown provider for service '{arn.service}': {identifier}")

        region = self.config.aws_region or arn.region or None
        key = (arn.service, region)
        if key not in self._providers:
            logger.debug("Creating %s source for region %s", arn.service, region)
            self._providers[key] = factory(region, self.config.poll_timeout)
        return self._providers[key]

    def get_value(self, identifier: str) -> bytes:
        return self.resolve(identifier).get_value(identifier)

    def get_version(self, identifier: str) -> str:
        return self.resolve(identifier).get_version(identifier)
