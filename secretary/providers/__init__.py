"""Secret sources for secretary."""

from typing import Optional

from secretary.config.settings import SecretaryConfig
from secretary.utils.errors import ConfigurationError

from .aws import ParameterStoreSource, SecretsManagerSource
from .base import Arn, SecretSource, parse_arn
from .dummy import DummySource
from .mux import ProviderMux

PROVIDERS = ("auto", "aws", "awsssm", "dummy")


def create_source(name: str, config: Optional[SecretaryConfig] = None) -> SecretSource:
    """
    Create the secret source selected by ``name``.

    Args:
        name: One of ``auto``, ``aws``, ``awsssm`` or ``dummy``
        config: Runtime settings (region and call timeout)

    Returns:
        SecretSource: The configured source

    Raises:
        ConfigurationError: If ``name`` is not a known provider
    """
    config = config or SecretaryConfig()

    if name == "auto":
        return ProviderMux(config)
    if name == "aws":
        return SecretsManagerSource(region=config.aws_region, timeout=config.poll_timeout)
    if name == "awsssm":
        return ParameterStoreSource(region=config.aws_region, timeout=config.poll_timeout)
    if name == "dummy":
        return DummySource()

    raise ConfigurationError(
        f"Unknown provider: {name}",
        suggestions=[f"Use one of: {', '.join(PROVIDERS)}"],
    )


__all__ = [
    "Arn",
    "DummySource",
    "PROVIDERS",
    "ParameterStoreSource",
    "ProviderMux",
    "SecretSource",
    "SecretsManagerSource",
    "create_source",
    "parse_arn",
]
