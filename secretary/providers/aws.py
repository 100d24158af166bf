"""AWS Secrets Manager and Systems Manager Parameter Store sources."""

import logging
from typing import Any, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError, NoRegionError

from secretary.utils.errors import ProviderError, SecretSourceError, create_error_suggestions

from .base import SecretSource

logger = logging.getLogger(__name__)

CURRENT_STAGE = "AWSCURRENT"


def _client_config(timeout: Optional[float]) -> Optional[Config]:
    if not timeout:
        return None
    return Config(connect_timeout=timeout, read_timeout=timeout, retries={"max_attempts": 2})


def _create_client(service: str, region: Optional[str], timeout: Optional[float]) -> Any:
    try:
        return boto3.client(service, region_name=region, config=_client_config(timeout))
    except NoRegionError as e:
        raise ProviderError(
            f"No AWS region configured for {service}",
            suggestions=create_error_suggestions("aws_credentials_missing"),
        ) from e
    except BotoCoreError as e:
        raise ProviderError(f"Failed to create {service} client: {e}") from e


def _source_error(action: str, identifier: str, error: Exception) -> SecretSourceError:
    if isinstance(error, NoCredentialsError):
        suggestions = create_error_suggestions("aws_credentials_missing")
    elif isinstance(error, ClientError) and error.response.get("Error", {}).get("Code") in (
        "ResourceNotFoundException",
        "ParameterNotFound",
    ):
        suggestions = create_error_suggestions("secret_not_found", secret=identifier)
    else:
        suggestions = []
    return SecretSourceError(f"Failed to {action} {identifier}: {error}", suggestions=suggestions)


class SecretsManagerSource(SecretSource):
    """Reads secrets from AWS Secrets Manager."""

    def __init__(self, region: Optional[str] = None, timeout: Optional[float] = None, client: Any = None):
        """
        Initialize Secrets Manager source.

        Args:
            region: AWS region (boto3 default chain when omitted)
            timeout: Connect/read timeout in seconds for API calls
            client: Preconfigured boto3 ``secretsmanager`` client
        """
        self._client = client or _create_client("secretsmanager", region, timeout)

    def get_value(self, identifier: str) -> bytes:
        try:
            response = self._client.get_secret_value(SecretId=identifier)
        except (BotoCoreError, ClientError) as e:
            raise _source_error("read secret", identifier, e) from e

        if response.get("SecretString") is not None:
            return response["SecretString"].encode("utf-8")
        return response.get("SecretBinary", b"")

    def get_version(self, identifier: str) -> str:
        try:
            response = self._client.describe_secret(SecretId=identifier)
        except (BotoCoreError, ClientError) as e:
            raise _source_error("describe secret", identifier, e) from e

        for version_id, stages in response.get("VersionIdsToStages", {}).items():
            if CURRENT_STAGE in stages:
                return version_id

        raise SecretSourceError(f"No current version found for {identifier}")


class ParameterStoreSource(SecretSource):
    """Reads parameters from AWS Systems Manager Parameter Store."""

    def __init__(self, region: Optional[str] = None, timeout: Optional[float] = None, client: Any = None):
        """
        Initialize Parameter Store source.

        Args:
            region: AWS region (boto3 default chain when omitted)
            timeout: Connect/read timeout in seconds for API calls
            client: Preconfigured boto3 ``ssm`` client
        """
        self._client = client or _create_client("ssm", region, timeout)

    def _get_parameter(self, identifier: str) -> dict:
        try:
            response = self._client.get_parameter(Name=identifier, WithDecryption=True)
        except (BotoCoreError, ClientError) as e:
            raise _source_error("read parameter", identifier, e) from e
        return response["Parameter"]

    def get_value(self, identifier: str) -> bytes:
        return self._get_parameter(identifier)["Value"].encode("utf-8")

    def get_version(self, identifier: str) -> str:
        return str(self._get_parameter(identifier)["Version"])
