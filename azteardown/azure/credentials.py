"""Azure credential helpers."""

from __future__ import annotations

import logging
from typing import Optional

from azure.core.credentials import TokenCredential
from azure.core.exceptions import ClientAuthenticationError
from azure.identity import DefaultAzureCredential

from .errors import CredentialValidationError

logger = logging.getLogger(__name__)

MANAGEMENT_SCOPE = "https://management.azure.com/.default"


def get_credential(tenant_id: Optional[str] = None) -> DefaultAzureCredential:
    """Create the credential chain used for all management calls.

    Args:
        tenant_id: Tenant to authenticate against (optional)

    Returns:
        DefaultAzureCredential (environment, managed identity, Azure CLI, ...)
    """
    kwargs = {"exclude_shared_token_cache_credential": True}
    if tenant_id:
        kwargs["additionally_allowed_tenants"] = [tenant_id]
        kwargs["interactive_browser_tenant_id"] = tenant_id
    return DefaultAzureCredential(**kwargs)


def validate_credentials(credential: TokenCredential, scope: str = MANAGEMENT_SCOPE) -> int:
    """Verify the credential can obtain a management token.

    Args:
        credential: Credential to validate
        scope: Token scope to request

    Returns:
        Token expiry as a POSIX timestamp

    Raises:
        CredentialValidationError: If no token can be acquired
    """
    try:
        token = credential.get_token(scope)
    except ClientAuthenticationError as e:
        logger.debug("Credential validation failed", exc_info=True)
        raise CredentialValidationError(f"Unable to authenticate with Azure: {e.message}") from e

    return token.expires_on
