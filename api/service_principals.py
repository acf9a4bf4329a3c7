"""
Service principal creation.

Azure CLI releases differ in how they hand back the new credential:
Microsoft Graph based releases print a plain ``password`` string, older
releases are asked for the SDK-auth credential document and the secret is
its ``clientSecret`` member. ``normalize_secret`` hides that difference.
"""
import logging
from dataclasses import dataclass, field

from api.exceptions import AzureCliError, PrincipalCreationError
from api.secrets import SecretValue

logger = logging.getLogger(__name__)


@dataclass
class ServicePrincipal:
    """A newly created service principal and its one-time secret."""
    app_id: str
    tenant_id: str
    display_name: str
    secret: SecretValue = field(repr=False)


def _secret_from_password(payload):
    return payload.get('password')


def _secret_from_sdk_auth(payload):
    return payload.get('clientSecret')


def normalize_secret(payload, structured):
    """
    Extract the principal secret from the CLI output as a SecretValue.

    Args:
        payload (dict): Output of 'az ad sp create-for-rbac'
        structured (bool): True when the output is an SDK-auth credential document

    Returns:
        SecretValue: The secret

    Raises:
        PrincipalCreationError: If no secret is present
    """
    backend = _secret_from_sdk_auth if structured else _secret_from_password
    value = backend(payload or {})
    if isinstance(value, dict):
        value = value.get('value') or value.get('secretText')
    if not value:
        raise PrincipalCreationError("Service principal was created but no secret was returned.")
    return SecretValue(value)


def create_service_principal(control_plane, display_name, role, scope, tenant_id):
    """
    Create a service principal bound to a role at the given scope.

    Args:
        control_plane (AzureCliControlPlane): Azure control plane
        display_name (str): Principal display name
        role (str): Role definition name
        scope (str): Authorization scope
        tenant_id (str): Tenant of the target subscription

    Returns:
        ServicePrincipal: Application id, tenant id and secret

    Raises:
        PrincipalCreationError: Wrapping the platform failure
    """
    try:
        structured = not control_plane.emits_plain_password()
        logger.info(f"Creating service principal '{display_name}' with role '{role}' at {scope}")
        payload = control_plane.create_for_rbac(display_name, role, scope, sdk_auth=structured)
    except AzureCliError as e:
        logger.error(f"Failed to create service principal '{display_name}': {e.message}")
        raise PrincipalCreationError(
            f"Failed to create service principal '{display_name}': {e.message}"
        ) from e

    payload = payload or {}
    try:
        secret = normalize_secret(payload, structured)
        app_id = payload.get('clientId') if structured else payload.get('appId')
        if not app_id:
            secret.clear()
            raise PrincipalCreationError(
                f"Service principal '{display_name}' was created but no application id was returned."
            )
    finally:
        # Drop the raw CLI output; the secret now lives only in the SecretValue
        payload.clear()

    principal = ServicePrincipal(
        app_id=app_id,
        tenant_id=tenant_id,
        display_name=display_name,
        secret=secret
    )
    logger.info(f"Created service principal '{display_name}' (appId {principal.app_id})")
    return principal
