"""
Provision an Azure service principal and register it as an Azure DevOps
service connection.

The workflow is linear and fail-fast:

1. validate the request (no network calls)
2. confirm the subscription and role definition exist
3. resolve the subscription and the authorization scope
4. create the service principal
5. authenticate to Azure DevOps and resolve the project id
6. build, validate and submit the service connection descriptor

Nothing is retried. A service principal created before a later Azure DevOps
failure is not removed; the raised error carries its application id in
``created_app_id``.
"""
import logging
from dataclasses import dataclass, field
from typing import Optional, Union

import requests

from api.auth import build_basic_auth_header
from api.azure_cli import AzureCliControlPlane
from api.azure_resources import resolve_scope, resolve_subscription
from api.exceptions import ServiceConnectionError
from api.projects import get_project_id
from api.secrets import SecretValue
from api.service_endpoints import (
    build_service_endpoint_descriptor,
    create_service_endpoint,
    default_connection_name,
    validate_descriptor,
)
from api.service_principals import create_service_principal
from api.validation import ensure_role_exists, ensure_subscription_exists, validate_request
from config.settings import AZURE_ROLE

logger = logging.getLogger(__name__)


@dataclass
class ConnectionRequest:
    """Parameters of a service connection request."""
    principal_name: str
    subscription_name: str
    organization: str
    project: str
    token: Union[str, SecretValue] = field(repr=False)
    resource_group: Optional[str] = None
    role: Optional[str] = AZURE_ROLE
    connection_name: Optional[str] = None
    username: str = ''


def new_service_connection(request, control_plane=None, session=None):
    """
    Create a service principal and register it as a service connection.

    Args:
        request (ConnectionRequest): Caller-supplied parameters
        control_plane (AzureCliControlPlane, optional): Azure control plane
        session (requests.Session, optional): HTTP session for the Azure DevOps API

    Returns:
        dict: The created service connection, as returned by Azure DevOps

    Raises:
        ServiceConnectionError: The first failure encountered
    """
    token = request.token
    if not isinstance(token, SecretValue):
        token = SecretValue(token or '')
    principal = None

    try:
        validate_request(request)
        control_plane = control_plane or AzureCliControlPlane()
        role = request.role or AZURE_ROLE

        ensure_subscription_exists(control_plane, request.subscription_name)
        subscription = resolve_subscription(control_plane, request.subscription_name)
        ensure_role_exists(control_plane, role, subscription.id)
        scope = resolve_scope(control_plane, subscription, request.resource_group)

        principal = create_service_principal(
            control_plane, request.principal_name, role, scope, subscription.tenant_id
        )

        return _register_connection(request, subscription, scope, principal, token, session)

    except ServiceConnectionError as e:
        if principal is not None:
            e.created_app_id = principal.app_id
            logger.warning(
                f"Service principal '{principal.display_name}' (appId {principal.app_id}) was created "
                f"but the service connection was not. Remove the principal manually if it is not needed."
            )
        raise
    finally:
        token.clear()
        if principal is not None:
            principal.secret.clear()


def _register_connection(request, subscription, scope, principal, token, session):
    own_session = session is None
    session = session or requests.Session()
    header = build_basic_auth_header(request.username, token)
    session.headers['Authorization'] = header.reveal()

    try:
        project_id = get_project_id(session, request.organization, request.project)
        connection_name = request.connection_name or default_connection_name(request.subscription_name)

        descriptor = build_service_endpoint_descriptor(
            subscription_id=subscription.id,
            subscription_name=subscription.name,
            tenant_id=principal.tenant_id,
            app_id=principal.app_id,
            secret=principal.secret.reveal(),
            project_id=project_id,
            project_name=request.project,
            connection_name=connection_name,
            scope=scope if request.resource_group else None
        )
        try:
            validate_descriptor(descriptor)
            return create_service_endpoint(session, request.organization, request.project, descriptor)
        finally:
            descriptor['authorization']['parameters'].pop('serviceprincipalkey', None)
            principal.secret.clear()
    finally:
        session.headers.pop('Authorization', None)
        header.clear()
        if own_session:
            session.close()
