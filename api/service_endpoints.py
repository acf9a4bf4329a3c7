"""
Azure DevOps service endpoint (service connection) operations.
Builds the AzureRM service connection descriptor, validates it and submits it
through the REST API; lists existing connections through the SDK.
"""
import logging

import jsonschema
import requests

from api.auth import get_connection
from api.exceptions import ConnectionCreationError
from api.projects import api_error_message
from api.secrets import redact
from config.settings import (
    AZURE_ENVIRONMENT,
    AZURE_MANAGEMENT_URL,
    REQUEST_TIMEOUT,
    SERVICE_ENDPOINT_API_VERSION,
    organization_url,
)

logger = logging.getLogger(__name__)

SERVICE_ENDPOINT_SCHEMA = {
    "type": "object",
    "required": ["data", "name", "type", "url", "authorization", "isShared", "isReady",
                 "serviceEndpointProjectReferences"],
    "properties": {
        "data": {
            "type": "object",
            "required": ["subscriptionId", "subscriptionName", "environment", "scopeLevel"],
            "properties": {
                "subscriptionId": {"type": "string", "minLength": 1},
                "subscriptionName": {"type": "string", "minLength": 1},
                "environment": {"type": "string"},
                "scopeLevel": {"type": "string"},
                "creationMode": {"type": "string"}
            }
        },
        "name": {"type": "string", "minLength": 1},
        "type": {"type": "string"},
        "url": {"type": "string"},
        "authorization": {
            "type": "object",
            "required": ["scheme", "parameters"],
            "properties": {
                "scheme": {"type": "string"},
                "parameters": {
                    "type": "object",
                    "required": ["tenantid", "serviceprincipalid", "authenticationType", "serviceprincipalkey"],
                    "properties": {
                        "tenantid": {"type": "string"},
                        "serviceprincipalid": {"type": "string", "minLength": 1},
                        "authenticationType": {"type": "string"},
                        "serviceprincipalkey": {"type": "string", "minLength": 1},
                        "scope": {"type": "string"}
                    }
                }
            }
        },
        "isShared": {"type": "boolean"},
        "isReady": {"type": "boolean"},
        "serviceEndpointProjectReferences": {
            "type": "array",
            "minItems": 1,
            "items": {
                "type": "object",
                "required": ["projectReference", "name"],
                "properties": {
                    "projectReference": {
                        "type": "object",
                        "required": ["id", "name"],
                        # id stays nullable: an unknown project is left for the server to reject
                        "properties": {
                            "id": {"type": ["string", "null"]},
                            "name": {"type": "string"}
                        }
                    },
                    "name": {"type": "string", "minLength": 1}
                }
            }
        }
    }
}


def default_connection_name(subscription_name):
    """
    Derive a connection name from the subscription name.

    Every space is removed, not replaced: 'My Sub 01' becomes 'MySub01'.
    """
    return subscription_name.replace(' ', '')


def build_service_endpoint_descriptor(subscription_id, subscription_name, tenant_id, app_id, secret,
                                      project_id, project_name, connection_name, scope=None):
    """
    Build the JSON body of an AzureRM service connection.

    Args:
        subscription_id (str): Subscription id
        subscription_name (str): Subscription display name
        tenant_id (str): Tenant id of the service principal
        app_id (str): Application (client) id of the service principal
        secret (str): Plaintext service principal secret
        project_id (str): Azure DevOps project id, may be None
        project_name (str): Azure DevOps project name
        connection_name (str): Name of the service connection
        scope (str, optional): Resource group scope, when narrower than the subscription

    Returns:
        dict: Service connection descriptor
    """
    parameters = {
        "tenantid": tenant_id,
        "serviceprincipalid": app_id,
        "authenticationType": "spnKey",
        "serviceprincipalkey": secret
    }
    if scope:
        parameters["scope"] = scope

    return {
        "data": {
            "subscriptionId": subscription_id,
            "subscriptionName": subscription_name,
            "environment": AZURE_ENVIRONMENT,
            "scopeLevel": "Subscription",
            "creationMode": "Manual"
        },
        "name": connection_name,
        "type": "AzureRM",
        "url": AZURE_MANAGEMENT_URL,
        "authorization": {
            "parameters": parameters,
            "scheme": "ServicePrincipal"
        },
        "isShared": False,
        "isReady": True,
        "serviceEndpointProjectReferences": [
            {
                "projectReference": {
                    "id": project_id,
                    "name": project_name
                },
                "name": connection_name
            }
        ]
    }


def validate_descriptor(descriptor):
    """
    Validate a descriptor against SERVICE_ENDPOINT_SCHEMA.

    Raises:
        ConnectionCreationError: With the secret masked out of the message
    """
    try:
        jsonschema.validate(instance=descriptor, schema=SERVICE_ENDPOINT_SCHEMA)
    except jsonschema.exceptions.ValidationError as e:
        secret = descriptor.get('authorization', {}).get('parameters', {}).get('serviceprincipalkey')
        message = redact(e.message, secret)
        logger.error(f"Service connection descriptor is invalid: {message}")
        raise ConnectionCreationError(f"Service connection descriptor is invalid: {message}")


def create_service_endpoint(session, organization, project, descriptor):
    """
    Create a service connection.

    Args:
        session (requests.Session): Session carrying the Authorization header
        organization (str): Organization name or URL
        project (str): Project name
        descriptor (dict): Service connection descriptor

    Returns:
        dict: The created service connection as returned by the API

    Raises:
        ConnectionCreationError: With the API's error message
    """
    url = (f"{organization_url(organization)}/{project}/_apis/serviceendpoint/endpoints"
           f"?api-version={SERVICE_ENDPOINT_API_VERSION}")
    secret = descriptor['authorization']['parameters']['serviceprincipalkey']

    try:
        response = session.post(
            url,
            json=descriptor,
            headers={'Content-Type': 'application/json'},
            timeout=REQUEST_TIMEOUT
        )
    except requests.RequestException as e:
        message = redact(str(e), secret)
        logger.error(f"Failed to reach Azure DevOps service endpoint API: {message}")
        raise ConnectionCreationError(f"Failed to create service connection: {message}") from None

    if not response.ok:
        message = redact(api_error_message(response), secret)
        logger.error(f"Failed to create service connection '{descriptor['name']}': {message}")
        raise ConnectionCreationError(f"Failed to create service connection: {message}",
                                      status_code=response.status_code)

    try:
        result = response.json()
    except ValueError:
        raise ConnectionCreationError("Service connection API returned a non-JSON response.",
                                      status_code=response.status_code)

    logger.info(f"Created service connection '{descriptor['name']}' ({result.get('id')})")
    return result


def list_service_endpoints(organization, project, token):
    """
    List the service connections of a project.

    Args:
        organization (str): Organization name or URL
        project (str): Project name or id
        token (SecretValue): Personal access token

    Returns:
        list: Dictionaries with name, id, type, url and isReady
    """
    connection = get_connection(organization, token)
    client = connection.clients.get_service_endpoint_client()

    try:
        endpoints = client.get_service_endpoints(project=project)
    except Exception as e:
        logger.error(f"Failed to list service connections for project {project}: {redact(str(e))}")
        raise

    endpoints_info = []
    for endpoint in endpoints:
        endpoints_info.append({
            'name': endpoint.name,
            'id': endpoint.id,
            'type': endpoint.type,
            'url': endpoint.url,
            'isReady': endpoint.is_ready
        })

    logger.info(f"Retrieved {len(endpoints_info)} service connections from project {project}")
    return endpoints_info
