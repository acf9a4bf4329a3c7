"""
Authentication module for Azure DevOps API.
"""
import base64
import logging

from azure.devops.connection import Connection
from msrest.authentication import BasicAuthentication

from api.exceptions import ValidationError
from api.secrets import SecretValue
from config.settings import organization_url

logger = logging.getLogger(__name__)


def build_basic_auth_header(username, token):
    """
    Build the value of a basic-auth Authorization header and discard the token.

    Args:
        username (str): Azure DevOps user name (may be empty for a PAT)
        token (SecretValue): Personal access token, cleared on return

    Returns:
        SecretValue: 'Basic base64(username:token)'
    """
    try:
        raw = f"{username or ''}:{token.reveal()}".encode('utf-8')
        header = SecretValue(f"Basic {base64.b64encode(raw).decode('ascii')}")
        del raw
        return header
    finally:
        token.clear()


def get_connection(organization, token):
    """
    Create and return an authenticated connection to Azure DevOps.

    Args:
        organization (str): Organization name or URL
        token (SecretValue): Personal access token

    Returns:
        Connection: Authenticated Azure DevOps connection
    """
    if not organization or not token:
        logger.error("Azure DevOps organization or Personal Access Token not configured.")
        raise ValidationError('token' if organization else 'organization')

    try:
        credentials = BasicAuthentication('', token.reveal())
        connection = Connection(base_url=organization_url(organization), creds=credentials)
        logger.info(f"Connected to Azure DevOps organization {organization_url(organization)}")
        return connection
    except Exception as e:
        logger.error(f"Failed to establish connection to Azure DevOps: {str(e)}")
        raise
