"""
Project lookup through the Azure DevOps REST API.
"""
import logging
import re

import requests

from api.exceptions import ProjectLookupError, TokenExpired
from api.secrets import redact
from config.settings import PROJECTS_API_VERSION, REQUEST_TIMEOUT, organization_url

logger = logging.getLogger(__name__)


def api_error_message(response):
    """
    Extract the error message from an Azure DevOps API response.

    Falls back to the raw body, then to the HTTP status line.
    """
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict) and body.get('message'):
        return body['message']
    text = (response.text or '').strip()
    if text and not text.lstrip().startswith('<'):
        return text
    return f"HTTP {response.status_code} {response.reason or ''}".strip()


def is_token_expired(message):
    """Whether an API error message reports an expired personal access token."""
    lowered = (message or '').lower()
    return 'expired' in lowered and re.search(r'\b(token|pat)\b', lowered) is not None


def get_project_id(session, organization, project_name):
    """
    Resolve a project name to its id.

    Args:
        session (requests.Session): Session carrying the Authorization header
        organization (str): Organization name or URL
        project_name (str): Exact, case-sensitive project name

    Returns:
        str: Project id, or None when no project has that name

    Raises:
        TokenExpired: If the API reports an expired personal access token
        ProjectLookupError: For any other failure
    """
    url = f"{organization_url(organization)}/_apis/projects?api-version={PROJECTS_API_VERSION}"

    try:
        response = session.get(url, timeout=REQUEST_TIMEOUT)
    except requests.RequestException as e:
        logger.error(f"Failed to reach Azure DevOps project list: {redact(str(e))}")
        raise ProjectLookupError(f"Failed to retrieve projects: {redact(str(e))}") from e

    if not response.ok:
        message = redact(api_error_message(response))
        if is_token_expired(message):
            logger.error("Azure DevOps personal access token has expired.")
            raise TokenExpired(
                f"The Azure DevOps personal access token has expired. Generate a new token and retry. ({message})",
                status_code=response.status_code
            )
        logger.error(f"Failed to retrieve projects: {message}")
        raise ProjectLookupError(f"Failed to retrieve projects: {message}", status_code=response.status_code)

    try:
        projects = response.json().get('value', [])
    except ValueError:
        # A sign-in page instead of JSON means the credentials were not accepted
        raise ProjectLookupError(
            "Failed to retrieve projects: the response was not JSON. Check the personal access token.",
            status_code=response.status_code
        )

    for project in projects:
        if project.get('name') == project_name:
            logger.info(f"Resolved project '{project_name}' to {project.get('id')}")
            return project.get('id')

    logger.warning(f"Project '{project_name}' not found in organization {organization}")
    return None
