"""
Configuration settings for the Azure DevOps service connection provisioner.
"""
import os
import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

# Base directories
ROOT_DIR = Path(__file__).parent.parent
CONFIG_DIR = ROOT_DIR / 'config'
LOG_DIR = Path(os.environ.get('SERVICE_CONNECTION_LOG_DIR', ROOT_DIR / 'logs'))

# Load credentials from JSON file (if exists)
CREDENTIALS_FILE = CONFIG_DIR / 'credentials.json'
CREDENTIALS = {}

if CREDENTIALS_FILE.exists():
    with open(CREDENTIALS_FILE, 'r') as f:
        CREDENTIALS = json.load(f)


def _setting(key, env_var, default=''):
    """Credentials file first, then environment variable, then default."""
    return CREDENTIALS.get(key, os.environ.get(env_var, default))


def _float_setting(key, env_var, default):
    """Numeric setting; an unparsable value is logged and replaced by the default."""
    raw = _setting(key, env_var, default)
    try:
        return float(raw)
    except (TypeError, ValueError):
        logger.warning(f"Invalid value for {env_var}: {raw!r}; using {default}")
        return float(default)


# Azure DevOps settings
AZURE_DEVOPS_ORG = _setting('organization', 'AZURE_DEVOPS_ORG')
AZURE_DEVOPS_PROJECT = _setting('project', 'AZURE_DEVOPS_PROJECT')
AZURE_DEVOPS_USER = _setting('username', 'AZURE_DEVOPS_USER')
AZURE_DEVOPS_PAT = _setting('personal_access_token', 'AZURE_DEVOPS_PAT')
AZURE_DEVOPS_BASE_URL = _setting('base_url', 'AZURE_DEVOPS_BASE_URL', 'https://dev.azure.com')
PROJECTS_API_VERSION = _setting('projects_api_version', 'AZURE_DEVOPS_PROJECTS_API_VERSION', '6.0')
SERVICE_ENDPOINT_API_VERSION = _setting(
    'service_endpoint_api_version', 'AZURE_DEVOPS_SERVICE_ENDPOINT_API_VERSION', '6.0-preview.4'
)

# Azure settings
AZURE_SUBSCRIPTION_NAME = _setting('subscription_name', 'AZURE_SUBSCRIPTION_NAME')
AZURE_ROLE = _setting('role', 'AZURE_ROLE', 'Contributor')
AZURE_ENVIRONMENT = _setting('environment', 'AZURE_ENVIRONMENT', 'AzureCloud')
AZURE_MANAGEMENT_URL = _setting('management_url', 'AZURE_MANAGEMENT_URL', 'https://management.azure.com/')
AZ_CLI_PATH = _setting('az_cli_path', 'AZ_CLI_PATH', 'az')

# Client-side timeouts (seconds)
REQUEST_TIMEOUT = _float_setting('request_timeout', 'SERVICE_CONNECTION_REQUEST_TIMEOUT', 30)
AZ_CLI_TIMEOUT = _float_setting('az_cli_timeout', 'SERVICE_CONNECTION_AZ_CLI_TIMEOUT', 120)


def organization_url(organization):
    """
    Build the Azure DevOps organization URL.

    Accepts either a bare organization name or a full organization URL.
    """
    if organization.startswith('http://') or organization.startswith('https://'):
        return organization.rstrip('/')
    return f"{AZURE_DEVOPS_BASE_URL.rstrip('/')}/{organization}"


def missing_settings():
    """
    Return the names of the Azure DevOps settings that are not configured.

    Returns:
        list: Environment variable names still unset
    """
    missing = []
    if not AZURE_DEVOPS_ORG:
        missing.append('AZURE_DEVOPS_ORG')
    if not AZURE_DEVOPS_PAT:
        missing.append('AZURE_DEVOPS_PAT')
    if not AZURE_DEVOPS_PROJECT:
        missing.append('AZURE_DEVOPS_PROJECT')
    if missing:
        logger.debug(f"Azure DevOps settings not configured: {', '.join(missing)}")
    return missing
