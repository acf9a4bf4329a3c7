"""
Errors raised while provisioning a service principal and registering it as
an Azure DevOps service connection.

Every error is terminal: the workflow aborts on the first one and nothing is
retried.
"""


class ServiceConnectionError(Exception):
    """Base class for all provisioning errors."""

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class ValidationError(ServiceConnectionError):
    """A required parameter is missing or invalid."""

    def __init__(self, field, message=None):
        super().__init__(message or f"Parameter '{field}' is required and cannot be empty.")
        self.field = field


class SubscriptionLookupError(ServiceConnectionError):
    """The subscription name could not be resolved."""


class SubscriptionNotFound(SubscriptionLookupError):
    """No visible subscription carries the requested name."""


class RoleNotFound(ServiceConnectionError):
    """The role definition does not exist."""


class ResourceGroupNotFound(ServiceConnectionError):
    """The resource group does not exist in the subscription."""


class AzureCliError(ServiceConnectionError):
    """An Azure CLI command failed or timed out."""

    def __init__(self, command, message, returncode=None, stderr=''):
        super().__init__(message)
        self.command = command
        self.returncode = returncode
        self.stderr = stderr


class PrincipalCreationError(ServiceConnectionError):
    """The service principal could not be created."""


class DevOpsApiError(ServiceConnectionError):
    """Base class for Azure DevOps REST API failures."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class TokenExpired(DevOpsApiError):
    """The personal access token has expired."""


class ProjectLookupError(DevOpsApiError):
    """The project list could not be retrieved."""


class ConnectionCreationError(DevOpsApiError):
    """The service connection could not be created."""
