"""
Input validation for a service connection request.
"""
import logging

from api.exceptions import AzureCliError, RoleNotFound, SubscriptionNotFound, ValidationError

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ('principal_name', 'subscription_name', 'organization', 'project', 'token')


def _is_blank(value):
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    # SecretValue
    return not bool(value)


def validate_request(request):
    """
    Guard checks run before any network call.

    Args:
        request (ConnectionRequest): Caller-supplied parameters

    Raises:
        ValidationError: Naming the first missing or invalid field
    """
    for field in REQUIRED_FIELDS:
        if _is_blank(getattr(request, field)):
            logger.error(f"Validation failed: '{field}' is required.")
            raise ValidationError(field)

    if request.role is not None and _is_blank(request.role):
        raise ValidationError('role', "Parameter 'role' cannot be blank.")

    if request.resource_group is not None and _is_blank(request.resource_group):
        raise ValidationError('resource_group', "Parameter 'resource_group' cannot be blank when supplied.")

    if request.connection_name is not None and _is_blank(request.connection_name):
        raise ValidationError('connection_name', "Parameter 'connection_name' cannot be blank when supplied.")


def ensure_subscription_exists(control_plane, subscription_name):
    """
    Confirm that a subscription with this exact name is visible.

    Raises:
        SubscriptionNotFound: If no subscription has that name
    """
    try:
        subscriptions = control_plane.list_subscriptions()
    except AzureCliError as e:
        raise SubscriptionNotFound(f"Unable to list subscriptions: {e.message}") from e

    if not any(sub.get('name') == subscription_name for sub in subscriptions):
        logger.error(f"Subscription '{subscription_name}' not found.")
        raise SubscriptionNotFound(f"Subscription '{subscription_name}' was not found.")


def ensure_role_exists(control_plane, role, subscription_id=None):
    """
    Confirm that the role definition exists.

    Raises:
        RoleNotFound: If no role definition has that name
    """
    try:
        exists = control_plane.role_exists(role, subscription_id)
    except AzureCliError as e:
        raise RoleNotFound(f"Unable to look up role definition '{role}': {e.message}") from e

    if not exists:
        logger.error(f"Role definition '{role}' not found.")
        raise RoleNotFound(f"Role definition '{role}' was not found.")
