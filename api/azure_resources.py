"""
Subscription and scope resolution against the Azure control plane.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from api.exceptions import AzureCliError, ResourceGroupNotFound, SubscriptionLookupError

logger = logging.getLogger(__name__)


@dataclass
class Subscription:
    """An Azure subscription as reported by the control plane."""
    id: str
    name: str
    tenant_id: str


def build_scope(subscription_id: str, resource_group: Optional[str] = None) -> str:
    """
    Build the authorization scope for a subscription or one of its resource groups.

    Args:
        subscription_id (str): Subscription id
        resource_group (str, optional): Resource group name

    Returns:
        str: '/subscriptions/{id}' or '/subscriptions/{id}/resourceGroups/{name}'
    """
    scope = f"/subscriptions/{subscription_id}"
    if resource_group:
        scope += f"/resourceGroups/{resource_group}"
    return scope


def resolve_subscription(control_plane, subscription_name: str) -> Subscription:
    """
    Resolve a subscription name to its id and tenant id.

    Raises:
        SubscriptionLookupError: If the subscription cannot be resolved
    """
    try:
        info = control_plane.show_subscription(subscription_name)
    except AzureCliError as e:
        logger.error(f"Failed to resolve subscription '{subscription_name}': {e.message}")
        raise SubscriptionLookupError(
            f"Unable to resolve subscription '{subscription_name}': {e.message}"
        ) from e

    if not info or not info.get('id'):
        logger.error(f"Subscription '{subscription_name}' returned no id.")
        raise SubscriptionLookupError(f"Unable to resolve subscription '{subscription_name}'.")

    subscription = Subscription(
        id=info['id'],
        name=info.get('name', subscription_name),
        tenant_id=info.get('tenantId', '')
    )
    logger.info(f"Resolved subscription '{subscription.name}' to {subscription.id}")
    return subscription


def resolve_scope(control_plane, subscription: Subscription, resource_group: Optional[str] = None) -> str:
    """
    Compute the authorization scope, confirming the resource group when one is given.

    The resource group check runs in the context of the target subscription.

    Raises:
        ResourceGroupNotFound: If the resource group does not exist
    """
    if resource_group:
        try:
            exists = control_plane.resource_group_exists(resource_group, subscription.id)
        except AzureCliError as e:
            logger.error(f"Failed to look up resource group '{resource_group}': {e.message}")
            raise ResourceGroupNotFound(
                f"Unable to look up resource group '{resource_group}' in subscription "
                f"'{subscription.name}': {e.message}"
            ) from e
        if not exists:
            logger.error(f"Resource group '{resource_group}' not found in subscription {subscription.id}")
            raise ResourceGroupNotFound(
                f"Resource group '{resource_group}' does not exist in subscription '{subscription.name}'."
            )

    scope = build_scope(subscription.id, resource_group)
    logger.info(f"Using authorization scope {scope}")
    return scope
