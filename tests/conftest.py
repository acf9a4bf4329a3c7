"""Shared fixtures for the service connection tests."""
import pytest

from api import secrets
from api.exceptions import AzureCliError
from api.service_connection import ConnectionRequest
from config import settings

SUBSCRIPTION_ID = "11111111-2222-3333-4444-555555555555"
TENANT_ID = "99999999-8888-7777-6666-555555555555"
APP_ID = "aaaaaaaa-bbbb-cccc-dddd-eeeeeeeeeeee"
PRINCIPAL_SECRET = "Xy7~plaintext.principal-secret_42"
PAT = "pat-token-value-abcdef0123456789"

PROJECTS_URL = "https://dev.azure.com/myorg/_apis/projects?api-version=6.0"
ENDPOINTS_URL = ("https://dev.azure.com/myorg/AzureDeployment/_apis/serviceendpoint/endpoints"
                 "?api-version=6.0-preview.4")

PROJECT_LIST = {
    "count": 2,
    "value": [
        {"id": "P1", "name": "AzureDeployment"},
        {"id": "P2", "name": "Other"},
    ],
}


class FakeControlPlane:
    """In-memory stand-in for AzureCliControlPlane that records every call."""

    def __init__(self, subscriptions=None, resource_groups=(), roles=("Contributor",),
                 plain_password=True, create_error=None):
        if subscriptions is None:
            subscriptions = [{"id": SUBSCRIPTION_ID, "name": "My Sub 01", "tenantId": TENANT_ID}]
        self.subscriptions = subscriptions
        self.resource_groups = set(resource_groups)
        self.roles = set(roles)
        self.plain_password = plain_password
        self.create_error = create_error
        self.calls = []

    def list_subscriptions(self):
        self.calls.append(("list_subscriptions",))
        return list(self.subscriptions)

    def show_subscription(self, subscription):
        self.calls.append(("show_subscription", subscription))
        for sub in self.subscriptions:
            if subscription in (sub["name"], sub["id"]):
                return dict(sub)
        raise AzureCliError("az account show", f"Subscription '{subscription}' not found.", returncode=1)

    def resource_group_exists(self, resource_group, subscription_id):
        self.calls.append(("resource_group_exists", resource_group, subscription_id))
        return resource_group in self.resource_groups

    def role_exists(self, role, subscription_id=None):
        self.calls.append(("role_exists", role, subscription_id))
        return role in self.roles

    def emits_plain_password(self):
        return self.plain_password

    def create_for_rbac(self, display_name, role, scope, sdk_auth=False):
        self.calls.append(("create_for_rbac", display_name, role, scope, sdk_auth))
        if self.create_error:
            raise self.create_error
        if sdk_auth:
            return {"clientId": APP_ID, "clientSecret": PRINCIPAL_SECRET, "tenantId": TENANT_ID,
                    "subscriptionId": SUBSCRIPTION_ID}
        return {"appId": APP_ID, "displayName": display_name, "password": PRINCIPAL_SECRET,
                "tenant": TENANT_ID}

    def call_names(self):
        return [call[0] for call in self.calls]


@pytest.fixture(autouse=True)
def default_base_url(monkeypatch):
    """Pin the Azure DevOps base URL regardless of the local environment."""
    monkeypatch.setattr(settings, "AZURE_DEVOPS_BASE_URL", "https://dev.azure.com")


@pytest.fixture(autouse=True)
def clear_live_secrets():
    """Clear secrets left alive by a test so they cannot mask text in the next one."""
    yield
    for secret in list(secrets._live_secrets):
        secret.clear()


@pytest.fixture
def control_plane():
    return FakeControlPlane()


@pytest.fixture
def make_request():
    def _make(**overrides):
        values = {
            "principal_name": "sp-azure-deployment",
            "subscription_name": "My Sub 01",
            "organization": "myorg",
            "project": "AzureDeployment",
            "token": PAT,
            "username": "builder@example.com",
        }
        values.update(overrides)
        return ConnectionRequest(**values)
    return _make
