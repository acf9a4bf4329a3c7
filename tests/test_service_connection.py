"""End-to-end tests for the provisioning workflow."""
import base64
import logging

import pytest

from api.exceptions import (
    ConnectionCreationError,
    PrincipalCreationError,
    AzureCliError,
    ResourceGroupNotFound,
    RoleNotFound,
    SubscriptionLookupError,
    TokenExpired,
    ValidationError,
)
from api.secrets import SecretValue
from api.service_connection import new_service_connection
from tests.conftest import (
    APP_ID,
    ENDPOINTS_URL,
    PAT,
    PRINCIPAL_SECRET,
    PROJECT_LIST,
    PROJECTS_URL,
    SUBSCRIPTION_ID,
    TENANT_ID,
    FakeControlPlane,
)

CREATED = {
    "id": "7f1c2a5e-0000-4000-8000-000000000001",
    "name": "MySub01",
    "type": "azurerm",
    "url": "https://management.azure.com/",
    "isReady": True,
    "isShared": False,
    "owner": "Library",
}


@pytest.fixture
def devops(requests_mock):
    requests_mock.get(PROJECTS_URL, json=PROJECT_LIST)
    requests_mock.post(ENDPOINTS_URL, json=CREATED)
    return requests_mock


class TestHappyPath:
    """A valid request provisions the principal and the connection."""

    def test_subscription_scope_end_to_end(self, devops, control_plane, make_request):
        result = new_service_connection(make_request(), control_plane=control_plane)

        assert result == CREATED
        assert [(r.method, r.url) for r in devops.request_history] == [
            ("GET", PROJECTS_URL),
            ("POST", ENDPOINTS_URL),
        ]
        assert control_plane.call_names().count("create_for_rbac") == 1
        assert ("create_for_rbac", "sp-azure-deployment", "Contributor",
                f"/subscriptions/{SUBSCRIPTION_ID}", False) in control_plane.calls

    def test_descriptor_sent(self, devops, control_plane, make_request):
        new_service_connection(make_request(), control_plane=control_plane)

        body = devops.last_request.json()
        assert body["name"] == "MySub01"
        assert body["data"]["subscriptionId"] == SUBSCRIPTION_ID
        assert body["authorization"]["parameters"]["serviceprincipalid"] == APP_ID
        assert body["authorization"]["parameters"]["tenantid"] == TENANT_ID
        assert body["authorization"]["parameters"]["serviceprincipalkey"] == PRINCIPAL_SECRET
        assert "scope" not in body["authorization"]["parameters"]
        assert body["serviceEndpointProjectReferences"][0]["projectReference"] == {
            "id": "P1", "name": "AzureDeployment"
        }

    def test_basic_auth_header(self, devops, control_plane, make_request):
        new_service_connection(make_request(), control_plane=control_plane)

        expected = "Basic " + base64.b64encode(f"builder@example.com:{PAT}".encode()).decode()
        for sent in devops.request_history:
            assert sent.headers["Authorization"] == expected

    def test_resource_group_scope(self, devops, make_request):
        control_plane = FakeControlPlane(resource_groups=["rg-app"])

        new_service_connection(make_request(resource_group="rg-app"), control_plane=control_plane)

        scope = f"/subscriptions/{SUBSCRIPTION_ID}/resourceGroups/rg-app"
        assert control_plane.calls[-1][3] == scope
        assert devops.last_request.json()["authorization"]["parameters"]["scope"] == scope

    def test_explicit_connection_name_and_role(self, devops, make_request):
        control_plane = FakeControlPlane(roles=["Reader"])

        new_service_connection(make_request(connection_name="deploy-conn", role="Reader"),
                               control_plane=control_plane)

        assert devops.last_request.json()["name"] == "deploy-conn"
        assert control_plane.calls[-1][2] == "Reader"

    def test_unknown_project_passes_through(self, requests_mock, control_plane, make_request):
        requests_mock.get(PROJECTS_URL, json=PROJECT_LIST)
        requests_mock.post(
            "https://dev.azure.com/myorg/Missing/_apis/serviceendpoint/endpoints?api-version=6.0-preview.4",
            status_code=400,
            json={"message": "Project reference is invalid."}
        )

        with pytest.raises(ConnectionCreationError, match="Project reference is invalid"):
            new_service_connection(make_request(project="Missing"), control_plane=control_plane)

        assert requests_mock.call_count == 2
        sent = requests_mock.last_request.json()
        assert sent["serviceEndpointProjectReferences"][0]["projectReference"] == {"id": None, "name": "Missing"}

    def test_secrets_cleared_after_run(self, devops, control_plane, make_request):
        token = SecretValue(PAT)

        new_service_connection(make_request(token=token), control_plane=control_plane)

        assert token.cleared

    def test_request_token_left_untouched(self, devops, control_plane, make_request):
        request = make_request()

        new_service_connection(request, control_plane=control_plane)

        assert request.token == PAT


class TestFailFast:
    """Every failure aborts the workflow."""

    def test_validation_error_makes_no_calls(self, requests_mock, control_plane, make_request):
        with pytest.raises(ValidationError):
            new_service_connection(make_request(organization=""), control_plane=control_plane)

        assert requests_mock.call_count == 0
        assert control_plane.calls == []

    def test_validation_error_clears_token(self, requests_mock, control_plane, make_request):
        token = SecretValue(PAT)

        with pytest.raises(ValidationError):
            new_service_connection(make_request(organization="", token=token), control_plane=control_plane)

        assert token.cleared

    def test_unknown_subscription_never_creates_principal(self, requests_mock, control_plane, make_request):
        with pytest.raises(SubscriptionLookupError):
            new_service_connection(make_request(subscription_name="Nope"), control_plane=control_plane)

        assert "create_for_rbac" not in control_plane.call_names()
        assert requests_mock.call_count == 0

    def test_unknown_role(self, requests_mock, control_plane, make_request):
        with pytest.raises(RoleNotFound):
            new_service_connection(make_request(role="Made Up"), control_plane=control_plane)

        assert "create_for_rbac" not in control_plane.call_names()

    def test_missing_resource_group(self, requests_mock, control_plane, make_request):
        with pytest.raises(ResourceGroupNotFound):
            new_service_connection(make_request(resource_group="rg-missing"), control_plane=control_plane)

        assert "create_for_rbac" not in control_plane.call_names()
        assert requests_mock.call_count == 0

    def test_principal_failure_stops_before_devops(self, requests_mock, make_request):
        control_plane = FakeControlPlane(create_error=AzureCliError(
            "az ad sp create-for-rbac", "Another object with the same value for property identifierUris already exists."
        ))

        with pytest.raises(PrincipalCreationError):
            new_service_connection(make_request(), control_plane=control_plane)

        assert requests_mock.call_count == 0

    def test_expired_token(self, requests_mock, control_plane, make_request):
        requests_mock.get(PROJECTS_URL, status_code=401,
                          json={"message": "Access Denied: The Personal Access Token used has expired."})

        with pytest.raises(TokenExpired) as exc_info:
            new_service_connection(make_request(), control_plane=control_plane)

        assert exc_info.value.created_app_id == APP_ID
        assert requests_mock.call_count == 1

    def test_connection_failure_reports_orphaned_principal(self, requests_mock, control_plane, make_request):
        requests_mock.get(PROJECTS_URL, json=PROJECT_LIST)
        requests_mock.post(ENDPOINTS_URL, status_code=409, json={"message": "Service connection already exists."})

        with pytest.raises(ConnectionCreationError) as exc_info:
            new_service_connection(make_request(), control_plane=control_plane)

        assert exc_info.value.created_app_id == APP_ID


class TestSecretHygiene:
    """The principal secret and PAT never surface in logs or errors."""

    @pytest.mark.parametrize("status,body", [
        (400, {"message": f"Bad key {PRINCIPAL_SECRET}"}),
        (500, {"message": "Internal error"}),
    ])
    def test_secret_absent_on_failure(self, requests_mock, control_plane, make_request, caplog, status, body):
        requests_mock.get(PROJECTS_URL, json=PROJECT_LIST)
        requests_mock.post(ENDPOINTS_URL, status_code=status, json=body)
        caplog.set_level(logging.DEBUG)

        with pytest.raises(ConnectionCreationError) as exc_info:
            new_service_connection(make_request(), control_plane=control_plane)

        assert PRINCIPAL_SECRET not in str(exc_info.value)
        assert PRINCIPAL_SECRET not in caplog.text
        assert PAT not in caplog.text

    def test_secret_absent_on_success(self, devops, control_plane, make_request, caplog):
        caplog.set_level(logging.DEBUG)

        new_service_connection(make_request(), control_plane=control_plane)

        assert PRINCIPAL_SECRET not in caplog.text
        assert PAT not in caplog.text
