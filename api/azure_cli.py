"""
Azure control-plane access through the Azure CLI.

Every call shells out to ``az`` with JSON output and a client-side timeout.
Command output is parsed but never logged: ``az ad sp create-for-rbac``
prints the new principal's secret on stdout.
"""
import json
import shutil
import logging
import subprocess

from api.exceptions import AzureCliError
from config.settings import AZ_CLI_PATH, AZ_CLI_TIMEOUT

logger = logging.getLogger(__name__)

# First Azure CLI release built on Microsoft Graph; it returns the
# principal secret as a plain "password" string.
PLAIN_PASSWORD_MIN_VERSION = (2, 37, 0)


def parse_version(version):
    """
    Convert a version string such as '2.61.0' into a comparable tuple.

    Args:
        version (str): Dotted version string

    Returns:
        tuple: Integer components, non-numeric suffixes ignored
    """
    parts = []
    for piece in str(version).split('.'):
        digits = ''
        for char in piece:
            if not char.isdigit():
                break
            digits += char
        parts.append(int(digits) if digits else 0)
    return tuple(parts)


class AzureCliControlPlane:
    """Subscription, resource group, role and service principal operations."""

    def __init__(self, az_path=None, timeout=None):
        self.az_path = shutil.which(az_path or AZ_CLI_PATH) or (az_path or AZ_CLI_PATH)
        self.timeout = timeout or AZ_CLI_TIMEOUT
        self._version = None

    def run(self, args):
        """
        Run an Azure CLI command and return its parsed JSON output.

        Args:
            args (list): Arguments after 'az'

        Returns:
            Parsed JSON output, or None when the command printed nothing
        """
        command = [self.az_path] + list(args) + ['--output', 'json']
        display = ' '.join(['az'] + list(args))
        logger.debug(f"Running: {display}")

        try:
            completed = subprocess.run(
                command,
                capture_output=True,
                text=True,
                check=True,
                timeout=self.timeout
            )
        except FileNotFoundError:
            logger.error("Azure CLI not found on PATH.")
            raise AzureCliError(display, "Azure CLI not found. Install it and run 'az login'.")
        except subprocess.TimeoutExpired:
            logger.error(f"Azure CLI timed out after {self.timeout}s: {display}")
            raise AzureCliError(display, f"Azure CLI command timed out after {self.timeout} seconds: {display}")
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or '').strip()
            logger.error(f"Azure CLI failed (code {e.returncode}): {display}")
            raise AzureCliError(display, stderr or f"Azure CLI exited with code {e.returncode}",
                                returncode=e.returncode, stderr=stderr)

        raw = (completed.stdout or '').strip()
        if not raw:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            raise AzureCliError(display, f"Azure CLI returned non-JSON output for: {display}")

    def version(self):
        """Return the installed azure-cli version string."""
        if self._version is None:
            info = self.run(['version']) or {}
            self._version = info.get('azure-cli', '0')
            logger.info(f"Detected Azure CLI {self._version}")
        return self._version

    def emits_plain_password(self):
        """
        Whether 'az ad sp create-for-rbac' returns the secret as a plain string.

        Returns:
            bool: True for Microsoft Graph based releases
        """
        return parse_version(self.version()) >= PLAIN_PASSWORD_MIN_VERSION

    def list_subscriptions(self):
        """Return every subscription visible to the signed-in account."""
        return self.run(['account', 'list', '--all']) or []

    def show_subscription(self, subscription):
        """
        Look up a subscription by name or id.

        Returns:
            dict: Subscription with 'id', 'name' and 'tenantId'
        """
        return self.run(['account', 'show', '--subscription', subscription])

    def resource_group_exists(self, resource_group, subscription_id):
        """Check a resource group within the given subscription."""
        return bool(self.run(['group', 'exists', '--name', resource_group,
                              '--subscription', subscription_id]))

    def role_exists(self, role, subscription_id=None):
        """Check that a role definition with this name exists."""
        args = ['role', 'definition', 'list', '--name', role]
        if subscription_id:
            args += ['--subscription', subscription_id]
        return len(self.run(args) or []) > 0

    def create_for_rbac(self, display_name, role, scope, sdk_auth=False):
        """
        Create a service principal with a role assignment at the scope.

        Args:
            display_name (str): Principal display name
            role (str): Role definition name
            scope (str): Authorization scope
            sdk_auth (bool): Request the SDK-auth credential document

        Returns:
            dict: Raw CLI output containing the credential material
        """
        args = ['ad', 'sp', 'create-for-rbac',
                '--name', display_name,
                '--role', role,
                '--scopes', scope]
        if sdk_auth:
            args.append('--sdk-auth')
        return self.run(args)
