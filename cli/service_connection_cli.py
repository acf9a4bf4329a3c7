#!/usr/bin/env python
"""
File: cli/service_connection_cli.py
Service Connection CLI - Provision Azure service principals as Azure DevOps service connections.

This module provides commands for:
1. Creating a service principal and registering it as a service connection
2. Listing the service connections of a project
"""
import sys
import json
import getpass
import logging
import argparse
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.append(str(project_root))

from api.exceptions import ServiceConnectionError
from api.secrets import SecretValue
from api.service_connection import ConnectionRequest, new_service_connection
from api.service_endpoints import list_service_endpoints
from config import settings
from config.logging_config import configure_logging

logger = logging.getLogger(__name__)

# ANSI escape sequences for colored output
GREEN = '\033[92m'
YELLOW = '\033[93m'
RED = '\033[91m'
BLUE = '\033[94m'
BOLD = '\033[1m'
UNDERLINE = '\033[4m'
END = '\033[0m'


def print_success(message):
    """Print a success message in green."""
    print(f"{GREEN}{message}{END}")


def print_warning(message):
    """Print a warning message in yellow."""
    print(f"{YELLOW}{message}{END}")


def print_error(message):
    """Print an error message in red."""
    print(f"{RED}{message}{END}")


def print_info(message):
    """Print an info message in blue."""
    print(f"{BLUE}{message}{END}")


def print_title(title):
    """Print a section title."""
    print(f"\n{BOLD}{UNDERLINE}{title}{END}")


def prompt(label, default=None, required=True):
    """Prompt for a value, falling back to a default."""
    suffix = f" [{default}]" if default else (" (press Enter to skip)" if not required else "")
    while True:
        value = input(f"{label}{suffix}: ").strip()
        if value:
            return value
        if default:
            return default
        if not required:
            return None
        print_warning(f"{label} is required.")


def read_token(token=None):
    """Return the PAT as a SecretValue, prompting without echo when not configured."""
    token = token or settings.AZURE_DEVOPS_PAT
    if not token:
        token = getpass.getpass("Azure DevOps personal access token: ")
    return SecretValue(token)


def build_parser():
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        description='Provision an Azure service principal as an Azure DevOps service connection'
    )
    subparsers = parser.add_subparsers(dest='command')

    create = subparsers.add_parser('create', help='Create a service principal and service connection')
    create.add_argument('--principal-name', required=True, help='Display name of the new service principal')
    create.add_argument('--subscription', default=settings.AZURE_SUBSCRIPTION_NAME,
                        help='Azure subscription name (env: AZURE_SUBSCRIPTION_NAME)')
    create.add_argument('--resource-group', help='Limit the role assignment to this resource group')
    create.add_argument('--role', default=settings.AZURE_ROLE, help='Role definition name (default: %(default)s)')
    create.add_argument('--organization', default=settings.AZURE_DEVOPS_ORG,
                        help='Azure DevOps organization (env: AZURE_DEVOPS_ORG)')
    create.add_argument('--project', default=settings.AZURE_DEVOPS_PROJECT,
                        help='Azure DevOps project name (env: AZURE_DEVOPS_PROJECT)')
    create.add_argument('--connection-name',
                        help='Service connection name (default: subscription name without spaces)')
    create.add_argument('--username', default=settings.AZURE_DEVOPS_USER,
                        help='Azure DevOps user name (env: AZURE_DEVOPS_USER)')
    create.add_argument('--token', help='Personal access token (prefer env: AZURE_DEVOPS_PAT)')
    create.add_argument('--json', action='store_true', help='Print the created service connection as JSON')

    list_parser = subparsers.add_parser('list', help='List the service connections of a project')
    list_parser.add_argument('--organization', default=settings.AZURE_DEVOPS_ORG,
                             help='Azure DevOps organization (env: AZURE_DEVOPS_ORG)')
    list_parser.add_argument('--project', default=settings.AZURE_DEVOPS_PROJECT,
                             help='Azure DevOps project name (env: AZURE_DEVOPS_PROJECT)')
    list_parser.add_argument('--token', help='Personal access token (prefer env: AZURE_DEVOPS_PAT)')

    return parser


def create_service_connection(request, as_json=False):
    """
    Run the provisioning workflow and report the result.

    Returns:
        int: Process exit code
    """
    print_title("Create Service Connection")
    print_info(f"Organization: {request.organization}")
    print_info(f"Project: {request.project}")
    print_info(f"Subscription: {request.subscription_name}")

    try:
        result = new_service_connection(request)
    except ServiceConnectionError as e:
        print_error(f"Error: {e.message}")
        created_app_id = getattr(e, 'created_app_id', None)
        if created_app_id:
            print_warning(f"Service principal {created_app_id} was created and has not been removed.")
        return 1

    if as_json:
        print(json.dumps(result, indent=2))
    else:
        print_success(f"Service connection '{result.get('name')}' created successfully!")
        print_info(f"Connection ID: {result.get('id')}")
    return 0


def list_service_connections(organization, project, token):
    """
    Print the service connections of a project.

    Returns:
        int: Process exit code
    """
    print_title("Service Connections")
    try:
        endpoints = list_service_endpoints(organization, project, token)
    except ServiceConnectionError as e:
        print_error(f"Error: {e.message}")
        return 1
    except Exception as e:
        print_error(f"Error listing service connections: {str(e)}")
        return 1
    finally:
        token.clear()

    if not endpoints:
        print_warning(f"No service connections found in project {project}.")
        return 0

    for endpoint in endpoints:
        status = 'ready' if endpoint['isReady'] else 'not ready'
        print(f"  - {endpoint['name']} ({endpoint['type']}, {status}) {endpoint['id']}")
    return 0


def create_service_connection_interactive():
    """Collect the request interactively and create the service connection."""
    print_title("New Service Connection")
    request = ConnectionRequest(
        principal_name=prompt("Service principal name"),
        subscription_name=prompt("Azure subscription name", settings.AZURE_SUBSCRIPTION_NAME or None),
        resource_group=prompt("Resource group", required=False),
        role=prompt("Role", settings.AZURE_ROLE),
        organization=prompt("Azure DevOps organization", settings.AZURE_DEVOPS_ORG or None),
        project=prompt("Azure DevOps project", settings.AZURE_DEVOPS_PROJECT or None),
        connection_name=prompt("Service connection name", required=False),
        username=settings.AZURE_DEVOPS_USER,
        token=read_token()
    )
    return create_service_connection(request)


def list_service_connections_interactive():
    """Prompt for organization and project and list their service connections."""
    organization = prompt("Azure DevOps organization", settings.AZURE_DEVOPS_ORG or None)
    project = prompt("Azure DevOps project", settings.AZURE_DEVOPS_PROJECT or None)
    return list_service_connections(organization, project, read_token())


def main(argv=None):
    """Main entry point for the Service Connection CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 2

    log_file = configure_logging('service_connection_cli')
    logger.info(f"Logging to {log_file}")

    if args.command == 'create':
        request = ConnectionRequest(
            principal_name=args.principal_name,
            subscription_name=args.subscription,
            resource_group=args.resource_group,
            role=args.role,
            organization=args.organization,
            project=args.project,
            connection_name=args.connection_name,
            username=args.username,
            token=read_token(args.token)
        )
        return create_service_connection(request, as_json=args.json)

    return list_service_connections(args.organization, args.project, read_token(args.token))


if __name__ == "__main__":
    sys.exit(main())
