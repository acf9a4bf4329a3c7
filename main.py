#!/usr/bin/env python
"""
File: main.py
Azure DevOps Service Connection CLI - Main router.

With arguments, delegates to the service connection CLI
(``python main.py create ...`` / ``python main.py list ...``).
Without arguments, shows an interactive menu.
"""
import sys
import logging
from pathlib import Path

sys.path.append(str(Path(__file__).parent))
from config.settings import AZURE_DEVOPS_PROJECT, AZURE_DEVOPS_ORG, missing_settings
from config.logging_config import configure_logging
from cli.service_connection_cli import (
    main as service_connection_main,
    create_service_connection_interactive,
    list_service_connections_interactive,
    print_error,
    print_info,
    print_title,
    print_warning,
)

logger = logging.getLogger(__name__)


def print_menu():
    """Print the main menu for the Azure DevOps Service Connection CLI."""
    print_title("Azure DevOps Service Connection CLI")
    print_info(f"Organization: {AZURE_DEVOPS_ORG or '(not configured)'}")
    print_info(f"Project: {AZURE_DEVOPS_PROJECT or '(not configured)'}")
    print("\nSelect an action:")
    print("  1. Create service principal and service connection")
    print("  2. List service connections")
    print("  3. Exit")
    return input("\nEnter your choice (1-3): ")


def run_menu():
    """Interactive loop."""
    configure_logging('azure_devops_service_connection')

    missing = missing_settings()
    if missing:
        print_warning(f"Not configured: {', '.join(missing)} (you will be prompted)")

    while True:
        choice = print_menu()

        try:
            if choice == '1':
                create_service_connection_interactive()
                input("\nPress Enter to continue...")

            elif choice == '2':
                list_service_connections_interactive()
                input("\nPress Enter to continue...")

            elif choice == '3':
                print_info("Exiting Azure DevOps Service Connection CLI.")
                break

            else:
                print_warning("Invalid choice. Please try again.")
        except KeyboardInterrupt:
            print_warning("\nCancelled.")
        except Exception as e:
            print_error(f"Unexpected error: {str(e)}")
            logger.error(f"Unexpected error: {str(e)}", exc_info=True)


def main(argv=None):
    """Main entry point for the Azure DevOps Service Connection CLI router."""
    argv = sys.argv[1:] if argv is None else argv
    if argv:
        return service_connection_main(argv)
    run_menu()
    return 0


if __name__ == "__main__":
    sys.exit(main())
