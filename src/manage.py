"""LocalMart management CLI.

Usage:
    python src/manage.py setup-db                 # Create all tables
    python src/manage.py drop-db                  # Drop all tables
    python src/manage.py dispatch-notifications   # Deliver due notifications
"""

import argparse
import sys


def setup_database():
    from marketplace.domain import marketplace
    from marketplace.utils.db import setup_db

    print(f"Initializing {marketplace.name} domain...")
    marketplace.init()
    print(f"Creating {marketplace.name} database schema...")
    setup_db(marketplace)
    print("Done.")


def drop_database():
    from marketplace.domain import marketplace
    from marketplace.utils.db import drop_db

    print(f"Initializing {marketplace.name} domain...")
    marketplace.init()
    print(f"Dropping {marketplace.name} database schema...")
    drop_db(marketplace)
    print("Done.")


def dispatch_notifications():
    """Push every unsent, unexpired notification whose schedule has come due."""
    from protean.utils.globals import current_domain

    from marketplace.domain import marketplace
    from marketplace.notification.dispatch import DispatchDueNotifications

    marketplace.init()
    with marketplace.domain_context():
        report = current_domain.process(DispatchDueNotifications(), asynchronous=False)
    print(f"Sent {report.sent} notification(s), {report.failed} failed.")


def main():
    parser = argparse.ArgumentParser(description="LocalMart management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")
    subparsers.add_parser("dispatch-notifications", help="Deliver notifications that are due")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    elif args.command == "dispatch-notifications":
        dispatch_notifications()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
