"""
Service Notifications — Entry Point.

Run `python main.py --update` from cron to keep service channels in sync.
"""

import sys

from service_notifications.cli import main

if __name__ == "__main__":
    sys.exit(main())
