"""Strategic leads CLI."""
import argparse
import json
import logging
import os

from common.db import get_session

from .sync import cron_sync_all, sync_session


def main():
    parser = argparse.ArgumentParser(description='Strategic lead sync')
    parser.add_argument('command', choices=['sync', 'sync-all'])
    parser.add_argument('--session', help='Strategic session id (for sync)')
    args = parser.parse_args()

    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == 'sync' and not args.session:
        parser.error('--session is required for sync')

    with get_session() as session:
        if args.command == 'sync':
            result = sync_session(session, args.session)
        else:
            result = cron_sync_all(session)
    print(json.dumps(result, indent=2, ensure_ascii=False))


if __name__ == '__main__':
    main()
