"""Task CLI: run the recurrence sweep from cron."""
import argparse
import json
import logging
import os
from datetime import date

from common.config import get_config
from common.db import get_session

from .recurrence import today_in
from .service import process_task_recurrence


def main():
    parser = argparse.ArgumentParser(description='Recurring task sweep')
    parser.add_argument('command', choices=['recur'])
    parser.add_argument('--date', help='Sweep date (YYYY-MM-DD), default: today in the configured timezone')
    args = parser.parse_args()

    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    today = date.fromisoformat(args.date) if args.date else today_in(get_config().schedule.timezone)
    with get_session() as session:
        result = process_task_recurrence(session, today)
    print(json.dumps(result, indent=2))


if __name__ == '__main__':
    main()
