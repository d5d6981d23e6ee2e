"""PDI CLI: run the deadline sweep from cron."""
import argparse
import json
import logging
import os
from datetime import date

from common.config import get_config
from common.db import get_session
from modules.tasks.recurrence import today_in

from .deadlines import check_pdi_deadlines


def main():
    parser = argparse.ArgumentParser(description='PDI deadline notifications')
    parser.add_argument('command', choices=['check'])
    parser.add_argument('--date', help='Reference date (YYYY-MM-DD), default: today in the configured timezone')
    args = parser.parse_args()

    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = get_config().schedule
    today = date.fromisoformat(args.date) if args.date else today_in(config.timezone)
    with get_session() as session:
        result = check_pdi_deadlines(session, today, config)
    print(json.dumps(result, indent=2, ensure_ascii=False))


if __name__ == '__main__':
    main()
