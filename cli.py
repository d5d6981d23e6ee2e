#!/usr/bin/env python3
"""Unified CLI for the BORAnaOBRA hub.

Usage:
    python cli.py tasks --help
    python cli.py pdi --help
    python cli.py leads --help
    python cli.py db init
"""
import sys
import argparse
import logging
import os


def main():
    parser = argparse.ArgumentParser(
        description='BORAnaOBRA hub - scheduled sweeps and maintenance',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Modules:
  tasks     Recurring task sweep
  pdi       PDI deadline notifications
  leads     Strategic lead sheet sync
  db        Database setup

Examples:
  python cli.py tasks recur
  python cli.py tasks recur --date 2026-03-06
  python cli.py pdi check
  python cli.py leads sync --session 6f1c...
  python cli.py leads sync-all
  python cli.py db init

Serve the functions API with:
  uvicorn functions.app:app
"""
    )

    parser.add_argument(
        'module',
        choices=['tasks', 'pdi', 'leads', 'db'],
        help='Module to run'
    )

    # Parse just the module, pass rest to submodule
    args, remaining = parser.parse_known_args()

    # Dispatch to module CLI
    if args.module == 'tasks':
        from modules.tasks.cli import main as tasks_main
        sys.argv = ['tasks'] + remaining
        tasks_main()

    elif args.module == 'pdi':
        from modules.pdi.cli import main as pdi_main
        sys.argv = ['pdi'] + remaining
        pdi_main()

    elif args.module == 'leads':
        from modules.leads.cli import main as leads_main
        sys.argv = ['leads'] + remaining
        leads_main()

    elif args.module == 'db':
        if remaining != ['init']:
            parser.error('usage: cli.py db init')
        logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO"))
        from common.db import init_db
        init_db()


if __name__ == '__main__':
    main()
