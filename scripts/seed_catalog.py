#!/usr/bin/env python3
"""Seed vocabulary into storage.

Usage:
    python scripts/seed_catalog.py                      # built-in sample catalog
    python scripts/seed_catalog.py --dir path/to/data   # <lang>/categories/<cat>/<level>.json
    python scripts/seed_catalog.py --storage file --language en
"""

import argparse
import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.vocabulary import Catalog, get_seed_data
from server.file_storage import FileStorage
from server.postgres_storage import PostgresStorage


def main():
    parser = argparse.ArgumentParser(description='Seed the vocadrill vocabulary catalog')
    parser.add_argument('--dir', help='Catalog directory to load instead of the built-in sample')
    parser.add_argument('--language', help='Only seed this language')
    parser.add_argument('--storage', choices=['postgres', 'file'],
                        default=os.environ.get('VOCADRILL_STORAGE', 'postgres'))
    parser.add_argument('--state-dir', default=os.environ.get('VOCADRILL_STATE_DIR'),
                        help='Directory for file storage')
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format='%(levelname)s %(name)s: %(message)s')

    if args.dir:
        items = [item.to_dict() for item in Catalog.load_directory(args.dir)]
        if args.language:
            items = [i for i in items if i['language'] == args.language]
    else:
        items = get_seed_data(args.language)

    if not items:
        print('Nothing to seed.')
        return 1

    if args.storage == 'file':
        storage = FileStorage(state_dir=args.state_dir)
    else:
        storage = PostgresStorage()

    storage.seed_vocabulary(items)
    languages = sorted({i['language'] for i in items})
    print(f"Seeded {len(items)} items for {', '.join(languages)}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
