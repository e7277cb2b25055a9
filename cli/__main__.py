"""Entry point for the vocadrill CLI client."""

import argparse
import sys

import requests

from core.config import LEVELS, MODES
from cli.api_client import VocadrillAPIClient
from cli.console import ConsoleUI


def main():
    parser = argparse.ArgumentParser(description='vocadrill - vocabulary drilling')
    parser.add_argument(
        '--server',
        default='http://localhost:8000',
        help='Server URL (default: http://localhost:8000)'
    )
    parser.add_argument(
        '--user',
        default='default',
        help='User ID; ids starting with "guest" keep progress only (default: default)'
    )
    parser.add_argument('--language', help='Language code, e.g. en')
    parser.add_argument('--level', choices=LEVELS, help='CEFR level')
    parser.add_argument('--category', help='Category name or "all"')
    parser.add_argument('--mode', choices=MODES, help='Practice mode')
    args = parser.parse_args()

    client = VocadrillAPIClient(base_url=args.server, user_id=args.user)
    ui = ConsoleUI(client)

    try:
        if any([args.language, args.level, args.category, args.mode]):
            client.start_session(args.language, args.level, args.category, args.mode)
        ui.run()
    except requests.HTTPError as e:
        print(f"Error: {e.response.text}")
        sys.exit(1)
    except KeyboardInterrupt:
        print('\nGoodbye!')
        sys.exit(0)


if __name__ == '__main__':
    main()
