"""
Command-line interface for oairepo.
"""

import argparse
import sys

from . import __version__
from .application import OAIApplication
from .config import RepositoryConfig
from .log import configure_logging
from .request import RequestValidator


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog='oairepo',
        description='OAI-PMH repository request validation and responses'
    )
    parser.add_argument(
        '--version', '-V',
        action='version',
        version=f'oairepo {__version__}'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable debug logging'
    )
    parser.add_argument(
        '--log-json',
        action='store_true',
        help='Log JSON lines instead of console output'
    )

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    # validate command
    validate_parser = subparsers.add_parser('validate', help='Validate a query string')
    validate_parser.add_argument('query', help="Query string, e.g. 'verb=Identify'")
    validate_parser.add_argument(
        '--base-url', '-b',
        help='Also print the request URL against this base URL'
    )

    # respond command
    respond_parser = subparsers.add_parser('respond', help='Print the XML response to a query')
    respond_parser.add_argument('query', help="Query string, e.g. 'verb=Identify'")
    respond_parser.add_argument(
        '--base-url', '-b',
        help='Repository base URL (default: $OAIPMH_BASE_URL)'
    )
    respond_parser.add_argument(
        '--admin-email', '-a',
        dest='admin_emails',
        action='append',
        help='Administrator email, repeatable (default: $OAIPMH_ADMIN_EMAILS)'
    )

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(0)

    configure_logging(verbose=args.verbose, log_json=args.log_json)

    try:
        if args.command == 'validate':
            code = cmd_validate(args)
        else:
            code = cmd_respond(args)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    sys.exit(code)


def cmd_validate(args) -> int:
    """Execute validate command."""
    result = RequestValidator().validate_query(args.query)

    if not result.ok:
        for code, messages in result.errors.items():
            for message in messages:
                print(f"{code}: {message}", file=sys.stderr)
        return 1

    request = result.request
    print(f"verb: {request.verb}")
    for argument, value in request.arguments.items():
        print(f"{argument}: {value}")
    if args.base_url:
        print(f"url: {request.request_url(args.base_url)}")
    return 0


def cmd_respond(args) -> int:
    """Execute respond command."""
    config = RepositoryConfig.from_env(base_url=args.base_url, admin_emails=args.admin_emails)
    app = OAIApplication(config)
    sys.stdout.write(app.run(args.query).decode('utf-8'))
    return 0


if __name__ == '__main__':
    main()
