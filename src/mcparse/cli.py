"""
mcparse – McCode language server CLI entry point.

Usage
-----
    mcparse                     # stdio mode (default, for use with editors)
    mcparse --stdio             # explicit stdio mode
    mcparse --tcp 2087          # listen on TCP port (useful for debugging)
    mcparse --debounce-ms 500   # wait longer after the last edit before parsing
"""
from __future__ import annotations

import argparse
import sys


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog='mcparse',
        description='McCode language server with debounced, cached parsing of .instr and .comp files.',
    )
    mode = p.add_mutually_exclusive_group()
    mode.add_argument(
        '--stdio',
        action='store_true',
        default=False,
        help='Communicate over stdin/stdout (default when no flag given)',
    )
    mode.add_argument(
        '--tcp',
        metavar='PORT',
        type=int,
        default=None,
        help='Listen for connections on the given TCP port instead of stdio',
    )
    p.add_argument(
        '--version',
        action='store_true',
        default=False,
        help='Print the mcparse version and exit',
    )
    p.add_argument(
        '--log-level',
        metavar='LEVEL',
        default='WARNING',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='Logging level written to stderr (default: WARNING)',
    )
    p.add_argument(
        '--debounce-ms',
        metavar='MS',
        type=int,
        default=None,
        help='Quiet period after the last edit before a document is parsed '
             '(overrides .mcparse.toml and client options; default: 300)',
    )
    return p


def mcparse() -> None:
    """Entry point for the ``mcparse`` command."""
    import logging
    parser = _build_parser()
    args = parser.parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format='%(levelname)s %(name)s: %(message)s',
        stream=sys.stderr,
    )

    from mcparse import __version__

    if args.version:
        print(f'mcparse {__version__}')
        sys.exit(0)

    if args.debounce_ms is not None and args.debounce_ms < 0:
        parser.error('--debounce-ms must not be negative')

    from mcparse.server import server, configure
    configure({'debounce_ms': args.debounce_ms})

    if args.tcp is not None:
        server.start_tcp('127.0.0.1', args.tcp)
    else:
        # Default (and --stdio): communicate via stdin/stdout
        server.start_io()


if __name__ == '__main__':
    mcparse()
