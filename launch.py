#!/usr/bin/env python3

"""Quizsync server launch script."""

import os
import sys
import argparse
import datetime
from pathlib import Path

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent / 'src'))

import constants
from common.base.logging_config import configure_logging, get_logger
from common.config.sync_config import init_sync_config

def get_log_filename() -> str:
    """
    Generate a log filename including PID and datetime.

    :return: Formatted log filename string
    """
    pid = os.getpid()
    timestamp = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
    return f"quizsync_{timestamp}_pid{pid}.log"

def init_system(log_level: str = "INFO", app_log_level: str = "DEBUG", config_path: str | None = None) -> None:
    """Initialize constants, logging and configuration."""
    constants.init_production()

    log_filename = get_log_filename()
    configure_logging(
        log_level=log_level,
        app_log_level=app_log_level,
        log_filename=log_filename
    )

    logger = get_logger(__name__)
    logger.info(f"Starting with PID {os.getpid()}, log file: {log_filename}")

    init_sync_config(config_path)

def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='Launch the quizsync API server.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        prog='launch.py'
    )

    # Server configuration
    parser.add_argument('--host', default='0.0.0.0',
                       help='Host for server (default: 0.0.0.0)')
    parser.add_argument('--port', type=int, default=5002,
                       help='Port for server (default: 5002)')
    parser.add_argument('--config',
                       help='Path to sync TOML configuration (default: config/sync.toml)')

    # Development options
    parser.add_argument('--dev', action='store_true',
                       help='Use the Flask development server with auto-reload')
    parser.add_argument('--debug', action='store_true',
                       help='Enable debug mode')

    # Logging configuration
    parser.add_argument('--log-level', default='INFO',
                       choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                       help='Set the logging level (default: INFO)')
    parser.add_argument('--app-log-level', default='DEBUG',
                       choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                       help='Set the application-specific logging level (default: DEBUG)')
    parser.add_argument('--quiet', '-q', action='store_true',
                       help='Suppress non-essential output')

    parser.epilog = """
Examples:
  %(prog)s                          # Serve the sync API on port 5002
  %(prog)s --port 8080              # Serve on port 8080
  %(prog)s --dev                    # Flask development server
  %(prog)s --config /etc/sync.toml  # Use an explicit config file

Note: Log files are created with timestamp and PID in the filename format:
      quizsync_YYYYMMDD_HHMMSS_pidNNNN.log
    """ % {'prog': parser.prog}

    return parser.parse_args()

def main() -> int:
    """Main entry point."""
    try:
        args = parse_args()

        log_level = 'DEBUG' if args.debug else args.log_level
        if args.quiet:
            log_level = 'WARNING'

        init_system(log_level=log_level, app_log_level=args.app_log_level, config_path=args.config)

        logger = get_logger(__name__)
        logger.info("Quizsync system initialized")

        from web.server import run_server
        if not args.quiet:
            print(f"Starting quizsync API server on http://{args.host}:{args.port}")
        run_server(host=args.host, port=args.port, debug=args.debug or args.dev)
        return 0

    except KeyboardInterrupt:
        print("\nShutdown requested by user", file=sys.stderr)
        return 130  # Standard exit code for SIGINT
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        if '--debug' in sys.argv:
            import traceback
            traceback.print_exc()
        return 1

if __name__ == '__main__':
    sys.exit(main())
