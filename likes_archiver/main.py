"""
Main entry point for the likes archiver.
"""

import argparse
import signal
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from likes_archiver.archive import LocalArchive
from likes_archiver.archive_controller import ArchiveController
from likes_archiver.config import ArchiverConfig, Settings
from likes_archiver.error_commands import ERROR_COMMANDS, error_types_help, run_error_command
from likes_archiver.format_report import build_format_report, dump_format_report, print_format_report
from likes_archiver.resilience.error_ledger import ErrorLedger


# Global controller for signal handling
_controller: Optional[ArchiveController] = None


def signal_handler(signum, frame):
    """Handle SIGINT/SIGTERM for graceful shutdown."""
    print("\n\n" + "=" * 60)
    print("STOP SIGNAL RECEIVED - SHUTTING DOWN GRACEFULLY")
    print("=" * 60)
    if _controller:
        _controller.stop()
        print("Waiting for in-flight work to finish...")
    else:
        print("Exiting immediately...")
        sys.exit(0)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='likes-archiver',
        description='Archive liked posts and their media locally',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Error types:\n" + error_types_help()
    )
    parser.add_argument('--env-file', type=str, default='.env',
                        help='Environment file to load (default: .env)')
    parser.add_argument('--config', type=str, default=None,
                        help='config.json with downloadSettings / twitterCredentials')
    parser.add_argument('--archive-dir', type=str, default=None,
                        help='Archive directory (default: downloads)')
    parser.add_argument('--processed-file', type=str, default=None,
                        help='Processed-set file (default: processed-tweets.json)')
    parser.add_argument('--error-file', type=str, default=None,
                        help='Error ledger file (default: error-tweets.json)')

    subparsers = parser.add_subparsers(dest='command', required=True)

    fetch = subparsers.add_parser('fetch', help='Fetch metadata for liked posts from like.js')
    fetch.add_argument('--like-js', type=str, default=None, help='Path to like.js')
    fetch.add_argument('--batch-size', type=int, default=None, help='Posts per batch')
    fetch.add_argument('--batch-delay', type=float, default=None,
                       help='Seconds to wait between batches')

    media = subparsers.add_parser('media', help='Check archived posts and download missing media')
    media.add_argument('--max-concurrent', type=int, default=None,
                       help='Simultaneous downloads (default: 5)')
    media.add_argument('--batch-size', type=int, default=None, help='Posts per batch')

    subparsers.add_parser('reconcile', help='Align the processed set with the archive')

    formats = subparsers.add_parser('formats', help='Tally metadata document shapes')
    formats.add_argument('--json', action='store_true', help='Print the report as JSON')

    errors = subparsers.add_parser('errors', help='Inspect or clear recorded errors')
    errors.add_argument('action', choices=ERROR_COMMANDS)
    errors.add_argument('argument', nargs='?', default=None, help='Post id or error type')

    return parser


def build_config(args) -> ArchiverConfig:
    """Build configuration from settings, then apply command-line overrides."""
    settings = Settings()
    if args.config:
        settings.config_file = args.config
    if args.archive_dir:
        settings.archive_dir = args.archive_dir
    if args.processed_file:
        settings.processed_file = args.processed_file
    if args.error_file:
        settings.error_file = args.error_file

    config = ArchiverConfig.from_settings(settings)

    if getattr(args, 'like_js', None):
        config.like_js_path = Path(args.like_js)
    if args.command == 'fetch':
        if args.batch_size:
            config.fetch_batch_size = args.batch_size
        if args.batch_delay is not None:
            config.batch_delay = args.batch_delay
    if args.command == 'media':
        if args.max_concurrent:
            config.download.max_concurrent = args.max_concurrent
        if args.batch_size:
            config.download.batch_size = args.batch_size
    return config


def run_archiver(config: ArchiverConfig, mode: str) -> int:
    """Run a fetch, media or reconcile pass with signal handling."""
    global _controller

    _controller = ArchiveController(config)

    signal.signal(signal.SIGINT, signal_handler)
    # SIGTERM is not reliably available on Windows
    if hasattr(signal, 'SIGTERM') and sys.platform != 'win32':
        signal.signal(signal.SIGTERM, signal_handler)

    result = _controller.run(mode=mode)

    if mode == 'fetch':
        print("\n" + "=" * 60)
        print("FETCH COMPLETE" if not result.halted else "FETCH HALTED")
        print("=" * 60)
        print(f"Liked posts: {result.total_ids}")
        print(f"Pending:     {result.total_pending}")
        print(f"Fetched:     {result.total_succeeded}")
        print(f"No media:    {result.total_no_media}")
        print(f"Failed:      {result.total_failed}")
        print(f"Duration:    {result.duration_seconds / 60:.1f} minutes")
        if result.halted:
            print(f"Halted:      {result.halt_reason}")
        return 0 if result.success else 1

    if mode == 'media':
        return 0 if not result.stopped else 1

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    env_path = Path(args.env_file)
    if env_path.exists():
        load_dotenv(env_path)

    config = build_config(args)

    try:
        if args.command in ('fetch', 'media', 'reconcile'):
            return run_archiver(config, args.command)

        if args.command == 'errors':
            ledger = ErrorLedger(config.error_file)
            return run_error_command(ledger, args.action, args.argument)

        if args.command == 'formats':
            report = build_format_report(LocalArchive(config.archive_dir))
            if args.json:
                print(dump_format_report(report))
            else:
                print_format_report(report)
            return 0
    except KeyboardInterrupt:
        print("\nStopped. Run again to resume.")
        return 0
    except (OSError, ValueError) as e:
        print(f"Error: {e}")
        return 1

    parser.print_help()
    return 1


if __name__ == '__main__':
    sys.exit(main())
