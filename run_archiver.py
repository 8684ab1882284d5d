"""
Simple runner - just run: python run_archiver.py

Usage:
    python run_archiver.py                    # Fetch metadata for liked posts (default)
    python run_archiver.py --mode media       # Download missing media
    python run_archiver.py --mode reconcile   # Align processed-tweets.json with the archive
    python run_archiver.py --no-delay         # No pause between fetch batches
"""
import sys
import argparse

from likes_archiver.archive_controller import ArchiveController
from likes_archiver.config import ArchiverConfig


def main():
    parser = argparse.ArgumentParser(description='Likes Archiver')
    parser.add_argument('--mode', type=str, default='fetch',
                        choices=ArchiveController.VALID_MODES,
                        help='Run mode (default: fetch)')
    parser.add_argument('--no-delay', action='store_true',
                        help='Do not pause between fetch batches')
    args = parser.parse_args()

    print(f"Starting likes archiver ({args.mode} mode)...")
    print("Press Ctrl+C to stop (progress is saved automatically)\n")

    config = ArchiverConfig.from_settings()
    if args.no_delay:
        config.batch_delay = 0.0
    controller = ArchiveController(config)

    try:
        result = controller.run(mode=args.mode)

        if args.mode == 'fetch':
            print(f"\nDone! Fetched {result.total_succeeded} posts")
            print(f"Failed: {result.total_failed} | No media: {result.total_no_media}")
            return 0 if result.success else 1
        if args.mode == 'media':
            print(f"\nDone! Downloaded {result.total_successes} files")
            print(f"Failed: {result.total_errors} | Skipped: {result.total_skips}")
        return 0

    except KeyboardInterrupt:
        print("\nStopped. Run again to resume.")
        return 0


if __name__ == '__main__':
    sys.exit(main())
