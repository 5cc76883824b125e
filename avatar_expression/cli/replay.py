#!/usr/bin/env python3
"""
Replay a recorded landmark session through the expression pipeline.

Usage:
    python -m avatar_expression.cli.replay session.jsonl \
        --config avatar_config.yaml \
        --log-stats
"""

import argparse
import logging
import sys
from typing import List, Optional

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Replay a recorded landmark session and report expressions",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "session",
        type=str,
        nargs="?",
        default=None,
        help="Path to a JSON Lines landmark session",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to configuration file (YAML or JSON)",
    )
    parser.add_argument(
        "--every-frame",
        action="store_true",
        help="Print every processed frame, not only expression changes",
    )
    parser.add_argument(
        "--log-stats",
        action="store_true",
        help="Log tick statistics at the end of the replay",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress non-error output",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--create-config",
        type=str,
        default=None,
        metavar="PATH",
        help="Create a default config file and exit",
    )

    return parser.parse_args(argv)


class ReplayRunner:
    """Feeds a recorded session through an ExpressionPipeline."""

    def __init__(self, args: argparse.Namespace):
        self.args = args
        self.pipeline = None
        self.recording = None

    def setup(self) -> bool:
        """Load config and session, and build the pipeline."""
        from avatar_expression.config import load_config
        from avatar_expression.data import LandmarkRecording
        from avatar_expression.pipeline import ExpressionPipeline

        try:
            config = load_config(self.args.config)
        except (FileNotFoundError, ValueError) as e:
            logger.error(f"Failed to load config: {e}")
            return False

        try:
            self.recording = LandmarkRecording.load(self.args.session)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load session: {e}")
            return False

        self.pipeline = ExpressionPipeline(config)
        logger.info(f"Loaded {len(self.recording)} frames from {self.args.session}")
        return True

    def run(self) -> int:
        """Replay every recorded cycle using its recorded timestamp."""
        if self.pipeline is None or self.recording is None:
            return 1

        last_expression = None
        for frame in self.recording:
            result = self.pipeline.on_faces(frame.faces, now_ms=frame.t_ms)
            if result is None:
                continue

            changed = result.expression != last_expression
            if not self.args.quiet and (changed or self.args.every_frame):
                s = result.smoothed
                print(
                    f"{frame.t_ms:10.1f}ms  {result.expression.value:<9s} "
                    f"conf={result.confidence:.2f}  "
                    f"brow_y=({s.left_brow_y:6.1f},{s.right_brow_y:6.1f})  "
                    f"angle=({s.left_brow_angle:6.1f},{s.right_brow_angle:6.1f})"
                )
            last_expression = result.expression

        if self.args.log_stats:
            self._log_stats()

        return 0

    def _log_stats(self):
        """Log tick statistics."""
        stats = self.pipeline.get_performance_stats()
        logger.info(
            f"Ticks: frames={stats['frame_count']}, faces={stats['face_count']}, "
            f"no_face={stats['skipped_no_face']}, invalid={stats['skipped_invalid']}, "
            f"mean={stats['mean_ms']:.3f}ms, p95={stats['p95_ms']:.3f}ms"
        )


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the replay CLI."""
    args = parse_args(argv)

    # Set log level
    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)
    elif args.quiet:
        logging.getLogger().setLevel(logging.WARNING)

    # Handle create-config option
    if args.create_config:
        from avatar_expression.config import create_default_config
        create_default_config(args.create_config)
        print(f"Created default config at: {args.create_config}")
        return 0

    if args.session is None:
        logger.error("No session file given")
        return 1

    runner = ReplayRunner(args)
    if not runner.setup():
        return 1

    return runner.run()


if __name__ == "__main__":
    sys.exit(main())
