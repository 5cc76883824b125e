"""
CLI subpackage for command-line interface tools.

Available CLI scripts:
- replay: Replay a recorded landmark session through the pipeline

Usage:
    python -m avatar_expression.cli.replay --help
"""

__all__ = ["replay"]
