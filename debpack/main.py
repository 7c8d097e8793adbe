"""Command-line entry point for building a Debian package."""

import argparse
import logging
import sys

from debpack.assembler import Assembler
from debpack.config import LOG_LEVELS, setup_logging
from debpack.config_manager import PackageDescriptor
from debpack.errors import DebpackError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = "debpack.yaml"


def main(argv: list[str] | None = None) -> int:
    """Build the package described by a descriptor file.

    Returns:
        Process exit code: 0 on success, 1 on any build failure
    """
    parser = argparse.ArgumentParser(
        prog="debpack", description="Build a Debian binary package from a descriptor."
    )
    parser.add_argument(
        "-c", "--config", default=DEFAULT_CONFIG, help="YAML or JSON package descriptor"
    )
    parser.add_argument(
        "-o", "--output", default=None, help="output path or s3://bucket/key"
    )
    parser.add_argument(
        "--log-level", default=None, type=str.upper, choices=LOG_LEVELS, help="log verbosity"
    )
    args = parser.parse_args(argv)

    try:
        setup_logging(args.log_level)
    except ValueError as e:
        # DEBPACK_LOG_LEVEL from the environment can still be invalid
        parser.error(str(e))

    try:
        descriptor = PackageDescriptor.from_yaml(args.config)
        path = Assembler(descriptor).make(args.output)
    except (DebpackError, ValueError) as e:
        logger.error(f"Package build failed: {e}")
        return 1

    print(path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
