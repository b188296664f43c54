from __future__ import annotations

import argparse
import logging
import sys
import time
from collections.abc import Sequence

from loguru import logger

from eagertask.config import RuntimeConfig
from eagertask.demo import main_workload
from eagertask.scheduler import Scheduler


class InterceptHandler(logging.Handler):
    """Forward stdlib log records from the runtime into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        logger.opt(depth=6, exception=record.exc_info).log(level, record.getMessage())


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="eagertask",
        description="Run the sample workload on the eagertask driver loop.",
    )
    parser.add_argument(
        "--simulated",
        action="store_true",
        help="Use a virtual clock so delays complete instantly",
    )
    parser.add_argument("--text", default="hello world", help="Text to print one character per second")
    parser.add_argument("--verbose", "-v", action="store_true", help="Trace scheduler activity on stderr")
    return parser


def configure_logging(verbose: bool) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")
    logging.basicConfig(handlers=[InterceptHandler()], level=logging.DEBUG if verbose else logging.WARNING, force=True)


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    config = RuntimeConfig.from_env()
    config = RuntimeConfig(
        clock="simulated" if args.simulated else config.clock,
        start_time=config.start_time,
        debug=config.debug or args.verbose,
    )

    started = time.perf_counter()
    with Scheduler(config=config) as scheduler:
        result = main_workload(args.text)
        scheduler.run()
        stats = scheduler.stats()
    logger.debug(
        "driver loop drained in {:.3f}s wall time ({} tasks, {} resumes)",
        time.perf_counter() - started,
        stats["started"],
        stats["resumed"],
    )

    print(f"result: {result.get()}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
