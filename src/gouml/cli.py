"""CLI: Generate a PlantUML class diagram from Go sources and keep it up to date."""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

from gouml import config
from gouml.errors import ConfigError, GoUmlError
from gouml.indexer.pipeline import run_generation
from gouml.indexer.relations import EmbeddingPolicy, SatisfactionMode
from gouml.render.image import IMAGE_FORMATS, RENDER_MODES
from gouml.watch.loop import RegenerationLoop

logger = logging.getLogger("gouml")


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gouml",
        description="Watch Go sources and regenerate a PlantUML class diagram",
    )
    parser.add_argument("path", type=Path, help="Go source directory or single .go file to watch")
    parser.add_argument(
        "output_dir",
        type=Path,
        nargs="?",
        default=None,
        help=f"Output directory (default: {config.OUTPUT_DIR})",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Generate the diagram once and exit instead of watching",
    )
    parser.add_argument("--name", type=str, default=None, help="Base name of the output files")
    parser.add_argument("--title", type=str, default=None, help="Diagram title shown above the classes")
    parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help=f"Seconds between change scans (default: {config.POLL_INTERVAL})",
    )
    parser.add_argument(
        "--settle",
        type=float,
        default=None,
        help=f"Seconds to wait after a change before reading files (default: {config.SETTLE_DELAY})",
    )
    parser.add_argument(
        "--embedding-policy",
        choices=[p.value for p in EmbeddingPolicy],
        default=None,
        help="How embedded structs are classified",
    )
    parser.add_argument(
        "--satisfaction",
        choices=[m.value for m in SatisfactionMode],
        default=None,
        help="How structs are matched against interfaces",
    )
    parser.add_argument("--render-mode", choices=RENDER_MODES, default=None, help="Image renderer")
    parser.add_argument("--format", choices=IMAGE_FORMATS, default=None, help="Image format")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(logging, config.LOG_LEVEL, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-5s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
    )


def main(argv: list[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)
    _configure_logging(args.verbose)

    try:
        settings = config.load_settings(
            args.path,
            output_dir=args.output_dir,
            output_name=args.name,
            poll_interval=args.interval,
            settle_delay=args.settle,
            embedding_policy=args.embedding_policy,
            satisfaction=args.satisfaction,
            render_mode=args.render_mode,
            image_format=args.format,
            title=args.title,
        )
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.once:
        start = time.time()
        try:
            summary = run_generation(settings)
        except GoUmlError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        print(f"Diagram generated in {time.time() - start:.1f}s")
        print(f"  Go files: {summary['files']}")
        print(f"  Structs: {summary['structs']}, interfaces: {summary['interfaces']}")
        print(f"  Relations: {summary['relations']}")
        print(f"  PlantUML: {summary['puml_path']}")
        if summary["image_path"]:
            print(f"  Image: {summary['image_path']}")
        return 0

    try:
        RegenerationLoop(settings).run()
    except KeyboardInterrupt:
        logger.info("Stopped watching %s", settings.watch_path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
