#!/usr/bin/env python3
"""
Main CLI entry point for nsfw-scanner.
"""
import sys
import argparse
import logging
from pathlib import Path
from typing import List, Optional

from rich.console import Console

from .api import get_client
from .config import (
    ALL_IMAGE_SUFFIXES,
    DEFAULT_API,
    DEFAULT_FLAGGED_LABEL,
    DEFAULT_IMAGE_SIZE,
    DEFAULT_SUFFIXES,
    DEFAULT_THRESHOLD,
    DEFAULT_TIMEOUT,
    SUPPORTED_APIS,
    ScannerConfig,
)
from .core import BatchScanner, ScanReport, ScanSession
from .errors import DeleteError, ModelUnavailableError
from .ui.rich_ui import RichScanView, build_results_table, build_summary
from .utils.log_utils import configure_logging, get_logger

logger = get_logger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog='nsfw-scan',
        description='Classify the images in a folder and list the most likely NSFW files first')
    parser.add_argument('input', help='Directory to scan (not recursive)')
    parser.add_argument('--api',
                        default=DEFAULT_API,
                        choices=SUPPORTED_APIS,
                        help=f'Classifier backend (default: {DEFAULT_API})')
    parser.add_argument('--model',
                        help='Model name for the backend (default: backend specific)')
    parser.add_argument('--ext',
                        nargs='+',
                        metavar='SUFFIX',
                        default=list(DEFAULT_SUFFIXES),
                        help=f'File name suffixes to scan (default: {" ".join(DEFAULT_SUFFIXES)})')
    parser.add_argument('--all-images',
                        action='store_true',
                        help=f'Scan every common image suffix ({" ".join(ALL_IMAGE_SUFFIXES)}), ignoring case')
    parser.add_argument('--ignore-case',
                        action='store_true',
                        help='Match suffixes case-insensitively')
    parser.add_argument('--max-concurrent',
                        type=int,
                        help='Cap on simultaneous classifications (default: unbounded)')
    parser.add_argument('--timeout',
                        type=float,
                        default=DEFAULT_TIMEOUT,
                        help=f'Seconds to wait for one classification (default: {DEFAULT_TIMEOUT:.0f})')
    parser.add_argument('--retries',
                        type=int,
                        default=0,
                        help='Extra attempts for transient backend failures (default: 0)')
    parser.add_argument('--size',
                        type=int,
                        default=DEFAULT_IMAGE_SIZE,
                        choices=[256, 512, 768, 1024],
                        help=f'Image size sent to the classifier (default: {DEFAULT_IMAGE_SIZE})')
    parser.add_argument('--label',
                        default=DEFAULT_FLAGGED_LABEL,
                        help=f'Category label to report (default: {DEFAULT_FLAGGED_LABEL})')
    parser.add_argument('--threshold',
                        type=float,
                        default=DEFAULT_THRESHOLD,
                        help=f'Confidence at which a file counts as flagged (default: {DEFAULT_THRESHOLD})')
    parser.add_argument('--delete-flagged',
                        action='store_true',
                        help='Delete every flagged file after the scan')
    parser.add_argument('--reveal-top',
                        action='store_true',
                        help='Show the highest scoring file in the system file viewer')
    parser.add_argument('--no-live',
                        action='store_true',
                        help='Print results only when the scan is done')
    parser.add_argument('--debug',
                        action='store_true',
                        help='Enable debug logging')
    args = parser.parse_args(argv)
    if args.retries < 0:
        parser.error('--retries must not be negative')
    if not 0.0 <= args.threshold <= 1.0:
        parser.error('--threshold must be between 0 and 1')
    return args


def build_config(args: argparse.Namespace) -> ScannerConfig:
    suffixes = ALL_IMAGE_SUFFIXES if args.all_images else tuple(args.ext)
    return ScannerConfig(
        suffixes=suffixes,
        case_sensitive=not (args.ignore_case or args.all_images),
        max_concurrent=args.max_concurrent,
        timeout=args.timeout,
        max_attempts=args.retries + 1,
        image_size=args.size,
        flagged_label=args.label,
    )


def delete_flagged(session: ScanSession, threshold: float, console: Console) -> int:
    """Delete every result at or above threshold. Returns the number of failures."""
    failures = 0
    for result in session.snapshot():
        if result.confidence < threshold:
            break
        try:
            session.delete(result.filename)
            console.print(f"[red]Deleted[/red] {result.filename} ({result.confidence * 100:.1f}%)")
        except DeleteError as e:
            failures += 1
            logger.error("%s", e)
    return failures


def cli_run(session: ScanSession, root: Path, args: argparse.Namespace, console: Console) -> ScanReport:
    if args.no_live:
        report = session.scan(root)
        console.print(build_results_table(session.snapshot(), args.threshold))
        console.print(build_summary(report))
        return report
    return RichScanView(session, threshold=args.threshold, console=console).run(root)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(logging.DEBUG if args.debug else logging.INFO)
    console = Console()

    root = Path(args.input)
    if not root.is_dir():
        logger.warning("'%s' is not a listable directory; nothing to scan", root)

    config = build_config(args)
    client_kwargs = {"flagged_label": config.flagged_label}
    if args.model:
        client_kwargs["model"] = args.model
    try:
        classifier = get_client(args.api, **client_kwargs)
    except ModelUnavailableError as e:
        logger.error("Cannot start classifier: %s", e)
        return 1
    logger.info("Using %s (%s), flagged label %r", args.api, classifier.model_name, config.flagged_label)

    with ScanSession(BatchScanner(classifier, config)) as session:
        cli_run(session, root, args, console)

        status = 0
        if args.reveal_top and session.snapshot():
            session.reveal(session.snapshot()[0].filename)
        if args.delete_flagged and delete_flagged(session, args.threshold, console):
            status = 1
    return status


if __name__ == "__main__":
    sys.exit(main())
