#!/usr/bin/env python3
"""
BunnyCDN Image Rewrite Script

Rewrites attachment image URLs so they are served through BunnyCDN with
optimizer query parameters.
"""

import os
import sys
import argparse
import logging
from datetime import datetime
from typing import Optional

from tqdm import tqdm

from bunny_optimizer.config import load_config, validate_config
from bunny_optimizer.csv_handler import (
    get_src_column,
    read_attachments_csv,
    row_to_attachment,
    write_mapping_csv,
)
from bunny_optimizer.cdn_checker import verify_cdn_url, CdnCheckError
from bunny_optimizer.optimizer import BunnyOptimizer, BUNNY_WIDTH, BUNNY_HEIGHT
from bunny_optimizer.report import RewriteReport
from bunny_optimizer.url_builder import replace_host, replace_srcset_host


# Directories
OUTPUT_DIR = "output"
LOGS_DIR = "logs"


def setup_logging(log_level: str = "INFO") -> None:
    """Configure logging."""
    os.makedirs(LOGS_DIR, exist_ok=True)

    log_file = os.path.join(LOGS_DIR, f"rewrite_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log")

    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file, encoding='utf-8'),
            logging.StreamHandler(sys.stdout)
        ]
    )


def rewrite(
    input_file: str,
    output_file: Optional[str] = None,
    cdn_host: Optional[str] = None,
    verify: bool = False,
    env_file: Optional[str] = None
) -> int:
    """
    Run the rewrite process.

    Args:
        input_file: Path to input CSV
        output_file: Path to output mapping CSV
        cdn_host: Override for BUNNY_CDN_HOST
        verify: Check every rewritten URL against the CDN
        env_file: Optional env file to load

    Returns:
        Exit code (0 for success)
    """
    logger = logging.getLogger(__name__)

    config = load_config(env_file)
    if cdn_host:
        config.cdn_host = cdn_host

    problems = validate_config(config)
    if problems:
        for problem in problems:
            print(f"❌ {problem}")
        return 1

    if not output_file:
        output_file = os.path.join(OUTPUT_DIR, "mapping.csv")

    print(f"\n📄 Reading input file: {input_file}")
    try:
        rows = read_attachments_csv(input_file)
    except (OSError, ValueError) as e:
        print(f"❌ Error reading CSV: {e}")
        return 1

    report = RewriteReport(total_items=len(rows))
    optimizer = BunnyOptimizer(config.cdn_host)

    print(f"   Found {len(rows)} images, serving from {config.cdn_host}\n")

    for row in tqdm(rows, desc="Rewriting"):
        src = get_src_column(row) or ''

        if not src:
            report.mark_skipped(src, "No image URL")
            continue

        try:
            attr, meta = row_to_attachment(row)

            if meta is None:
                report.mark_skipped(src, "No attachment file")
                continue

            filtered = optimizer.filter_attributes(attr, meta)
            new_url = replace_host(filtered['src'], config.cdn_host)
            srcset = replace_srcset_host(filtered['srcset'], config.cdn_host) if filtered.get('srcset') else ''

            if verify:
                try:
                    content_type = verify_cdn_url(new_url, config.verify_timeout)
                    logger.info(f"Verified {new_url} ({content_type})")
                except CdnCheckError as e:
                    report.mark_failed(src, str(e), new_url)
                    continue

            report.mark_success(src, new_url, {
                'srcset': srcset,
                'bunny_width': filtered.get(BUNNY_WIDTH, ''),
                'bunny_height': filtered.get(BUNNY_HEIGHT, ''),
            })

        except Exception as e:
            logger.exception(f"Unexpected error processing {src}")
            report.mark_failed(src, f"Unexpected error: {e}")

    report.mark_complete()

    print(f"\n📝 Writing mapping to: {output_file}")
    write_mapping_csv(report.get_mappings(), output_file)

    report.print_summary()

    return 0 if report.failed_count == 0 else 1


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description='Rewrite attachment image URLs for BunnyCDN',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Input columns:
  src (or url), file, srcset, original_width, original_height,
  plus any of: aspect_ratio, quality, sharpen, blur, brightness,
  saturation, hue, gamma, contrast, auto_optimize

Examples:
  # Rewrite with the CDN host from config.env
  python rewrite.py --input attachments.csv

  # Override the CDN host and check every URL
  python rewrite.py --input attachments.csv --cdn-host media.example.b-cdn.net --verify
"""
    )

    parser.add_argument(
        '--input', '-i',
        required=True,
        help='Input CSV file path'
    )
    parser.add_argument(
        '--output', '-o',
        help='Output mapping CSV path (default: output/mapping.csv)'
    )
    parser.add_argument(
        '--cdn-host',
        help='CDN hostname (default: BUNNY_CDN_HOST)'
    )
    parser.add_argument(
        '--verify', '-v',
        action='store_true',
        help='Send a HEAD request for every rewritten URL'
    )
    parser.add_argument(
        '--env-file',
        help='Env file to load instead of config.env/.env'
    )
    parser.add_argument(
        '--log-level',
        default=None,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level (default: LOG_LEVEL or INFO)'
    )

    args = parser.parse_args()

    setup_logging(args.log_level or load_config(args.env_file).log_level)

    sys.exit(rewrite(
        input_file=args.input,
        output_file=args.output,
        cdn_host=args.cdn_host,
        verify=args.verify,
        env_file=args.env_file
    ))


if __name__ == '__main__':
    main()
