#!/usr/bin/env python3
"""
Timelapse Export Script
=======================

Standalone script that resolves a query and writes the animated GIF.

This script:
    1. Resolves the query against a local frame directory, or against a
       running collaborator service when --url is given
    2. Reports how many frames exist and how many are missing
    3. Exports the valid frames, logging progress
    4. Writes the GIF under the suggested filename (or --output)

Usage:
    python scripts/export_timelapse.py side_yard 2024-07-18 2025-09-07
    python scripts/export_timelapse.py side_yard 2024-01-01 2024-12-31 \\
        --frequency weekly --time 08-00 --delay 200
    python scripts/export_timelapse.py side_yard 2024-01-01 2024-01-31 \\
        --url http://localhost:8002
"""

import argparse
import asyncio
import logging
import os
import sys
from datetime import date
from pathlib import Path
from typing import Optional

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from timelapse_engine.config import load_config
from timelapse_engine.models import (
    ExportDone,
    ExportFailed,
    ExportProgress,
    InvalidQueryError,
    Query,
    build_query,
)
from timelapse_engine.session import create_session
from timelapse_engine.storage import FrameStore


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)
logger = logging.getLogger(__name__)


async def run_export(
    query: Query,
    base_dir: Optional[str],
    url: Optional[str],
    delay_ms: int,
    output: Optional[str],
) -> int:
    """
    Resolve and export one query.

    Returns:
        Process exit code
    """
    settings = load_config()
    if url:
        settings.oracle.base_url = url
        store = None
    else:
        store = FrameStore(base_dir or settings.storage.base_dir)

    session = create_session(settings, store=store)

    logger.info("=" * 60)
    logger.info(f"Location:  {query.location}")
    logger.info(f"Range:     {query.start_date} .. {query.end_date}")
    logger.info(f"Frequency: {query.frequency.value} at {query.time_of_day.value}")
    logger.info("=" * 60)

    sequence = await session.load(query)
    logger.info(session.status)
    if sequence is None:
        return 1

    session.set_frame_delay(delay_ms)
    job = session.start_export()
    if job is None:
        logger.error(session.status)
        return 1

    last_reported = -1
    async for event in session.pipeline.run(job):
        if isinstance(event, ExportProgress):
            if event.progress // 10 != last_reported // 10:
                logger.info(f"Export progress: {event.progress}%")
                last_reported = event.progress
        elif isinstance(event, ExportFailed):
            logger.error(f"Failed to create GIF: {event.reason}")
            return 1
        elif isinstance(event, ExportDone):
            path = Path(output or event.filename)
            path.write_bytes(event.data)
            logger.info(f"Wrote {path} ({len(event.data)} bytes, {job.total_frames} frames)")

    return 0


def main():
    parser = argparse.ArgumentParser(
        description="Export a timelapse query as an animated GIF"
    )
    parser.add_argument("location", help="Location directory name, e.g. side_yard")
    parser.add_argument("start", type=date.fromisoformat, help="Start date (YYYY-MM-DD)")
    parser.add_argument("end", type=date.fromisoformat, help="End date (YYYY-MM-DD)")
    parser.add_argument(
        "--frequency",
        choices=["daily", "weekly", "monthly"],
        default="daily",
        help="Sampling frequency (default: daily)",
    )
    parser.add_argument(
        "--time",
        default="12-00",
        help="Time-of-day token, e.g. 08-00 or 12:00 (default: 12-00)",
    )
    parser.add_argument(
        "--delay",
        type=int,
        default=100,
        help="Delay between frames in ms, 50-1000 (default: 100)",
    )
    parser.add_argument(
        "--base-dir",
        default=os.environ.get("TIMELAPSE_BASE_DIR"),
        help="Local frame directory (default: storage.base_dir)",
    )
    parser.add_argument(
        "--url",
        default=None,
        help="Collaborator service URL; overrides --base-dir",
    )
    parser.add_argument(
        "--output",
        default=None,
        help="Output path (default: suggested filename)",
    )

    args = parser.parse_args()

    try:
        query = build_query(
            location=args.location,
            start_date=args.start,
            end_date=args.end,
            frequency=args.frequency,
            time_of_day=args.time,
        )
    except InvalidQueryError as e:
        parser.error(str(e))

    try:
        exit_code = asyncio.run(
            run_export(query, args.base_dir, args.url, args.delay, args.output)
        )
    except ValueError as e:
        logger.error(str(e))
        exit_code = 2
    except KeyboardInterrupt:
        logger.info("Export interrupted by user")
        exit_code = 130

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
