#!/usr/bin/env python3
"""
Extract company mentions from newsletter text files.

Runs files through the same sequential batch path the API uses, and prints
the BatchResult as JSON.

USAGE:
    python scripts/extract_newsletter.py issue-42.txt issue-43.txt

    # Override the newsletter name (default: file stem)
    python scripts/extract_newsletter.py issue-42.txt --source "Morning Brew"

    # Heuristic fallback on failures, no delay between files
    python scripts/extract_newsletter.py *.txt --fallback --delay-ms 0
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from substack_intel.analyst import (  # noqa: E402
    BatchCoordinator,
    BatchItem,
    ClaudeExtractor,
    ClientNotInitializedError,
    ExtractorConfig,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def load_items(paths: List[str], source: Optional[str]) -> List[BatchItem]:
    items = []
    for raw_path in paths:
        path = Path(raw_path)
        items.append(BatchItem(
            id=path.name,
            content=path.read_text(encoding="utf-8"),
            source_label=source or path.stem,
        ))
    return items


async def main(paths: List[str], source: Optional[str], fallback: bool, delay_ms: Optional[int]) -> int:
    config = ExtractorConfig.from_settings()
    if fallback:
        config = config.model_copy(update={"fallback_enabled": True})

    extractor = ClaudeExtractor(config)
    coordinator = BatchCoordinator(extractor, delay_ms=delay_ms)
    try:
        result = await coordinator.batch_extract(load_items(paths, source))
    except ClientNotInitializedError as e:
        logger.error(f"Cannot run extraction: {e}")
        return 2
    finally:
        await extractor.close()

    print(json.dumps(result.model_dump(mode="json"), indent=2))
    logger.info(f"Done: {len(result.successful)}/{result.total} succeeded, {result.failed} failed")
    return 0 if result.failed == 0 else 1


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Extract company mentions from newsletter files")
    parser.add_argument("paths", nargs="+", help="Newsletter text files")
    parser.add_argument("--source", help="Newsletter name for every file (default: file stem)")
    parser.add_argument("--fallback", action="store_true", help="Use pattern fallback when Claude fails")
    parser.add_argument("--delay-ms", type=int, default=None, help="Pause between files (default: settings)")
    args = parser.parse_args()

    sys.exit(asyncio.run(main(args.paths, args.source, args.fallback, args.delay_ms)))
