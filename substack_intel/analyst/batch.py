"""
Sequential batch extraction.

Items are processed one at a time with a fixed pause between them. The
Claude rate limit and per-call cost make fan-out counter-productive; run
several coordinators with a shared limiter if parallelism is really needed.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Iterable, Optional, Union

from pydantic import ValidationError

from .errors import ClientNotInitializedError, PreconditionError
from .extractor import ClaudeExtractor
from .schemas import BatchFailure, BatchItem, BatchItemResult, BatchResult

logger = logging.getLogger(__name__)

DEFAULT_BATCH_DELAY_MS = 2000

# Warn when more than half of a batch fails
HIGH_FAILURE_RATE = 0.5


def _coerce_item(raw: Union[BatchItem, dict]) -> BatchItem:
    """Accept a BatchItem or a dict; anything malformed is a PreconditionError."""
    if isinstance(raw, BatchItem):
        return raw
    try:
        return BatchItem.model_validate(raw)
    except ValidationError as e:
        fields = ", ".join(str(err["loc"][0]) for err in e.errors() if err.get("loc")) or "item"
        raise PreconditionError(f"Invalid batch item: {fields}") from e


def _raw_field(raw, name: str) -> Optional[str]:
    value = raw.get(name) if isinstance(raw, dict) else None
    return None if value is None else str(value)


class BatchCoordinator:
    """Drives many extractions sequentially, isolating per-item failures."""

    def __init__(
        self,
        extractor: ClaudeExtractor,
        delay_ms: Optional[int] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.extractor = extractor
        self.delay_ms = extractor.config.batch_delay_ms if delay_ms is None else delay_ms
        self._sleep = sleep

    async def batch_extract(self, items: Iterable[Union[BatchItem, dict]]) -> BatchResult:
        """
        Extract companies from each item in order.

        Args:
            items: BatchItem objects or dicts with content, source_label and optional id

        Returns:
            BatchResult - successful results (tagged with id/source_label),
            failed count and total. One item's failure never aborts the batch.

        Raises:
            ClientNotInitializedError: the extractor cannot run at all
        """
        batch = list(items)
        result = BatchResult(total=len(batch))

        for index, raw in enumerate(batch):
            try:
                item = _coerce_item(raw)
            except PreconditionError as e:
                logger.warning(f"Skipping malformed batch item {index}: {e}")
                result.failures.append(BatchFailure(
                    id=_raw_field(raw, "id"),
                    source_label=_raw_field(raw, "source_label") or "",
                    error_type=e.error_type,
                    error=str(e),
                ))
                continue

            if index > 0 and self.delay_ms > 0:
                await self._sleep(self.delay_ms / 1000)

            try:
                extraction = await self.extractor.extract_companies(item.content, item.source_label)
            except ClientNotInitializedError:
                raise
            except PreconditionError as e:
                logger.warning(f"Skipping batch item {index} (id={item.id}): {e}")
                result.failures.append(BatchFailure(
                    id=item.id,
                    source_label=item.source_label,
                    error_type=e.error_type,
                    error=str(e),
                ))
                continue

            if not extraction.ok:
                logger.error(
                    f"Extraction failed for batch item {index} (id={item.id}, "
                    f"source='{item.source_label}'): {extraction.metadata.error_type}"
                )
                result.failures.append(BatchFailure(
                    id=item.id,
                    source_label=item.source_label,
                    error_type=extraction.metadata.error_type,
                    error=extraction.metadata.error or "",
                ))
                continue

            result.successful.append(BatchItemResult(
                id=item.id,
                source_label=item.source_label,
                companies=extraction.companies,
                metadata=extraction.metadata,
            ))

        result.failed = len(result.failures)

        if result.total > 0 and result.failed > 0:
            failure_rate = result.failed / result.total
            if failure_rate > HIGH_FAILURE_RATE:
                logger.warning(
                    f"High extraction failure rate: {result.failed}/{result.total} ({failure_rate:.0%}) "
                    f"items failed - check Claude API status or rate limits"
                )
            else:
                logger.warning(f"{result.failed}/{result.total} batch extractions failed")

        return result
