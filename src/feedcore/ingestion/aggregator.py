"""Multi-source aggregation with partial-failure tolerance."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any, Generic, Protocol, TypeVar

from feedcore.config.constants import SEVERITY_ORDER, UNKNOWN_SEVERITY_RANK
from feedcore.ingestion.base import (
    Failure,
    FailureKind,
    FetchOutcome,
    MalformedPayloadError,
    Success,
    capture,
)

logger = logging.getLogger(__name__)


class AggregatedRecord(Protocol):
    """Anything with a stable id and a severity label."""

    @property
    def id(self) -> str: ...

    @property
    def severity(self) -> str: ...


R = TypeVar("R", bound=AggregatedRecord)


@dataclass(frozen=True)
class Source(Generic[R]):
    """A named, independently failing fetcher of records."""

    id: str
    fetch: Callable[[], Awaitable[Sequence[R]]]


def severity_rank(record: Any) -> int:
    """Rank a record by severity; unrecognised labels rank as Unknown."""
    severity = getattr(record, "severity", None)
    if hasattr(severity, "value"):
        severity = severity.value
    return SEVERITY_ORDER.get(severity, UNKNOWN_SEVERITY_RANK)


def _validate_records(source_id: str, payload: Any) -> list[Any]:
    if not isinstance(payload, (list, tuple)):
        raise MalformedPayloadError(
            source_id, f"expected a list of records, got {type(payload).__name__}"
        )
    for record in payload:
        if not isinstance(getattr(record, "id", None), str):
            raise MalformedPayloadError(source_id, f"record without string id: {record!r}")
    return list(payload)


def dedupe_first_seen(records: Sequence[R]) -> list[R]:
    """Keep the first record for each id, in arrival order."""
    seen: set[str] = set()
    unique: list[R] = []
    for record in records:
        if record.id in seen:
            continue
        seen.add(record.id)
        unique.append(record)
    return unique


class MultiSourceAggregator:
    """Fans out to many sources, merges, dedupes and ranks their records.

    Attributes:
        batch_size: Sources fetched at once (None = all concurrently)
        batch_pause: Seconds to pause between batches
        timeout: Per-source bound in seconds (None = unbounded)
        rank: Sort key, ascending; defaults to severity_rank
    """

    def __init__(
        self,
        batch_size: int | None = None,
        batch_pause: float = 0.2,
        timeout: float | None = 15.0,
        rank: Callable[[Any], Any] = severity_rank,
    ) -> None:
        if batch_size is not None and batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.batch_size = batch_size
        self.batch_pause = batch_pause
        self.timeout = timeout
        self.rank = rank

    async def _fetch_source(self, source: Source[R]) -> FetchOutcome[list[R]]:
        async def _fetch() -> list[R]:
            return _validate_records(source.id, await source.fetch())

        outcome = await capture(_fetch, timeout=self.timeout)
        if isinstance(outcome, Failure):
            logger.warning(f"Source {source.id} failed ({outcome.kind.value}): {outcome.reason}")
        else:
            logger.debug(f"Source {source.id} returned {len(outcome.value)} records")
        return outcome

    def _batches(self, sources: Sequence[Source[R]]) -> list[Sequence[Source[R]]]:
        if self.batch_size is None:
            return [sources]
        return [
            sources[i : i + self.batch_size] for i in range(0, len(sources), self.batch_size)
        ]

    async def gather_outcomes(
        self,
        sources: Sequence[Source[R]],
    ) -> list[tuple[str, FetchOutcome[list[R]]]]:
        """Fetch every source and capture each outcome, in source order."""
        outcomes: list[tuple[str, FetchOutcome[list[R]]]] = []
        batches = self._batches(sources)

        for index, batch in enumerate(batches):
            results = await asyncio.gather(*(self._fetch_source(s) for s in batch))
            outcomes.extend(zip((s.id for s in batch), results))

            # Small delay between batches
            if index + 1 < len(batches) and self.batch_pause > 0:
                await asyncio.sleep(self.batch_pause)

        return outcomes

    async def aggregate(
        self,
        sources: Sequence[Source[R]],
        record_filter: Callable[[R], bool] | None = None,
    ) -> list[R]:
        """Merge records from all sources.

        Args:
            sources: Sources in priority order; earlier sources win duplicates
            record_filter: Optional predicate applied after deduplication

        Returns:
            Deduplicated records, most severe first (stable within a rank)
        """
        outcomes = await self.gather_outcomes(sources)

        merged: list[R] = []
        failed: list[str] = []
        for source_id, outcome in outcomes:
            if isinstance(outcome, Success):
                merged.extend(outcome.value)
            else:
                failed.append(source_id)

        if failed:
            logger.info(
                f"Aggregated {len(outcomes) - len(failed)}/{len(outcomes)} sources "
                f"(failed: {', '.join(failed)})"
            )

        records = dedupe_first_seen(merged)
        if record_filter is not None:
            records = [r for r in records if record_filter(r)]

        # list.sort is stable, so equal ranks keep arrival order
        records.sort(key=self.rank)
        return records

    @staticmethod
    def failure_summary(
        outcomes: Sequence[tuple[str, FetchOutcome[Any]]],
    ) -> dict[str, FailureKind]:
        """Map failed source ids to their failure kind."""
        return {
            source_id: outcome.kind
            for source_id, outcome in outcomes
            if isinstance(outcome, Failure)
        }
