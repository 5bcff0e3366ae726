"""Weather alerts aggregated across states."""

import logging
from collections.abc import Callable, Sequence

from feedcore.ingestion.aggregator import MultiSourceAggregator, Source
from feedcore.ingestion.sources.nws import NWSClient, WeatherAlert

logger = logging.getLogger(__name__)


def normalize_states(state_codes: Sequence[str]) -> list[str]:
    """Upper-case, de-duplicate and validate two-letter state codes."""
    states: list[str] = []
    for code in state_codes:
        code = code.strip().upper()
        if len(code) != 2 or not code.isalpha():
            raise ValueError(f"Invalid state code: {code!r}")
        if code not in states:
            states.append(code)
    return states


class AlertService:
    """Fetches NWS alerts for many states as one ranked list."""

    def __init__(self, client: NWSClient, aggregator: MultiSourceAggregator) -> None:
        self.client = client
        self.aggregator = aggregator

    def _state_source(self, state: str) -> Source[WeatherAlert]:
        return Source(id=f"nws:{state}", fetch=lambda: self.client.fetch_alerts_by_state(state))

    async def fetch_alerts_for_states(
        self,
        state_codes: Sequence[str],
        record_filter: Callable[[WeatherAlert], bool] | None = None,
    ) -> list[WeatherAlert]:
        """Fetch alerts for every state, deduplicated by alert id, most severe first."""
        states = normalize_states(state_codes)
        sources = [self._state_source(s) for s in states]
        alerts = await self.aggregator.aggregate(sources, record_filter=record_filter)
        logger.info(f"Fetched {len(alerts)} alerts for {len(states)} states")
        return alerts
