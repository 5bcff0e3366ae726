"""NWS (National Weather Service) alerts client."""

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from feedcore.config.constants import AlertSeverity
from feedcore.ingestion.base import MalformedPayloadError

logger = logging.getLogger(__name__)

SOURCE_NAME = "nws"

_SEVERITIES = {s.value for s in AlertSeverity}


@dataclass(frozen=True)
class WeatherAlert:
    """Active weather alert."""

    id: str
    event: str
    severity: str
    area_desc: str = ""
    headline: str | None = None
    description: str = ""
    instruction: str | None = None
    certainty: str = "Unknown"
    urgency: str = "Unknown"
    sent: str = ""
    effective: str = ""
    expires: str = ""
    sender_name: str = ""
    affected_zones: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "event": self.event,
            "severity": self.severity,
            "area_desc": self.area_desc,
            "headline": self.headline,
            "description": self.description,
            "instruction": self.instruction,
            "certainty": self.certainty,
            "urgency": self.urgency,
            "sent": self.sent,
            "effective": self.effective,
            "expires": self.expires,
            "sender_name": self.sender_name,
            "affected_zones": list(self.affected_zones),
        }


def parse_alert_features(features: list[dict[str, Any]]) -> list[WeatherAlert]:
    """Parse NWS GeoJSON alert features, skipping features without an id."""
    alerts = []
    for feature in features:
        props = feature.get("properties") or {}
        alert_id = props.get("id") or feature.get("id")
        if not alert_id:
            continue

        severity = props.get("severity") or AlertSeverity.UNKNOWN.value
        if severity not in _SEVERITIES:
            severity = AlertSeverity.UNKNOWN.value

        alerts.append(
            WeatherAlert(
                id=str(alert_id),
                event=props.get("event") or "",
                severity=severity,
                area_desc=props.get("areaDesc") or "",
                headline=props.get("headline"),
                description=props.get("description") or "",
                instruction=props.get("instruction"),
                certainty=props.get("certainty") or "Unknown",
                urgency=props.get("urgency") or "Unknown",
                sent=props.get("sent") or "",
                effective=props.get("effective") or "",
                expires=props.get("expires") or "",
                sender_name=props.get("senderName") or "",
                affected_zones=tuple(props.get("affectedZones") or ()),
            )
        )
    return alerts


class NWSClient:
    """Async api.weather.gov client."""

    def __init__(
        self,
        base_url: str = "https://api.weather.gov",
        user_agent: str = "feedcore/1.0",
        timeout: float = 15.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            headers={"User-Agent": user_agent, "Accept": "application/geo+json"},
        )

    async def _get_features(self, path: str, params: dict[str, str] | None = None) -> list[dict]:
        resp = await self._client.get(f"{self.base_url}{path}", params=params)
        resp.raise_for_status()
        try:
            data = resp.json()
        except ValueError as e:
            raise MalformedPayloadError(SOURCE_NAME, f"invalid JSON from {path}") from e

        features = data.get("features") if isinstance(data, dict) else None
        if not isinstance(features, list):
            raise MalformedPayloadError(SOURCE_NAME, f"no alert features in {path}")
        return features

    async def fetch_alerts_by_state(self, state_code: str) -> list[WeatherAlert]:
        """Fetch active alerts for a US state; raises on upstream failure."""
        features = await self._get_features(f"/alerts/active/area/{state_code.upper()}")
        return parse_alert_features(features)

    async def fetch_alerts_by_zone(self, zone_code: str) -> list[WeatherAlert]:
        """Fetch active alerts for an NWS zone (e.g. TXZ001)."""
        features = await self._get_features("/alerts/active", params={"zone": zone_code})
        return parse_alert_features(features)

    async def aclose(self) -> None:
        await self._client.aclose()
