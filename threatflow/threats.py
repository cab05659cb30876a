"""Threat records and indicator-based correlation."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator

from .constants import (
    CORRELATION_THRESHOLD,
    CORRELATION_WINDOW_SECONDS,
    THREAT_KEY_PREFIX,
)
from .contracts import WireModel, generate_id, utcnow
from .exceptions import ThreatNotFoundError
from .storage import KeyValueStore

logger = logging.getLogger(__name__)

# Score added for each indicator two threats share
INDICATOR_WEIGHTS = {"ip": 0.8, "domain": 0.7, "hash": 0.9, "type": 0.3}
TIME_PROXIMITY_WEIGHT = 0.2


class Threat(WireModel):
    """A stored threat report with its indicators of compromise."""

    id: str = Field(default_factory=lambda: generate_id(THREAT_KEY_PREFIX))
    type: Optional[str] = None
    ip: Optional[str] = None
    domain: Optional[str] = None
    hash: Optional[str] = None
    description: Optional[str] = None
    severity: Optional[str] = None
    timestamp: datetime = Field(default_factory=utcnow)
    data: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("id")
    @classmethod
    def _threat_key(cls, v: str) -> str:
        # Threats share the key space with workflows and notifications
        if not v.startswith(THREAT_KEY_PREFIX):
            raise ValueError(f"Threat id must start with {THREAT_KEY_PREFIX!r}: {v}")
        return v

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, v: datetime) -> datetime:
        return v if v.tzinfo else v.replace(tzinfo=timezone.utc)


class CorrelatedThreat(Threat):
    correlation_score: float


def correlation_score(target: Threat, other: Threat) -> float:
    """Score how strongly ``other`` relates to ``target``."""
    score = 0.0
    for indicator, weight in INDICATOR_WEIGHTS.items():
        value = getattr(target, indicator)
        if value and value == getattr(other, indicator):
            score += weight
    delta = abs((target.timestamp - other.timestamp).total_seconds())
    if delta < CORRELATION_WINDOW_SECONDS:
        score += TIME_PROXIMITY_WEIGHT
    return round(score, 4)


class ThreatStore:
    """Threat persistence and correlation over a key-value store."""

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    async def store_threat(self, data: Dict[str, Any] | Threat) -> Threat:
        threat = data if isinstance(data, Threat) else Threat.model_validate(data)
        await self._store.put(threat.id, threat.to_record())
        logger.info(f"Stored threat {threat.id} (type={threat.type})")
        return threat

    async def get_threat(self, threat_id: str) -> Threat:
        record = await self._store.get(threat_id)
        if record is None:
            raise ThreatNotFoundError(threat_id)
        return Threat.model_validate(record)

    async def list_threats(self) -> List[Threat]:
        return [
            Threat.model_validate(record)
            for _, record in await self._store.list(prefix=THREAT_KEY_PREFIX)
        ]

    async def correlate(
        self, threat_id: str, correlation_type: str = "similar"
    ) -> List[CorrelatedThreat]:
        """Return threats related to ``threat_id``, strongest first.

        Threats scoring at or below the correlation threshold are dropped.
        """
        target = await self.get_threat(threat_id)
        correlated: List[CorrelatedThreat] = []
        for threat in await self.list_threats():
            if threat.id == target.id:
                continue
            score = correlation_score(target, threat)
            if score > CORRELATION_THRESHOLD:
                correlated.append(
                    CorrelatedThreat(**threat.model_dump(), correlation_score=score)
                )
        correlated.sort(key=lambda t: t.correlation_score, reverse=True)
        logger.debug(
            f"Correlated {len(correlated)} threats with {threat_id} ({correlation_type})"
        )
        return correlated
