"""
Kafka event publisher — fire-and-forget.

Publishes CI snapshots after building / portfolio evaluations so
downstream consumers (history tracking, dashboards, data warehouse sync)
can persist them. Gracefully degrades if Kafka is unavailable.
"""
from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Optional

import structlog
from fcaengine.core.config import get_settings
from fcaengine.schemas.condition import ScopeCI

logger = structlog.get_logger()

_producer = None


async def _get_producer():
    global _producer
    settings = get_settings()
    if not settings.kafka_enabled:
        return None
    if _producer is None:
        from aiokafka import AIOKafkaProducer
        _producer = AIOKafkaProducer(bootstrap_servers=settings.kafka_bootstrap)
        await _producer.start()
    return _producer


def build_snapshot_event(level: str, scope: ScopeCI, calculation_method: Optional[str] = None) -> dict:
    return {
        "event_type": "CONDITION_SNAPSHOT_CALCULATED",
        "level": level,
        "scope_id": scope.scope_id,
        "ci": scope.ci,
        "component_count": scope.component_count,
        "total_weight": str(scope.total_weight),
        "calculation_method": calculation_method,
        "engine_version": get_settings().engine_version,
        "calculated_at": datetime.now(timezone.utc).isoformat(),
    }


async def publish_condition_snapshot(
    level: str,
    scope: ScopeCI,
    calculation_method: Optional[str] = None,
) -> None:
    settings = get_settings()
    if not settings.kafka_enabled:
        return

    try:
        producer = await _get_producer()
        if producer:
            event = build_snapshot_event(level, scope, calculation_method)
            await producer.send_and_wait(
                settings.kafka_topic_condition_events,
                json.dumps(event).encode("utf-8"),
                key=(scope.scope_id or level).encode("utf-8"),
            )
            logger.info("kafka_event_published", level=level, scope_id=scope.scope_id)
    except Exception as e:
        # Fire-and-forget: log but don't fail the request
        logger.warning("kafka_publish_failed", level=level, scope_id=scope.scope_id, error=str(e))
