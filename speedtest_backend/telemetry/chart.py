"""Chart data built from the most recent telemetry records."""

from __future__ import annotations

import logging
import math
from typing import List

from ..network.classifier import anonymize, is_ip, split_processed_string
from .models import EMPTY_ISP_INFO, ChartPoint, IspInfo, TelemetryRecord
from .store import TelemetryStore

LOGGER = logging.getLogger(__name__)

UNKNOWN_PROCESSED_STRING = "unknown"


class ChartAggregator:
    def __init__(self, store: TelemetryStore):
        self.store = store

    def build_series(self, limit: int) -> List[ChartPoint]:
        """Return chart points for the newest ``limit`` records, newest first.

        Store errors propagate. Problems inside a single record only reset
        the affected fields.
        """
        records = self.store.get_last_n(limit)
        return [self.to_point(record) for record in records]

    def to_point(self, record: TelemetryRecord) -> ChartPoint:
        return ChartPoint(
            timestamp=record.timestamp,
            download=_to_float(record.download),
            upload=_to_float(record.upload),
            ping=_to_float(record.ping),
            jitter=_to_float(record.jitter),
            isp=_anonymized_isp_info(record),
        )


def _to_float(raw) -> float:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return 0.0
    return value if math.isfinite(value) else 0.0


def _anonymized_isp_info(record: TelemetryRecord) -> str:
    try:
        info = IspInfo.from_json(record.isp_info)
    except (TypeError, ValueError) as exc:
        LOGGER.error("Failed to decode ISP info of record %s: %s", record.id, exc)
        info = IspInfo(processed_string=UNKNOWN_PROCESSED_STRING)

    info.processed_string = _anonymize_processed_string(info.processed_string)
    info.raw_isp_info["ip"] = anonymize(info.raw_ip)

    try:
        return info.to_json()
    except (TypeError, ValueError) as exc:
        LOGGER.error("Failed to encode ISP info of record %s: %s", record.id, exc)
        return EMPTY_ISP_INFO


def _anonymize_processed_string(processed: str) -> str:
    # A bare address without an ISP suffix.
    if is_ip(processed):
        return anonymize(processed)
    # Empty when no address can be extracted, so nothing unredacted leaks out.
    address, remainder = split_processed_string(processed)
    return f"{anonymize(address)}{remainder}"
