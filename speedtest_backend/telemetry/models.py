"""Shared dataclasses for telemetry records and ISP details."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime, timezone
from typing import Any, Dict, Optional

EMPTY_ISP_INFO = "{}"


@dataclass
class TelemetryRecord:
    """One completed test. ``ip_address`` is the raw client address as received."""

    id: str = ""
    timestamp: Optional[datetime] = None
    ip_address: str = ""
    isp_info: str = EMPTY_ISP_INFO
    extra: str = ""
    user_agent: str = ""
    language: str = ""
    download: str = ""
    upload: str = ""
    ping: str = ""
    jitter: str = ""
    log: str = ""

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["timestamp"] = self.timestamp.isoformat() if self.timestamp else None
        return payload

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TelemetryRecord":
        if not isinstance(data, dict):
            raise TypeError(f"Expected a JSON object, got {type(data).__name__}")
        known = {f.name for f in fields(cls)}
        values = {key: value for key, value in data.items() if key in known}
        raw_timestamp = values.get("timestamp")
        if raw_timestamp is not None and not isinstance(raw_timestamp, str):
            raise TypeError("timestamp must be an ISO-8601 string")
        values["timestamp"] = _parse_timestamp(raw_timestamp) if raw_timestamp else None
        return cls(**values)

    @classmethod
    def from_json(cls, raw: str) -> "TelemetryRecord":
        return cls.from_dict(json.loads(raw))


@dataclass
class EnrichmentResult:
    """Details returned by the external IP lookup service.

    Every field is a string and empty when the service did not provide it; a
    failed lookup produces an instance with all fields empty.
    """

    ip: str = ""
    asn: str = ""
    domain: str = ""
    isp: str = ""
    continent_code: str = ""
    continent_name: str = ""
    country_code: str = ""
    country_name: str = ""
    region: str = ""
    city: str = ""
    loc: str = ""

    @property
    def is_empty(self) -> bool:
        return not any(getattr(self, f.name) for f in fields(self))

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "EnrichmentResult":
        if not isinstance(payload, dict):
            raise TypeError(f"Expected a JSON object, got {type(payload).__name__}")
        values = {}
        for item in fields(cls):
            value = payload.get(item.name)
            values[item.name] = "" if value is None else str(value)
        return cls(**values)


@dataclass
class IspInfo:
    """The ``{processedString, rawIspInfo}`` blob clients send with results."""

    processed_string: str = ""
    raw_isp_info: Dict[str, Any] = field(default_factory=dict)

    @property
    def raw_ip(self) -> str:
        value = self.raw_isp_info.get("ip")
        return value if isinstance(value, str) else ""

    def to_dict(self) -> Dict[str, Any]:
        return {"processedString": self.processed_string, "rawIspInfo": self.raw_isp_info}

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, raw: str) -> "IspInfo":
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError("ISP info must be a JSON object")
        processed = data.get("processedString", "")
        raw_info = data.get("rawIspInfo") or {}
        if not isinstance(processed, str) or not isinstance(raw_info, dict):
            raise ValueError("ISP info has unexpected field types")
        return cls(processed_string=processed, raw_isp_info=dict(raw_info))


@dataclass
class ChartPoint:
    timestamp: Optional[datetime]
    download: float
    upload: float
    ping: float
    jitter: float
    isp: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "download": self.download,
            "upload": self.upload,
            "ping": self.ping,
            "jitter": self.jitter,
            "isp": self.isp,
        }


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(raw: str) -> datetime:
    clean = raw.replace("Z", "+00:00") if raw.endswith("Z") else raw
    return datetime.fromisoformat(clean)
