import enum
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Iterator

from pydantic import ValidationError

from attackstore.core.errors import DecodeFailureError, InvalidArgumentError
from attackstore.db.query import (
    ATTACKS,
    CATEGORY,
    DETECTION_SYSTEM,
    JSON_CONTENT,
    LABEL,
    THRESHOLD_COUNT,
    THRESHOLD_INTERVAL_DURATION,
    THRESHOLD_INTERVAL_UNIT,
    TIMESTAMP,
    USERNAME,
)
from attackstore.observability.metrics import ATTACK_DECODE_FAILURES_TOTAL
from attackstore.schemas.attack import Attack

log = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class DecodePolicy(str, enum.Enum):
    skip = "skip"
    abort = "abort"

    @classmethod
    def parse(cls, value: "DecodePolicy | str") -> "DecodePolicy":
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().lower())


def _result_sets(results: Any) -> list:
    if results is None:
        return []
    if isinstance(results, list):
        return results
    return [results]


def _raw_series(result: Any) -> list[dict]:
    if result is None:
        return []
    raw = getattr(result, "raw", result)
    if not isinstance(raw, dict):
        return []
    return raw.get("series") or []


class AttackCodec:
    """Maps attacks to InfluxDB points and query rows back to attacks.

    Tags carry the searchable attributes; ``jsonContent`` carries the whole
    attack and is the only thing read back on decode.
    """

    def encode(self, attack: Attack) -> dict:
        threshold = attack.detection_point.threshold
        if threshold is None:
            raise InvalidArgumentError("attack detection point must carry a threshold")
        try:
            occurred_at = attack.occurred_at
        except ValidationError as exc:
            raise InvalidArgumentError(f"attack timestamp is not an instant: {attack.timestamp!r}") from exc

        return {
            "measurement": ATTACKS,
            "time": (occurred_at - EPOCH) // timedelta(microseconds=1),
            "tags": {
                USERNAME: attack.user.username,
                TIMESTAMP: attack.timestamp,
                DETECTION_SYSTEM: attack.detection_system.detection_system_id,
                CATEGORY: attack.detection_point.category,
                LABEL: attack.detection_point.label,
                THRESHOLD_COUNT: str(threshold.count),
                THRESHOLD_INTERVAL_DURATION: str(threshold.interval.duration),
                THRESHOLD_INTERVAL_UNIT: threshold.interval.unit,
            },
            "fields": {
                LABEL: attack.detection_point.label,
                JSON_CONTENT: self.dumps(attack),
            },
        }

    @staticmethod
    def dumps(attack: Attack) -> str:
        return attack.model_dump_json(by_alias=True, exclude_none=True)

    @staticmethod
    def decode(payload: Any) -> Attack:
        if not isinstance(payload, (str, bytes)) or not payload:
            raise DecodeFailureError(f"missing {JSON_CONTENT} payload", payload)
        try:
            return Attack.model_validate_json(payload)
        except ValidationError as exc:
            raise DecodeFailureError(f"corrupt {JSON_CONTENT} payload: {exc}", payload) from exc

    def iter_payloads(self, results: Any) -> Iterator[tuple[str, Any]]:
        for result in _result_sets(results):
            for series in _raw_series(result):
                if not series:
                    continue
                values = series.get("values")
                if not values:
                    continue
                columns = series.get("columns") or []
                index = columns.index(JSON_CONTENT) if JSON_CONTENT in columns else None
                for row in values:
                    if row is None:
                        continue
                    payload = row[index] if index is not None and index < len(row) else None
                    yield series.get("name", ATTACKS), payload

    def decode_results(self, results: Any, policy: DecodePolicy = DecodePolicy.skip) -> list[Attack]:
        matches: list[Attack] = []
        for series_name, payload in self.iter_payloads(results):
            try:
                matches.append(self.decode(payload))
            except DecodeFailureError as exc:
                ATTACK_DECODE_FAILURES_TOTAL.inc()
                if policy == DecodePolicy.abort:
                    raise
                log.warning("Skipping undecodable row in series %s: %s", series_name, exc)
        return matches
