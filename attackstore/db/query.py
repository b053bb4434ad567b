"""InfluxQL construction for attack searches.

Every value that reaches the query text is either a fixed identifier from
this module or passes through :func:`quote_literal`, so criteria built from
detection point labels, categories or system ids cannot change the shape of
the WHERE clause.
"""

import enum
from datetime import datetime, timezone

from attackstore.schemas.criteria import SearchCriteria

ATTACKS = "attacks"

USERNAME = "username"
TIMESTAMP = "timestamp"
DETECTION_SYSTEM = "detectionSystem"
CATEGORY = "category"
LABEL = "label"
THRESHOLD_COUNT = "thresholdCount"
THRESHOLD_INTERVAL_DURATION = "thresholdIntervalDuration"
THRESHOLD_INTERVAL_UNIT = "thresholdIntervalUnit"
JSON_CONTENT = "jsonContent"


class QueryMode(str, enum.Enum):
    category_only = "CATEGORY_ONLY"
    consider_detection_point = "CONSIDER_DETECTION_POINT"
    consider_threshold = "CONSIDER_THRESHOLD"


def quote_literal(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("'", "\\'").replace("\n", "\\n")
    return f"'{escaped}'"


def quote_identifier(name: str) -> str:
    escaped = name.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
    return f'"{escaped}"'


def format_time(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def _equals(tag: str, value: str) -> str:
    return f"{quote_identifier(tag)} = {quote_literal(value)}"


def build_where_clauses(
    criteria: SearchCriteria,
    mode: QueryMode = QueryMode.consider_detection_point,
) -> list[str]:
    clauses = [f"time >= {quote_literal(format_time(criteria.earliest))}"]

    if criteria.user is not None:
        clauses.append(_equals(USERNAME, criteria.user.username))

    point = criteria.detection_point
    if point is not None:
        clauses.append(_equals(CATEGORY, point.category))
        if mode in (QueryMode.consider_detection_point, QueryMode.consider_threshold):
            clauses.append(_equals(LABEL, point.label))
        if mode == QueryMode.consider_threshold and point.threshold is not None:
            threshold = point.threshold
            clauses.append(_equals(THRESHOLD_COUNT, str(threshold.count)))
            clauses.append(_equals(THRESHOLD_INTERVAL_DURATION, str(threshold.interval.duration)))
            clauses.append(_equals(THRESHOLD_INTERVAL_UNIT, threshold.interval.unit))

    if criteria.detection_system_ids:
        members = " OR ".join(
            _equals(DETECTION_SYSTEM, system_id) for system_id in sorted(criteria.detection_system_ids)
        )
        clauses.append(f"({members})")

    return clauses


def build_attack_query(
    criteria: SearchCriteria,
    mode: QueryMode = QueryMode.consider_detection_point,
) -> str:
    where = " AND ".join(build_where_clauses(criteria, mode))
    return f"SELECT * FROM {quote_identifier(ATTACKS)} WHERE {where}"
