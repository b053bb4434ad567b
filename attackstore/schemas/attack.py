from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

_datetime_adapter = TypeAdapter(datetime)


def parse_timestamp(value: str | datetime) -> datetime:
    """Parse an ISO-8601 instant; naive values are taken as UTC."""
    parsed = _datetime_adapter.validate_python(value)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class DomainModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class GeoLocation(DomainModel):
    latitude: float
    longitude: float


class IPAddress(DomainModel):
    address: str
    geo_location: GeoLocation | None = None


class User(DomainModel):
    username: str
    ip_address: IPAddress | None = None


class Interval(DomainModel):
    duration: int
    unit: str


class Threshold(DomainModel):
    count: int
    interval: Interval


class DetectionPoint(DomainModel):
    category: str
    label: str
    threshold: Threshold | None = None
    guid: str | None = None


class DetectionSystem(DomainModel):
    detection_system_id: str
    ip_address: IPAddress | None = None


class Resource(DomainModel):
    location: str | None = None
    method: str | None = None


class KeyValuePair(DomainModel):
    key: str
    value: str


class Attack(DomainModel):
    timestamp: str
    user: User
    detection_point: DetectionPoint
    detection_system: DetectionSystem
    id: str | None = None
    resource: Resource | None = None
    metadata: tuple[KeyValuePair, ...] = Field(default_factory=tuple)

    @property
    def occurred_at(self) -> datetime:
        return parse_timestamp(self.timestamp)
