from datetime import datetime

from pydantic import BaseModel, ConfigDict, field_validator

from attackstore.schemas.attack import DetectionPoint, User, parse_timestamp


class SearchCriteria(BaseModel):
    model_config = ConfigDict(frozen=True)

    earliest: datetime
    user: User | None = None
    detection_point: DetectionPoint | None = None
    detection_system_ids: frozenset[str] | None = None

    @field_validator("earliest", mode="before")
    @classmethod
    def _as_utc(cls, value):
        return parse_timestamp(value)
