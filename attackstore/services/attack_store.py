import logging
from time import perf_counter
from typing import Callable, Iterable

from influxdb.exceptions import InfluxDBClientError, InfluxDBServerError
from requests.exceptions import RequestException

from attackstore.core.config import Settings, get_settings
from attackstore.core.errors import InvalidArgumentError, QueryFailureError, WriteFailureError
from attackstore.db.client import connect, create_database_if_not_exists
from attackstore.db.points import AttackCodec, DecodePolicy
from attackstore.db.query import QueryMode, build_attack_query
from attackstore.observability.metrics import (
    ATTACK_QUERIES_TOTAL,
    ATTACK_QUERY_DURATION_SECONDS,
    ATTACK_WRITES_TOTAL,
    LISTENER_NOTIFICATIONS_TOTAL,
)
from attackstore.schemas.attack import Attack
from attackstore.schemas.criteria import SearchCriteria
from attackstore.services.initialization import InitializationGuard, StoreState

log = logging.getLogger(__name__)

AttackListener = Callable[[Attack], None]

ENGINE_ERRORS = (InfluxDBClientError, InfluxDBServerError, RequestException)


class AttackStore:
    """Append-only attack storage backed by an InfluxDB measurement.

    The READY/DISABLED decision is taken once, here in the constructor. A
    disabled store never builds a client and rejects every operation with
    ``NotInitializedError``.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        client_factory: Callable[[Settings], object] = connect,
        codec: AttackCodec | None = None,
        listeners: Iterable[AttackListener] = (),
        decode_policy: DecodePolicy | str | None = None,
    ):
        self.settings = settings
        self.codec = codec or AttackCodec()
        self._listeners: list[AttackListener] = list(listeners)
        self._client = None

        self.guard = InitializationGuard.from_settings(settings, decode_policy)
        self.decode_policy = self.guard.decode_policy
        if self.guard.is_ready:
            self._client = client_factory(settings)
            create_database_if_not_exists(self._client, settings.influxdb_database)
        else:
            self.guard.report()

    @classmethod
    def from_env(cls, **kwargs) -> "AttackStore":
        return cls(get_settings(), **kwargs)

    @property
    def state(self) -> StoreState:
        return self.guard.state

    @property
    def is_ready(self) -> bool:
        return self.guard.is_ready

    @property
    def reason(self) -> str:
        return self.guard.reason

    def register_listener(self, listener: AttackListener) -> None:
        self._listeners.append(listener)

    def add_attack(self, attack: Attack) -> None:
        self.guard.ensure_initialized()
        if attack is None:
            raise InvalidArgumentError("attack must be non-null")

        log.warning(
            "Security attack %s triggered by user: %s",
            attack.detection_point.label,
            attack.user.username,
        )
        point = self.codec.encode(attack)

        try:
            self._client.write_points(
                [point],
                time_precision="u",
                database=self.settings.influxdb_database,
                retention_policy=self.settings.influxdb_retention_policy,
            )
        except ENGINE_ERRORS as exc:
            ATTACK_WRITES_TOTAL.labels(result="error").inc()
            raise WriteFailureError(f"Failed to write attack point: {exc}") from exc
        ATTACK_WRITES_TOTAL.labels(result="ok").inc()

        self._notify_listeners(attack)

    def _notify_listeners(self, attack: Attack) -> None:
        for listener in tuple(self._listeners):
            listener(attack)
            LISTENER_NOTIFICATIONS_TOTAL.inc()

    def find_attacks(
        self,
        criteria: SearchCriteria,
        mode: QueryMode = QueryMode.consider_detection_point,
    ) -> list[Attack]:
        self.guard.ensure_initialized()
        if criteria is None:
            raise InvalidArgumentError("criteria must be non-null")

        influxql = build_attack_query(criteria, mode)
        log.debug("Querying attacks: %s", influxql)

        start = perf_counter()
        try:
            results = self._client.query(influxql, database=self.settings.influxdb_database)
        except ENGINE_ERRORS as exc:
            ATTACK_QUERIES_TOTAL.labels(result="error").inc()
            raise QueryFailureError(f"Failed to query attacks: {exc}") from exc
        finally:
            ATTACK_QUERY_DURATION_SECONDS.observe(perf_counter() - start)
        ATTACK_QUERIES_TOTAL.labels(result="ok").inc()

        return self.codec.decode_results(results, self.decode_policy)

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
