import re
import threading
from datetime import datetime, timedelta, timezone

import pytest
from influxdb.exceptions import InfluxDBServerError

from attackstore.core.config import Settings
from attackstore.schemas.attack import Attack
from attackstore.services.attack_store import AttackStore

T0 = datetime(2026, 3, 10, 12, 0, 0, tzinfo=timezone.utc)

_TOKEN = re.compile(
    r"""\s*(?:
        (?P<string>'(?:[^'\\\n]|\\.)*')
      | (?P<ident>"(?:[^"\\\n]|\\.)*")
      | (?P<op>>=|=|\(|\)|\*)
      | (?P<word>[A-Za-z_][A-Za-z0-9_]*)
    )""",
    re.VERBOSE,
)
_ESCAPES = {"\\": "\\", "'": "'", '"': '"', "n": "\n"}


def _unescape(body: str) -> str:
    out = []
    chars = iter(body)
    for ch in chars:
        if ch == "\\":
            nxt = next(chars)
            if nxt not in _ESCAPES:
                raise ValueError(f"bad escape \\{nxt}")
            out.append(_ESCAPES[nxt])
        else:
            out.append(ch)
    return "".join(out)


def tokenize(text: str) -> list[tuple[str, str]]:
    tokens = []
    pos = 0
    text = text.rstrip()
    while pos < len(text):
        match = _TOKEN.match(text, pos)
        if not match:
            raise ValueError(f"cannot tokenize at {text[pos:]!r}")
        kind = match.lastgroup
        value = match.group(kind)
        if kind in ("string", "ident"):
            value = _unescape(value[1:-1])
        elif kind == "word":
            value = value.upper() if value.upper() in ("SELECT", "FROM", "WHERE", "AND", "OR") else value
        tokens.append((kind, value))
        pos = match.end()
    return tokens


class InfluxQLWhere:
    """Tiny evaluator for the subset of InfluxQL the store generates."""

    def __init__(self, query: str):
        self.tokens = tokenize(query)
        self.pos = 0
        self._expect("word", "SELECT")
        self._expect("op", "*")
        self._expect("word", "FROM")
        self.measurement = self._next("ident")[1]
        self._expect("word", "WHERE")
        self.predicate = self._or()
        if self.pos != len(self.tokens):
            raise ValueError(f"trailing tokens: {self.tokens[self.pos:]}")

    def _peek(self):
        return self.tokens[self.pos] if self.pos < len(self.tokens) else (None, None)

    def _next(self, kind=None):
        token = self._peek()
        if kind and token[0] != kind:
            raise ValueError(f"expected {kind}, got {token}")
        self.pos += 1
        return token

    def _expect(self, kind, value):
        token = self._next(kind)
        if token[1] != value:
            raise ValueError(f"expected {value}, got {token}")

    def _or(self):
        terms = [self._and()]
        while self._peek() == ("word", "OR"):
            self.pos += 1
            terms.append(self._and())
        return lambda row: any(term(row) for term in terms)

    def _and(self):
        terms = [self._primary()]
        while self._peek() == ("word", "AND"):
            self.pos += 1
            terms.append(self._primary())
        return lambda row: all(term(row) for term in terms)

    def _primary(self):
        if self._peek() == ("op", "("):
            self.pos += 1
            inner = self._or()
            self._expect("op", ")")
            return inner
        kind, name = self._next()
        _, op = self._next("op")
        value = self._next("string")[1]
        if kind == "word" and name == "time" and op == ">=":
            bound = datetime.fromisoformat(value.replace("Z", "+00:00"))
            return lambda row: row["time"] >= bound
        if kind == "ident" and op == "=":
            return lambda row: row["tags"].get(name) == value
        raise ValueError(f"unsupported comparison {name} {op}")

    @property
    def clause_count(self) -> int:
        return sum(1 for token in self.tokens if token == ("word", "AND")) + 1


class FakeInfluxDB:
    """In-memory stand-in for influxdb.InfluxDBClient."""

    def __init__(self, databases=()):
        self.databases = list(databases)
        self.points: list[dict] = []
        self.queries: list[str] = []
        self.write_calls = 0
        self.fail_writes = False
        self.fail_queries = False
        self.closed = False
        self._lock = threading.Lock()

    def get_list_database(self):
        return [{"name": name} for name in self.databases]

    def create_database(self, name):
        self.databases.append(name)

    def write_points(self, points, time_precision=None, database=None, retention_policy=None):
        if self.fail_writes:
            raise InfluxDBServerError("write refused")
        assert time_precision == "u"
        assert database in self.databases
        with self._lock:
            self.write_calls += 1
            self.points.extend(points)
        return True

    def query(self, query, database=None):
        if self.fail_queries:
            raise InfluxDBServerError("query refused")
        self.queries.append(query)
        where = InfluxQLWhere(query)
        rows = []
        for point in list(self.points):
            if point["measurement"] != where.measurement:
                continue
            row = {
                "time": datetime(1970, 1, 1, tzinfo=timezone.utc) + timedelta(microseconds=point["time"]),
                "tags": point["tags"],
                "fields": point["fields"],
            }
            if where.predicate(row):
                rows.append(row)
        if not rows:
            return RawResult({"statement_id": 0})
        columns = ["time"] + sorted(set(rows[0]["tags"]) | set(rows[0]["fields"]))
        values = [
            [row["time"].strftime("%Y-%m-%dT%H:%M:%S.%fZ")]
            + [row["fields"].get(col, row["tags"].get(col)) for col in columns[1:]]
            for row in rows
        ]
        return RawResult({"statement_id": 0, "series": [{"name": where.measurement, "columns": columns, "values": values}]})

    def close(self):
        self.closed = True


class RawResult:
    def __init__(self, raw):
        self.raw = raw


def make_settings(**overrides) -> Settings:
    values = {
        "influxdb_connection_string": "http://localhost:8086",
        "influxdb_username": "appsensor",
        "influxdb_password": "secret",
        "influxdb_database": "attacks_test",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_attack(
    username="alice",
    category="Authentication",
    label="AE1",
    system_id="sys1",
    timestamp=T0,
    **extra,
) -> Attack:
    return Attack.model_validate(
        {
            "timestamp": timestamp.isoformat() if isinstance(timestamp, datetime) else timestamp,
            "user": {"username": username},
            "detectionPoint": {
                "category": category,
                "label": label,
                "threshold": {"count": 3, "interval": {"duration": 5, "unit": "minutes"}},
            },
            "detectionSystem": {"detectionSystemId": system_id},
            **extra,
        }
    )


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "ATTACK_STORE_INFLUXDB_CONNECTION_STRING",
        "ATTACK_STORE_INFLUXDB_USERNAME",
        "ATTACK_STORE_INFLUXDB_PASSWORD",
        "ATTACK_STORE_INFLUXDB_DATABASE",
        "ATTACK_STORE_DECODE_FAILURE_POLICY",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def settings():
    return make_settings()


@pytest.fixture()
def influx():
    return FakeInfluxDB()


@pytest.fixture()
def store(settings, influx):
    return AttackStore(settings, client_factory=lambda _: influx)
