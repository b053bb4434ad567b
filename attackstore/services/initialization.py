import enum
import logging
from dataclasses import dataclass

from attackstore.core.config import Settings
from attackstore.core.errors import NotInitializedError
from attackstore.db.client import client_kwargs
from attackstore.db.points import DecodePolicy

log = logging.getLogger(__name__)

NOT_INITIALIZED = "The attack store has not been initialized properly."


class StoreState(str, enum.Enum):
    ready = "READY"
    disabled = "DISABLED"


def uninitialized_message(missing: list[str]) -> str:
    names = ", ".join(Settings.env_name(name) for name in missing)
    return f"{NOT_INITIALIZED} Ensure the following environment variables are set: {names}"


@dataclass(frozen=True)
class InitializationGuard:
    """One-time READY/DISABLED decision taken from the settings at startup."""

    state: StoreState
    reason: str = ""
    decode_policy: DecodePolicy = DecodePolicy.skip

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        decode_policy: DecodePolicy | str | None = None,
    ) -> "InitializationGuard":
        missing = settings.missing_required()
        if missing:
            return cls(StoreState.disabled, uninitialized_message(missing))
        try:
            client_kwargs(settings)
        except ValueError as exc:
            return cls(StoreState.disabled, f"{NOT_INITIALIZED} {exc}")
        requested = decode_policy or settings.decode_failure_policy
        try:
            policy = DecodePolicy.parse(requested)
        except ValueError:
            allowed = ", ".join(item.value for item in DecodePolicy)
            return cls(
                StoreState.disabled,
                f"{NOT_INITIALIZED} {Settings.env_name('decode_failure_policy')} must be one of "
                f"{allowed}, got {requested!r}",
            )
        return cls(StoreState.ready, decode_policy=policy)

    @property
    def is_ready(self) -> bool:
        return self.state == StoreState.ready

    def report(self) -> None:
        if not self.is_ready:
            log.error(self.reason)

    def ensure_initialized(self) -> None:
        if not self.is_ready:
            raise NotInitializedError(self.reason)
