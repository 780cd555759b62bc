import os
from dataclasses import dataclass


_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    identity_header: str = "user-id"
    admin_ids: tuple[str, ...] = ()
    enforce_owner: bool = True
    month_labels_with_year: bool = False
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 3000


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def _env_list(name: str) -> tuple[str, ...]:
    raw = os.environ.get(name, "")
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def get_settings() -> Settings:
    return Settings(
        identity_header=os.environ.get("SIDELEDGER_IDENTITY_HEADER", "user-id"),
        admin_ids=_env_list("SIDELEDGER_ADMIN_IDS"),
        enforce_owner=_env_bool("SIDELEDGER_ENFORCE_OWNER", True),
        month_labels_with_year=_env_bool("SIDELEDGER_MONTH_LABELS_WITH_YEAR", False),
        log_level=os.environ.get("SIDELEDGER_LOG_LEVEL", "INFO").upper(),
        host=os.environ.get("HOST", "127.0.0.1"),
        port=_env_int("PORT", 3000),
    )
