from __future__ import annotations

from dataclasses import dataclass
import os

from bankmirror.errors import ConfigError

DEFAULT_DATABASE_URL = "sqlite:///bankmirror.db"


@dataclass(frozen=True, slots=True)
class N26Settings:
    username: str
    password: str
    device_token: str


@dataclass(frozen=True, slots=True)
class YnabSettings:
    api_key: str
    budget_id: str
    account_id: str


@dataclass(frozen=True, slots=True)
class Settings:
    """Process-wide configuration loaded once at startup."""

    n26: N26Settings
    ynab: YnabSettings
    database_url: str = DEFAULT_DATABASE_URL


def _require_env(*names: str) -> dict[str, str]:
    values = {name: os.environ.get(name, "").strip() for name in names}
    missing = [name for name, value in values.items() if not value]
    if missing:
        raise ConfigError(
            f"Missing required environment variable(s): {', '.join(missing)}"
        )
    return values


def load_database_url_from_env() -> str:
    return os.environ.get("DATABASE_URL", "").strip() or DEFAULT_DATABASE_URL


def load_settings_from_env() -> Settings:
    """Load API credentials and the database URL from the environment.

    Raises:
        ConfigError: Listing every missing variable at once.
    """
    values = _require_env(
        "N26_USERNAME",
        "N26_PASSWORD",
        "N26_DEVICE_TOKEN",
        "YNAB_API_KEY",
        "YNAB_BUDGET_ID",
        "YNAB_ACCOUNT_ID",
    )
    return Settings(
        n26=N26Settings(
            username=values["N26_USERNAME"],
            password=values["N26_PASSWORD"],
            device_token=values["N26_DEVICE_TOKEN"],
        ),
        ynab=YnabSettings(
            api_key=values["YNAB_API_KEY"],
            budget_id=values["YNAB_BUDGET_ID"],
            account_id=values["YNAB_ACCOUNT_ID"],
        ),
        database_url=load_database_url_from_env(),
    )
