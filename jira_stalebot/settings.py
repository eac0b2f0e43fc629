"""Stalebot policy config (YAML or TOML file) and personal access token resolution."""

import os
import re
from pathlib import Path
from typing import Any

import tomlkit
import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    ValidationError,
    ValidationInfo,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict
from tomlkit.exceptions import TOMLKitError

from jira_stalebot.errors import ConfigError, CredentialError

PAT_ENV_VAR = "JIRA_STALEBOT_PAT"
PAT_CONFIG_FILE = Path("jira-stalebot") / "pat"

DEFAULT_STALE_LABEL = "lifecycle-stale"
DEFAULT_DAYS_UNTIL_STALE = 90
DEFAULT_DAYS_UNTIL_CLOSE = 14
DEFAULT_LIMIT_PER_RUN = 100

_PROJECT_KEY_RE = re.compile(r"^[A-Z]{2,}$")
_LABEL_RE = re.compile(r"^[0-9A-Za-z-]+$")
_POSITIVE_DEFAULTS = {
    "days_until_stale": DEFAULT_DAYS_UNTIL_STALE,
    "days_until_close": DEFAULT_DAYS_UNTIL_CLOSE,
    "limit_per_run": DEFAULT_LIMIT_PER_RUN,
}


def default_mark_comment(days_until_stale: int, stale_label: str, days_until_close: int) -> str:
    return (
        f"[STALEBOT COMMENT] This issue is stale because it has not had activity for {days_until_stale} days. "
        f'Comment, remove label "{stale_label}", or make any another update to this issue to avoid closure '
        f"in {days_until_close} days."
    )


def default_unmark_comment(stale_label: str) -> str:
    return (
        "[STALEBOT COMMENT] A recent update was detected, so this issue is no longer stale. "
        f'Removing stale label "{stale_label}".'
    )


def default_close_comment(days_until_close: int) -> str:
    return (
        "[STALEBOT COMMENT] This issue is being closed because it has been stale for "
        f"{days_until_close} days with no activity."
    )


class StalebotConfig(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    jira_base_url: str = Field("", alias="jiraBaseURL")
    project: str = ""

    days_until_stale: int = Field(DEFAULT_DAYS_UNTIL_STALE, alias="daysUntilStale")
    days_until_close: int = Field(DEFAULT_DAYS_UNTIL_CLOSE, alias="daysUntilClose")

    only_labels: list[str] = Field(default_factory=list, alias="onlyLabels")
    exempt_labels: list[str] = Field(default_factory=list, alias="exemptLabels")

    stale_label: str = Field(DEFAULT_STALE_LABEL, alias="staleLabel")
    mark_comment: str = Field("", alias="markComment", validate_default=True)
    unmark_comment: str = Field("", alias="unmarkComment", validate_default=True)

    close_status: str = Field("", alias="closeStatus")
    close_comment: str = Field("", alias="closeComment", validate_default=True)

    limit_per_run: int = Field(DEFAULT_LIMIT_PER_RUN, alias="limitPerRun")

    @model_validator(mode="before")
    @classmethod
    def _drop_unset(cls, data: Any) -> Any:
        """Treat null, empty strings and empty lists as unset so field defaults apply."""
        if not isinstance(data, dict):
            return data
        return {k: v for k, v in data.items() if v is not None and v != "" and v != []}

    @field_validator("days_until_stale", "days_until_close", "limit_per_run", mode="after")
    @classmethod
    def _positive_or_default(cls, value: int, info: ValidationInfo) -> int:
        if value <= 0:
            return _POSITIVE_DEFAULTS[info.field_name]
        return value

    # Comment fields are declared after the values they interpolate, so info.data already holds
    # the coerced and defaulted settings.

    @field_validator("mark_comment", mode="after")
    @classmethod
    def _default_mark_comment(cls, value: str, info: ValidationInfo) -> str:
        if value:
            return value
        return default_mark_comment(
            info.data.get("days_until_stale", DEFAULT_DAYS_UNTIL_STALE),
            info.data.get("stale_label", DEFAULT_STALE_LABEL),
            info.data.get("days_until_close", DEFAULT_DAYS_UNTIL_CLOSE),
        )

    @field_validator("unmark_comment", mode="after")
    @classmethod
    def _default_unmark_comment(cls, value: str, info: ValidationInfo) -> str:
        return value or default_unmark_comment(info.data.get("stale_label", DEFAULT_STALE_LABEL))

    @field_validator("close_comment", mode="after")
    @classmethod
    def _default_close_comment(cls, value: str, info: ValidationInfo) -> str:
        return value or default_close_comment(info.data.get("days_until_close", DEFAULT_DAYS_UNTIL_CLOSE))

    def problems(self) -> list[str]:
        """Return every validation problem, not just the first."""
        found: list[str] = []
        if not self.jira_base_url:
            found.append("config must specify `jiraBaseURL`")
        if not _PROJECT_KEY_RE.match(self.project):
            found.append("config must specify valid project key (two or more uppercase letters)")
        if self.only_labels and self.exempt_labels:
            found.append("config must not specify both onlyLabels and exemptLabels")
        for label in self.only_labels:
            if not _LABEL_RE.match(label):
                found.append(f"config contains invalid label `{label}` in onlyLabels")
        for label in self.exempt_labels:
            if not _LABEL_RE.match(label):
                found.append(f"config contains invalid label `{label}` in exemptLabels")
        if not _LABEL_RE.match(self.stale_label):
            found.append(f"config must not specify invalid staleLabel `{self.stale_label}`")
        if not self.close_status or '"' in self.close_status:
            found.append(f"config must not specify invalid closeStatus `{self.close_status}`")
        return found

    def validate_policy(self) -> None:
        problems = self.problems()
        if problems:
            raise ConfigError(problems)


def _parse_config_text(path: Path, text: str) -> Any:
    if path.suffix == ".toml":
        return tomlkit.parse(text).unwrap()
    return yaml.safe_load(text)


def load_config(path: Path) -> StalebotConfig:
    """Read, default and validate the config file at path.

    Raises ConfigError listing every problem found.
    """
    try:
        text = path.read_text()
    except OSError as exc:
        raise ConfigError([f"read config file {path}: {exc}"]) from exc

    try:
        data = _parse_config_text(path, text)
    except (yaml.YAMLError, TOMLKitError) as exc:
        raise ConfigError([f"parse config file {path}: {exc}"]) from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError([f"config file {path} must contain a mapping of settings"])

    try:
        config = StalebotConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(
            [f"config field `{'.'.join(str(p) for p in err['loc'])}`: {err['msg']}" for err in exc.errors()]
        ) from exc

    config.validate_policy()
    return config


# ---------------------------------------------------------------------------
# Personal access token
# ---------------------------------------------------------------------------


class TokenSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="JIRA_STALEBOT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    pat: SecretStr | None = None


def _xdg_config_dirs() -> list[Path]:
    """Return XDG config directories in search order, respecting XDG_CONFIG_HOME and XDG_CONFIG_DIRS."""
    xdg_home = os.environ.get("XDG_CONFIG_HOME", "")
    dirs = [Path(xdg_home).expanduser() if xdg_home else Path.home() / ".config"]
    xdg_dirs = os.environ.get("XDG_CONFIG_DIRS", "") or "/etc/xdg"
    dirs.extend(Path(d).expanduser() for d in xdg_dirs.split(os.pathsep) if d)
    return dirs


def find_pat_file() -> Path | None:
    for base in _xdg_config_dirs():
        candidate = base / PAT_CONFIG_FILE
        if candidate.is_file():
            return candidate
    return None


def load_personal_access_token() -> str:
    """Resolve the Jira PAT from JIRA_STALEBOT_PAT, falling back to <xdg config>/jira-stalebot/pat."""
    settings = TokenSettings()
    if settings.pat is not None:
        return settings.pat.get_secret_value()

    pat_file = find_pat_file()
    if pat_file is None:
        searched = ", ".join(str(d / PAT_CONFIG_FILE) for d in _xdg_config_dirs())
        raise CredentialError(
            f"{PAT_ENV_VAR} environment variable not set and personal access token file not found "
            f"(searched: {searched})"
        )
    try:
        return pat_file.read_text().strip()
    except OSError as exc:
        raise CredentialError(f"read personal access token file {pat_file}: {exc}") from exc
