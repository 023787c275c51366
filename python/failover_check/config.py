from __future__ import annotations

import logging
import os
import re
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from failover_check.errors import ConfigurationError

log = logging.getLogger(__name__)

_ENV_PATTERN = re.compile(r"^\$\{([A-Za-z_][A-Za-z0-9_]*)\}$")

REQUIRED_ENV_KEYS = (
    "AWS_ACCESS_KEY_ID",
    "AWS_SECRET_ACCESS_KEY",
    "AWS_REGION",
    "ASG_NAME",
)

_CONFIG_FILE_KEYS = (*REQUIRED_ENV_KEYS, "AWS_SESSION_TOKEN")


@dataclass(frozen=True)
class AwsSettings:
    access_key_id: str
    secret_access_key: str
    region: str
    group_name: str
    session_token: str = ""

    def __repr__(self) -> str:
        return f"AwsSettings(region={self.region!r}, group_name={self.group_name!r})"


def _unquote(value: str) -> str:
    text = value.strip()
    if len(text) >= 2 and text[0] == text[-1] and text[0] in {'"', "'"}:
        return text[1:-1]
    return text


def _expand_placeholder(value: str) -> str:
    match = _ENV_PATTERN.match(value)
    if match is None:
        return value
    return os.getenv(match.group(1), "")


def read_config_file(path: Path) -> dict[str, str]:
    """Read AWS settings from ``key: value`` lines, keyed by environment name.

    Only the lower-case forms of the AWS variables are picked up, at any
    indentation, so the settings may sit under a section header. Other keys
    are ignored. A value of the form ``${NAME}`` is read from the process
    environment.
    """
    wanted = {key.lower(): key for key in _CONFIG_FILE_KEYS}
    settings: dict[str, str] = {}
    for lineno, raw_line in enumerate(path.read_text(encoding="utf-8").splitlines(), start=1):
        line = raw_line.split("#", maxsplit=1)[0].strip()
        key, sep, value = line.partition(":")
        env_key = wanted.get(_unquote(key))
        if not sep or env_key is None:
            if line:
                log.debug("ignoring config line path=%s line=%d", path, lineno)
            continue
        settings[env_key] = _expand_placeholder(_unquote(value))
    return settings


def load_environment(
    config_path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Merge the process environment over an optional simple-YAML config file.

    File keys are the lower-case forms of the environment names
    (``aws_region``, ``asg_name``...). Non-empty environment values win.
    """
    env = os.environ if environ is None else environ
    merged: dict[str, str] = {}
    if config_path:
        path = Path(config_path)
        if not path.exists():
            raise ConfigurationError(f"env config not found: {path}")
        merged.update(read_config_file(path))
    for key in _CONFIG_FILE_KEYS:
        value = env.get(key, "")
        if value:
            merged[key] = value
    return merged


def validate_environment(values: Mapping[str, str]) -> AwsSettings:
    log.info("checking credentials")
    missing = [key for key in REQUIRED_ENV_KEYS if not values.get(key, "")]
    if missing:
        raise ConfigurationError(f"AWS credentials not set: missing {','.join(missing)}")
    log.info("credentials ok")
    return AwsSettings(
        access_key_id=values["AWS_ACCESS_KEY_ID"],
        secret_access_key=values["AWS_SECRET_ACCESS_KEY"],
        region=values["AWS_REGION"],
        group_name=values["ASG_NAME"],
        session_token=values.get("AWS_SESSION_TOKEN", ""),
    )
