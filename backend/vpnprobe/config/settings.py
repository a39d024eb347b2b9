from __future__ import annotations

"""backend/vpnprobe/config/settings.py

Application configuration using environment-driven settings.

This module centralizes:
- where OpenVPN profiles are discovered
- probe timing (check interval, per-attempt timeout, shutdown grace window)
- excerpt / report size limits
- Telegram credentials for the failure report
- Celery / Redis configuration for scheduled cycles

Duration settings accept Go-style strings ("90s", "30m", "1h30m", "500ms")
as well as plain seconds, so existing deployments keep their env files.
"""
import re
from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_UNIT_SECONDS = {"h": 3600.0, "m": 60.0, "s": 1.0, "ms": 0.001}


def parse_duration(value: str | int | float) -> float:
  """Parse a duration into seconds.

  Numbers are taken as seconds. Strings may be a bare number or a sequence
  of ``<number><unit>`` parts with units h, m, s, ms.
  """
  if isinstance(value, (int, float)):
    return float(value)

  text = value.strip()
  try:
    return float(text)
  except ValueError:
    pass

  pos = 0
  total = 0.0
  for match in _DURATION_PART.finditer(text):
    if match.start() != pos:
      break
    total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
    pos = match.end()

  if pos == 0 or pos != len(text):
    raise ValueError(f"invalid duration: {value!r}")
  return total


class Settings(BaseSettings):
  app_name: str = "vpn-probe"
  log_level: str = "INFO"

  # Profile discovery
  vpn_config_dir: str = "./ovpn"

  # External client
  openvpn_binary: str = "openvpn"

  # Probe timing (seconds)
  check_interval: float = 30 * 60
  connect_timeout: float = 90
  shutdown_grace: float = 5
  poll_interval: float = 0.5
  attempt_delay: float = 2

  # Excerpts and report sizing
  output_tail: int = 10
  output_limit: int = 4000
  excerpt_limit: int = 3000

  # Telegram
  telegram_bot_token: str | None = None
  telegram_chat_id: int | None = None
  telegram_api_url: str = "https://api.telegram.org"
  telegram_request_timeout: float = 10

  # Celery / Redis
  celery_broker_url: str = "redis://redis:6379/1"
  celery_result_backend: str = "redis://redis:6379/2"

  model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

  @field_validator(
    "check_interval",
    "connect_timeout",
    "shutdown_grace",
    "poll_interval",
    "attempt_delay",
    mode="before",
  )
  @classmethod
  def _parse_duration(cls, value: object) -> object:
    if isinstance(value, (str, int, float)):
      seconds = parse_duration(value)
      if seconds <= 0:
        raise ValueError("duration must be positive")
      return seconds
    return value

  @field_validator("telegram_bot_token", "telegram_chat_id", mode="before")
  @classmethod
  def _blank_is_unset(cls, value: object) -> object:
    # Unset compose variables arrive as empty strings.
    if isinstance(value, str) and not value.strip():
      return None
    return value

  @property
  def telegram_configured(self) -> bool:
    return bool(self.telegram_bot_token) and bool(self.telegram_chat_id)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Return a cached Settings instance."""
  return Settings()
