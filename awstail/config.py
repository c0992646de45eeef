import os
import re
import math
import time
import logging
from dataclasses import dataclass
from typing import Optional, Union

import boto3


def _log_level(name: str) -> int:
    level = getattr(logging, (name or "").upper(), None)
    return level if isinstance(level, int) else logging.WARNING


logging.basicConfig(
    level=_log_level(os.getenv("AWSTAIL_LOG_LEVEL", "WARNING")),
    format="%(asctime)s | %(levelname)s | %(message)s",
)
log = logging.getLogger("awstail")

DEFAULT_REGION = os.getenv("AWS_REGION") or boto3.session.Session().region_name or "us-east-1"
# kept as text; converted (and rejected) in resolve_options
DEFAULT_POLL_SECONDS = os.getenv("AWSTAIL_POLL", "1")
DEFAULT_SINCE = os.getenv("AWSTAIL_SINCE", "10m")

# CloudWatch caps a single FilterLogEvents page at 10k events
PAGE_LIMIT = 10_000

SINCE_RE = re.compile(r"^(\d+)([smhd])$")
SINCE_MULTIPLIERS = {
    "s": 1000,
    "m": 60 * 1000,
    "h": 60 * 60 * 1000,
    "d": 24 * 60 * 60 * 1000,
}


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class Options:
    log_group: str
    region: str
    start_time: int
    since: str = DEFAULT_SINCE
    poll_seconds: float = 1.0
    filter_pattern: Optional[str] = None
    profile: Optional[str] = None
    tail: bool = False


def now_ms() -> int:
    return int(time.time() * 1000)


def parse_since(text: str) -> int:
    """
    Convert a lookback like 10s, 22m, 2h or 1d into milliseconds.
    """
    match = SINCE_RE.match(text or "")
    if not match:
        raise ConfigError(f"Invalid time format: {text}. Use formats like: 10s, 22m, 2h, 1d")
    amount, unit = match.groups()
    return int(amount) * SINCE_MULTIPLIERS[unit]


def parse_poll(value: Union[float, str]) -> float:
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid poll interval: {value}. Use a number of seconds like 1 or 0.5") from None
    if not (math.isfinite(seconds) and seconds > 0):
        raise ConfigError(f"Invalid poll interval: {value}. Must be a finite number greater than 0")
    return seconds


def resolve_options(
    log_group: Optional[str],
    *,
    region: Optional[str] = None,
    since: str = DEFAULT_SINCE,
    poll_seconds: Union[float, str] = DEFAULT_POLL_SECONDS,
    filter_pattern: Optional[str] = None,
    profile: Optional[str] = None,
    tail: bool = False,
    now: Optional[int] = None,
) -> Options:
    if not (log_group or "").strip():
        raise ConfigError("Missing required --log-group argument.")
    poll_seconds = parse_poll(poll_seconds)

    lookback = parse_since(since)
    now = now_ms() if now is None else now
    opts = Options(
        log_group=log_group,
        region=region or DEFAULT_REGION,
        start_time=now - lookback,
        since=since,
        poll_seconds=poll_seconds,
        filter_pattern=filter_pattern or None,
        profile=profile or None,
        tail=tail,
    )
    log.debug(f"[config] log_group={opts.log_group} region={opts.region} start={opts.start_time} tail={opts.tail}")
    return opts
