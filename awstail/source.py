from __future__ import annotations
from typing import Any, List, Optional, Tuple

import boto3
from botocore.config import Config

from .config import PAGE_LIMIT, log
from .events import LogEvent


def make_client(region: str, profile: Optional[str] = None) -> Any:
    # max_attempts=1: a failed call surfaces immediately instead of being retried
    cfg = Config(retries={"max_attempts": 1, "mode": "standard"})
    session = boto3.Session(profile_name=profile) if profile else boto3.Session()
    return session.client("logs", region_name=region, config=cfg)


def fetch_page(
    client,
    log_group: str,
    *,
    start_time: int,
    filter_pattern: Optional[str] = None,
    next_token: Optional[str] = None,
) -> Tuple[List[LogEvent], Optional[str]]:
    kwargs = dict(logGroupName=log_group, startTime=start_time, interleaved=True, limit=PAGE_LIMIT)
    if filter_pattern:
        kwargs["filterPattern"] = filter_pattern
    if next_token:
        kwargs["nextToken"] = next_token

    resp = client.filter_log_events(**kwargs)
    events = [LogEvent.from_api(e) for e in resp.get("events", [])]
    log.debug(f"[fetch] group={log_group} start={start_time} -> {len(events)} event(s) more={bool(resp.get('nextToken'))}")
    return events, resp.get("nextToken")


def fetch_logs(
    client,
    log_group: str,
    *,
    start_time: int,
    filter_pattern: Optional[str] = None,
) -> List[LogEvent]:
    """
    Drain every page for [start_time, now). Events come back in arrival order.
    """
    events: List[LogEvent] = []
    next_token = None
    pages = 0
    while True:
        batch, next_token = fetch_page(
            client,
            log_group,
            start_time=start_time,
            filter_pattern=filter_pattern,
            next_token=next_token,
        )
        events.extend(batch)
        pages += 1
        if not next_token:
            break
    log.info(f"[fetch] initial fetch: {len(events)} event(s) over {pages} page(s)")
    return events
