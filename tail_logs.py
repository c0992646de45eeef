"""
Stream CloudWatch Logs in (near) real-time.

    $ awstail --log-group /aws/lambda/myFunction --profile lambda-sub --filter ERROR --since 10m --tail

AWS credentials come from the usual boto3 chain (env vars, shared credentials
file, SSO, IAM role, ...). While tailing in a terminal, type to dim lines that
don't contain the typed text; backspace edits, esc clears, Ctrl-C quits.
"""
import argparse
import asyncio
import contextlib
import datetime
import signal
import sys

from awstail import __version__
from awstail.config import (
    DEFAULT_POLL_SECONDS,
    DEFAULT_REGION,
    DEFAULT_SINCE,
    ConfigError,
    Options,
    log,
    now_ms,
    resolve_options,
)
from awstail.overlay import FilterState, Renderer, handle_input, raw_keys
from awstail.source import fetch_logs, fetch_page, make_client
from awstail.stream import stream_logs, stream_start


class _Parser(argparse.ArgumentParser):
    def error(self, message):
        raise ConfigError(message)


def build_parser() -> argparse.ArgumentParser:
    parser = _Parser(prog="awstail", description="Stream CloudWatch Logs in (near) real-time.")
    parser.add_argument("--log-group", help="CloudWatch log group name (e.g. /aws/lambda/myFunction)")
    parser.add_argument("--profile", help="AWS profile to use (overrides AWS_PROFILE)")
    parser.add_argument("--filter", help="CloudWatch filter pattern (e.g. ERROR)")
    parser.add_argument("--region", default=DEFAULT_REGION, help=f"AWS region (default: {DEFAULT_REGION})")
    parser.add_argument("--poll", default=DEFAULT_POLL_SECONDS, help="Polling interval in seconds")
    parser.add_argument("--since", default=DEFAULT_SINCE, help="Start time relative to now (e.g. 10s, 22m, 2h, 1d)")
    parser.add_argument("--tail", action="store_true", help="Keep streaming after the initial fetch")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


async def tail(client, opts: Options, start_time: int, out=None, interactive: bool = False) -> None:
    """
    Poll from start_time until interrupted. Returns normally on SIGINT or Ctrl-C.
    """
    out = out or sys.stdout
    loop = asyncio.get_running_loop()
    task = asyncio.current_task()
    state = FilterState()
    renderer = Renderer(out, state, interactive=interactive)

    def _fetch(start: int):
        events, _ = fetch_page(client, opts.log_group, start_time=start, filter_pattern=opts.filter_pattern)
        return events

    def _on_poll() -> None:
        if interactive:
            renderer.status(datetime.datetime.now())

    def _on_keys(chunk: str) -> None:
        if handle_input(state, chunk):
            task.cancel()
            return
        log.debug(f"[filter] pattern={state.pattern!r}")
        renderer.status()

    keys = raw_keys(sys.stdin.fileno(), _on_keys, loop) if interactive else contextlib.nullcontext()
    loop.add_signal_handler(signal.SIGINT, task.cancel)
    try:
        with keys:
            _on_poll()
            batches = stream_logs(_fetch, start_time=start_time, poll_seconds=opts.poll_seconds, on_poll=_on_poll)
            async with contextlib.aclosing(batches):
                async for batch in batches:
                    renderer.render(batch)
    except asyncio.CancelledError:
        log.debug("[stream] interrupted")
    finally:
        loop.remove_signal_handler(signal.SIGINT)
        if interactive:
            renderer.erase_status()
            out.flush()


def run(opts: Options, client=None, out=None) -> int:
    out = out or sys.stdout
    client = client or make_client(opts.region, opts.profile)
    renderer = Renderer(out)

    initial = fetch_logs(client, opts.log_group, start_time=opts.start_time, filter_pattern=opts.filter_pattern)
    if initial:
        renderer.render(initial)
    else:
        renderer.notice(f"No logs found in the last {opts.since}")

    if opts.tail:
        interactive = out.isatty() and sys.stdin.isatty()
        asyncio.run(tail(client, opts, stream_start(initial, now_ms()), out=out, interactive=interactive))
    return 0


def main(argv=None, client=None, out=None) -> int:
    try:
        args = build_parser().parse_args(argv)
        opts = resolve_options(
            args.log_group,
            region=args.region,
            since=args.since,
            poll_seconds=args.poll,
            filter_pattern=args.filter,
            profile=args.profile,
            tail=args.tail,
        )
    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    try:
        return run(opts, client=client, out=out)
    except KeyboardInterrupt:
        return 0
    except Exception as exc:
        log.debug("[main] fatal error", exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
