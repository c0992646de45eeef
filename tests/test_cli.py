import asyncio
import io
import os
import signal
import sys
import termios

import pytest
from botocore.exceptions import ClientError

from awstail import formatting as fmt
from awstail.config import resolve_options
from awstail.overlay import ERASE_LINE
import tail_logs


class FakeLogsClient:
    """Stands in for the boto3 logs client; replays canned responses."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def filter_log_events(self, **kwargs):
        self.calls.append(kwargs)
        resp = self.responses.pop(0) if self.responses else {"events": []}
        if callable(resp):
            return resp()
        if isinstance(resp, Exception):
            raise resp
        return resp


def _denied():
    return ClientError({"Error": {"Code": "AccessDeniedException", "Message": "nope"}}, "FilterLogEvents")


def test_bad_since_exits_1(capsys):
    assert tail_logs.main(["--log-group", "/g", "--since", "10"], client=FakeLogsClient()) == 1
    assert "Invalid time format: 10" in capsys.readouterr().err


def test_missing_log_group_exits_1(capsys):
    assert tail_logs.main([], client=FakeLogsClient()) == 1
    assert "--log-group" in capsys.readouterr().err


def test_unknown_flag_exits_1(capsys):
    assert tail_logs.main(["--log-group", "/g", "--bogus"], client=FakeLogsClient()) == 1


def test_no_logs_notice():
    out = io.StringIO()
    client = FakeLogsClient({"events": []})
    assert tail_logs.main(["--log-group", "/g", "--since", "5m"], client=client, out=out) == 0
    assert fmt.strip_ansi(out.getvalue()) == "No logs found in the last 5m\n"
    assert client.calls[0]["logGroupName"] == "/g"
    assert "filterPattern" not in client.calls[0]


def test_initial_fetch_prints_every_page():
    out = io.StringIO()
    client = FakeLogsClient(
        {"events": [{"timestamp": 1_700_000_000_000, "message": "INFO first"}], "nextToken": "n"},
        {"events": [{"timestamp": 1_700_000_000_500, "message": "INFO second"}]},
    )
    assert tail_logs.main(["--log-group", "/g", "--filter", "INFO"], client=client, out=out) == 0
    text = fmt.strip_ansi(out.getvalue())
    assert "first" in text and "second" in text
    assert client.calls[1]["nextToken"] == "n"
    assert client.calls[1]["filterPattern"] == "INFO"


def test_fetch_error_exits_1(capsys):
    assert tail_logs.main(["--log-group", "/g"], client=FakeLogsClient(_denied())) == 1
    assert "AccessDeniedException" in capsys.readouterr().err


def test_tail_streams_from_cursor_until_a_poll_fails(capsys):
    out = io.StringIO()
    client = FakeLogsClient(
        {"events": [{"timestamp": 100, "message": "INFO backlog"}]},
        {"events": [{"timestamp": 200, "message": "INFO fresh"}], "nextToken": "ignored"},
        {"events": []},
        _denied(),
    )
    assert tail_logs.main(["--log-group", "/g", "--tail", "--poll", "0.01"], client=client, out=out) == 1

    starts = [call["startTime"] for call in client.calls]
    assert starts[1:] == [101, 201, 201]
    # streaming polls never follow pagination
    assert all("nextToken" not in call for call in client.calls)
    text = fmt.strip_ansi(out.getvalue())
    assert text.index("backlog") < text.index("fresh")
    assert "\r" not in text


def test_tail_sigint_exits_0():
    def interrupt():
        os.kill(os.getpid(), signal.SIGINT)
        return {"events": []}

    out = io.StringIO()
    client = FakeLogsClient({"events": []}, {"events": []}, interrupt)
    assert tail_logs.main(["--log-group", "/g", "--tail", "--poll", "0.01"], client=client, out=out) == 0
    assert signal.getsignal(signal.SIGINT) is signal.default_int_handler


def test_non_finite_poll_exits_1(capsys):
    assert tail_logs.main(["--log-group", "/g", "--poll", "nan"], client=FakeLogsClient()) == 1
    assert "Invalid poll interval: nan" in capsys.readouterr().err


@pytest.mark.skipif(not hasattr(os, "openpty"), reason="needs a pseudo-terminal")
def test_interactive_ctrl_c_returns_and_restores_terminal(monkeypatch):
    master, slave = os.openpty()
    try:
        # keep ^C as a byte on the pty instead of turning it into a signal
        attrs = termios.tcgetattr(slave)
        attrs[3] &= ~termios.ISIG
        termios.tcsetattr(slave, termios.TCSANOW, attrs)
        before = termios.tcgetattr(slave)

        class _Stdin:
            def fileno(self):
                return slave

        monkeypatch.setattr(sys, "stdin", _Stdin())

        def type_keys():
            os.write(master, b"ab\x03")
            return {"events": []}

        client = FakeLogsClient(type_keys)
        opts = resolve_options("/g", poll_seconds="0.01", since="1s", now=0)
        out = io.StringIO()

        asyncio.run(tail_logs.tail(client, opts, 0, out=out, interactive=True))

        assert termios.tcgetattr(slave)[3] == before[3]
        assert out.getvalue().endswith(ERASE_LINE)
        assert client.calls[0]["startTime"] == 0
    finally:
        os.close(master)
        os.close(slave)
