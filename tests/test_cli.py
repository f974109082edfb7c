"""tn CLI tests, run against an in-process engine."""

import io
from argparse import Namespace

import pytest

from tn import main as cli
from tnshim.engine import Engine, LocalEngine, RemoteEngine
from tnshim.ipc.messages import InterruptionLevel
from tnshim.session.manager import LIST_HEADER, SessionManager
from tnshim.sink.base import AuthorizationStatus
from tnshim.sink.memory import MemorySink


@pytest.fixture
def engine(session):
    return LocalEngine(session)


def run(engine, *argv):
    return cli.main(list(argv), engine=engine)


def test_send_list_remove(engine, sink, capsys):
    assert run(engine, "send", "--message", "Build done", "--group", "ci", "--title", "CI") == 0
    assert sink.list_delivered()[0].title == "CI"

    assert run(engine, "list", "ci") == 0
    out = capsys.readouterr().out.splitlines()
    assert out[0] == LIST_HEADER
    assert out[1].startswith("ci\tCI\t\tBuild done\t")

    assert run(engine, "remove", "ALL") == 0
    assert sink.list_delivered() == []


def test_default_title(engine, sink):
    run(engine, "send", "--message", "x")
    assert sink.list_delivered()[0].title == cli.DEFAULT_TITLE


def test_message_from_stdin(engine, sink, monkeypatch):
    monkeypatch.setattr(cli.sys, "stdin", io.StringIO("piped text\n"))
    assert run(engine, "send") == 0
    assert sink.list_delivered()[0].body == "piped text"


def test_missing_message(engine, monkeypatch, capsys):
    monkeypatch.setattr(cli.sys, "stdin", io.StringIO(""))
    assert run(engine, "send") == cli.EXIT_USAGE
    assert "message is required" in capsys.readouterr().err


def test_blank_message_fails_validation(engine, sink):
    assert run(engine, "send", "--message", "   ") == cli.EXIT_USAGE
    assert sink.list_delivered() == []


def test_bad_open_url(engine, capsys):
    assert run(engine, "send", "--message", "x", "--open", "nope") == cli.EXIT_USAGE
    assert "nope" in capsys.readouterr().err


def test_bad_interruption_level(engine):
    assert run(engine, "send", "--message", "x", "--interruption-level", "loud") == cli.EXIT_USAGE


def test_interruption_level(engine, sink):
    assert run(engine, "send", "--message", "x", "--interruption-level", "timeSensitive") == 0
    identifier = sink.list_delivered()[0].id
    assert sink.content_for(identifier).interruption_level is InterruptionLevel.TIME_SENSITIVE


def test_not_authorized_exit_code(capsys):
    sink = MemorySink(authorization=AuthorizationStatus.DENIED)
    engine = LocalEngine(SessionManager(sink, delivery_delay=0.0))
    assert run(engine, "send", "--message", "x") == cli.EXIT_NOT_AUTHORIZED
    assert "not authorized" in capsys.readouterr().err


def test_sink_failure_exit_code(engine, sink):
    sink.fail_next_submit = "gone"
    assert run(engine, "send", "--message", "x") == cli.EXIT_ERROR


def test_no_command_prints_help(engine, capsys):
    assert run(engine) == cli.EXIT_USAGE
    assert "usage" in capsys.readouterr().out


def test_unreachable_shim(short_tmp, capsys):
    code = cli.main(["--socket", str(short_tmp / "none.sock"), "list"])
    assert code == cli.EXIT_ERROR
    assert "Failed to reach tn-shim" in capsys.readouterr().err


def test_over_socket(server, sink, capsys):
    engine = RemoteEngine(server.socket_path)
    assert run(engine, "send", "--message", "remote", "--group", "g") == 0
    assert run(engine, "list") == 0
    assert "remote" in capsys.readouterr().out


def test_socket_path_from_environment(monkeypatch):
    monkeypatch.setenv("TN_SHIM_SOCKET", "/tmp/other.sock")
    assert str(cli.default_socket_path()) == "/tmp/other.sock"


def test_read_message_prefers_flag():
    args = Namespace(message="flag")
    assert cli.read_message(args, io.StringIO("stdin")) == "flag"


def test_engine_requires_dispatch():
    with pytest.raises(TypeError):
        Engine()
