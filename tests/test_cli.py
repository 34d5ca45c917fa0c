import json
import logging
import os
import stat
from pathlib import Path
from urllib.parse import parse_qs

import pytest

from smsbroadcast import cli, sms_api_caller


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("SMSBROADCAST_CONFIG", "SMSBROADCAST_USERNAME",
                 "SMSBROADCAST_PASSWORD", "SMSBROADCAST_SENDER", "LOG_FILE"):
        monkeypatch.delenv(name, raising=False)

    # main() installs handlers on the root logger bound to captured streams
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


class FakeResponse:
    def __init__(self, text):
        self.text = text

    def raise_for_status(self):
        pass


class FakeSession:
    def __init__(self, text):
        self.text = text
        self.bodies = []

    def post(self, url, data=None, headers=None, **_):
        self.bodies.append(parse_qs(data, keep_blank_values=True))
        return FakeResponse(self.text)

    def close(self):
        pass


def install_session(monkeypatch, text):
    session = FakeSession(text)
    monkeypatch.setattr(sms_api_caller.requests, "Session", lambda: session)
    return session


def init_config(tmp_path: Path, *extra) -> Path:
    rc = cli.main(["init", "--config-dir", str(tmp_path), "--username", "user", "--password", "secret", *extra])
    assert rc == 0
    return tmp_path / "config.json"


def test_init_writes_private_config(tmp_path: Path):
    path = init_config(tmp_path, "--sender-name", "Shop", "--to-number", "0411111111")

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data == {"username": "user", "password": "secret", "sender_name": "Shop", "to_number": "0411111111"}
    if os.name == "posix":
        assert stat.S_IMODE(path.stat().st_mode) == 0o600


def test_init_refuses_to_overwrite(tmp_path: Path):
    init_config(tmp_path)
    rc = cli.main(["init", "--config-dir", str(tmp_path), "--username", "other", "--password", "x"])
    assert rc == 1

    rc = cli.main(["init", "--config-dir", str(tmp_path), "--username", "other", "--password", "x", "--force"])
    assert rc == 0
    assert json.loads((tmp_path / "config.json").read_text())["username"] == "other"


def test_send_prints_results(tmp_path: Path, monkeypatch, capsys):
    path = init_config(tmp_path)
    capsys.readouterr()
    session = install_session(monkeypatch, "OK:61411111111:REF1\nOK:61422222222:REF2\n")

    rc = cli.main(["send", "Server is down", "--to", "0411111111", "--to", "0422222222",
                   "--from", "Ops", "--config", str(path)])

    assert rc == 0
    out = capsys.readouterr().out.splitlines()
    assert out == ["OK 61411111111 REF1", "OK 61422222222 REF2"]
    body = session.bodies[0]
    assert body["to"] == ["0411111111,0422222222"]
    assert body["from"] == ["Ops"]
    assert body["maxsplit"] == ["1"]


def test_send_uses_config_recipient_and_reports_bad_numbers(tmp_path: Path, monkeypatch, capsys):
    path = init_config(tmp_path, "--to-number", "0400")
    capsys.readouterr()
    session = install_session(monkeypatch, "BAD:0400:Invalid Number\n")

    rc = cli.main(["send", "hello", "--config", str(path), "--verbose"])

    assert rc == 1
    assert session.bodies[0]["to"] == ["0400"]
    printed = json.loads(capsys.readouterr().out)
    assert printed == [{"status": "BAD", "receiving_number": "0400", "response": "Invalid Number"}]


def test_send_without_recipients_fails_before_request(tmp_path: Path, monkeypatch, capsys):
    path = init_config(tmp_path)
    capsys.readouterr()
    session = install_session(monkeypatch, "OK:61411111111:REF1\n")

    rc = cli.main(["send", "hello", "--config", str(path)])

    assert rc == 1
    assert session.bodies == []
    assert "No valid recipients" in capsys.readouterr().err


def test_balance(tmp_path: Path, monkeypatch, capsys):
    path = init_config(tmp_path)
    capsys.readouterr()
    install_session(monkeypatch, "OK:42\n")

    assert cli.main(["balance", "--config", str(path)]) == 0
    assert capsys.readouterr().out.strip() == "42"


def test_balance_gateway_error(tmp_path: Path, monkeypatch, capsys):
    path = init_config(tmp_path)
    capsys.readouterr()
    install_session(monkeypatch, "ERROR:Invalid username\n")

    assert cli.main(["balance", "--config", str(path)]) == 1
    assert "Invalid username" in capsys.readouterr().err
