"""Tests for settings loading, identities and the CLI startup path."""

from __future__ import annotations

import logging
import socket

import pytest

from conftest import OUR_AUTHOR
from ledger_exporter import cli
from ledger_exporter.config import ConfigurationError, ListenAddress, load_settings, parse_listen_addr
from ledger_exporter.ingest import OurAddresses


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """Isolate settings from the developer's environment and .env file."""

    for name in ("LISTEN_ADDR", "OUR_ADDRESSES", "LEDGER_TAIL_BIN", "LEDGER_TAIL_ARGS", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Undo the JSON handler and level the CLI installs on the root logger."""

    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("127.0.0.1:9100", ListenAddress("127.0.0.1", 9100)),
        ("localhost:8080", ListenAddress("localhost", 8080)),
        (":9100", ListenAddress("0.0.0.0", 9100)),
        ("[::1]:9100", ListenAddress("::1", 9100)),
    ],
)
def test_parse_listen_addr(value: str, expected: ListenAddress) -> None:
    assert parse_listen_addr(value) == expected


@pytest.mark.parametrize("value", ["9100", "host:", "host:port", "::1:9100", "[::1]9100", "host:70000", ""])
def test_parse_listen_addr_rejects_garbage(value: str) -> None:
    with pytest.raises(ValueError):
        parse_listen_addr(value)


def test_listen_address_str_round_trips_ipv6() -> None:
    assert str(ListenAddress("::1", 9100)) == "[::1]:9100"
    assert str(ListenAddress("0.0.0.0", 9100)) == "0.0.0.0:9100"


def test_missing_listen_addr_is_configuration_error() -> None:
    with pytest.raises(ConfigurationError):
        load_settings()


def test_invalid_listen_addr_is_configuration_error() -> None:
    with pytest.raises(ConfigurationError):
        load_settings(listen_addr="not-an-address")


def test_settings_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LISTEN_ADDR", "0.0.0.0:9100")
    monkeypatch.setenv("OUR_ADDRESSES", f'["{OUR_AUTHOR}:chorus1"]')
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = load_settings()

    assert settings.listen_address == ListenAddress("0.0.0.0", 9100)
    assert settings.our_addresses == [f"{OUR_AUTHOR}:chorus1"]
    assert settings.log_level == "DEBUG"
    assert settings.ledger_tail_bin is None


def test_overrides_win_over_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LISTEN_ADDR", "0.0.0.0:9100")

    settings = load_settings(listen_addr="127.0.0.1:9200", our_addresses=None)

    assert settings.listen_address == ListenAddress("127.0.0.1", 9200)
    assert settings.our_addresses == []


def test_non_json_our_addresses_env_is_configuration_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LISTEN_ADDR", ":9100")
    monkeypatch.setenv("OUR_ADDRESSES", "aa,bb")

    with pytest.raises(ConfigurationError):
        load_settings()


def test_main_reports_malformed_env_and_exits(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    monkeypatch.setenv("OUR_ADDRESSES", "aa,bb")

    with caplog.at_level(logging.ERROR, logger="ledger_exporter.cli"):
        code = cli.main(["--listen-addr", "127.0.0.1:0"])

    assert code == cli.EXIT_CONFIG_ERROR
    assert any(record.getMessage() == "config.invalid" for record in caplog.records)


def test_blank_our_address_is_configuration_error() -> None:
    with pytest.raises(ConfigurationError):
        load_settings(listen_addr=":9100", our_addresses=[":name"])


def test_our_addresses_membership_is_case_insensitive() -> None:
    ours = OurAddresses([f"0x{OUR_AUTHOR.upper()}:chorus1", "abcd"])

    assert OUR_AUTHOR in ours
    assert "ABCD" in ours
    assert "abce" not in ours
    assert ours.name_for(OUR_AUTHOR) == "chorus1"
    assert ours.name_for("abcd") == ""
    assert len(ours) == 2


def test_identify_keeps_author_as_given() -> None:
    identity = OurAddresses(["aa"]).identify("AA", "node.example")

    assert identity.labels() == {"author": "AA", "author_dns": "node.example", "operated_by_us": "true"}


def test_parse_args_collects_repeated_addresses() -> None:
    args = cli.parse_args(
        [
            "--listen-addr",
            ":9100",
            "--our-addresses",
            "aa",
            "bb",
            "--known-identity",
            "cc:chorus1",
            "--ledger-tail-args=--ledger-path=/opt/ledger --forkpoint-path=/opt/forkpoint.toml",
        ]
    )

    assert args.listen_addr == ":9100"
    assert args.our_addresses == ["aa", "bb", "cc:chorus1"]
    assert args.ledger_tail_args == "--ledger-path=/opt/ledger --forkpoint-path=/opt/forkpoint.toml"


def test_main_exits_on_missing_listen_addr() -> None:
    assert cli.main([]) == cli.EXIT_CONFIG_ERROR


def test_main_exits_on_bind_failure() -> None:
    holder = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    holder.bind(("127.0.0.1", 0))
    holder.listen()
    port = holder.getsockname()[1]
    try:
        assert cli.main(["--listen-addr", f"127.0.0.1:{port}"]) == cli.EXIT_STARTUP_ERROR
    finally:
        holder.close()


def test_main_exits_when_ledger_tail_cannot_start(tmp_path) -> None:
    missing = tmp_path / "monad-ledger-tail"

    code = cli.main(["--listen-addr", "127.0.0.1:0", "--ledger-tail-bin", str(missing)])

    assert code == cli.EXIT_STARTUP_ERROR
