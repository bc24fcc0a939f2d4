"""Tests for jarseal.ui.cli and jarseal.ui.cli.sign -- CLI interface functions."""

from __future__ import annotations

import argparse
import subprocess
import sys
from unittest.mock import patch

import pytest

from jarseal.config._storage import load_config, load_raw_config
from jarseal.core.detection import is_signed
from jarseal.errors import SigningError

ENTRIES = [("org/A.class", b"a")]


def _sign_args(files, **overrides) -> argparse.Namespace:
    values = {
        "files": files,
        "url": None,
        "timeout": None,
        "http_proxy": None,
        "https_proxy": None,
        "keystore": None,
        "storepass_file": None,
        "alias": None,
        "tsa": None,
        "jarsigner": None,
        "retry_limit": None,
        "retry_wait": 0,
        "continue_on_fail": False,
        "exclude_inner_jars": False,
        "digest_alg": None,
        "resigning": None,
        "inner_workers": None,
        "skip": False,
        "dry_run": False,
    }
    values.update(overrides)
    return argparse.Namespace(**values)


def _run_main(*argv):
    from jarseal.ui.cli import main

    with patch("sys.argv", ["jarseal", *argv]):
        main()


# ── cmd_sign ──────────────────────────────────────────────────────────


def test_cmd_sign_signs_files(make_jar, fake_primitive, capsys):
    from jarseal.ui.cli.sign import cmd_sign

    jar = make_jar("app.jar", ENTRIES)
    with patch("jarseal.ui.cli.sign.make_primitive", return_value=fake_primitive):
        cmd_sign(_sign_args([jar]))

    out = capsys.readouterr().out
    assert "OK" in out
    assert "Done: 1 signed, 0 failed, 0 skipped." in out
    assert is_signed(jar)


def test_cmd_sign_failure_exits_1_with_diagnostic(make_jar, fake_primitive, capsys):
    from jarseal.ui.cli.sign import cmd_sign

    first = make_jar("a.jar", ENTRIES)
    second = make_jar("b.jar", ENTRIES)
    fake_primitive.errors = [SigningError("HTTP 403 Forbidden", output="line one\nkey expired")]

    with (
        patch("jarseal.ui.cli.sign.make_primitive", return_value=fake_primitive),
        pytest.raises(SystemExit) as exc_info,
    ):
        cmd_sign(_sign_args([first, second]))

    assert exc_info.value.code == 1
    err = capsys.readouterr().err
    assert "FAILED" in err
    assert "| key expired" in err
    assert "Aborted" in err
    assert "1 not attempted" in err


def test_cmd_sign_continue_on_fail_reports_all(make_jar, fake_primitive, capsys):
    from jarseal.ui.cli.sign import cmd_sign

    first = make_jar("a.jar", ENTRIES)
    second = make_jar("b.jar", ENTRIES)
    fake_primitive.errors = [SigningError("HTTP 403 Forbidden")]

    with (
        patch("jarseal.ui.cli.sign.make_primitive", return_value=fake_primitive),
        pytest.raises(SystemExit) as exc_info,
    ):
        cmd_sign(_sign_args([first, second], continue_on_fail=True))

    assert exc_info.value.code == 1
    captured = capsys.readouterr()
    assert "Done with failures: 1 signed, 1 failed, 0 skipped." in captured.err
    assert is_signed(second)


def test_cmd_sign_nested_failure_exits_1(make_jar, jar_bytes, fake_primitive, capsys):
    from jarseal.ui.cli.sign import cmd_sign

    inner = jar_bytes([("Inner.class", b"i")])
    jar = make_jar("app.jar", [("Outer.class", b"o"), ("lib/inner.jar", inner)])
    # The nested archive is sent first
    fake_primitive.errors = [SigningError("HTTP 403 Forbidden")]

    with (
        patch("jarseal.ui.cli.sign.make_primitive", return_value=fake_primitive),
        pytest.raises(SystemExit) as exc_info,
    ):
        cmd_sign(_sign_args([jar], continue_on_fail=True))

    assert exc_info.value.code == 1
    captured = capsys.readouterr()
    assert "Done with failures: 1 signed, 0 failed, 0 skipped, 1 nested failed." in captured.err
    assert is_signed(jar)


def test_cmd_sign_dry_run(make_jar, tmp_path, fake_primitive, capsys):
    from jarseal.ui.cli.sign import cmd_sign

    jar = make_jar("app.jar", ENTRIES)
    pom = tmp_path / "app.pom"
    pom.write_text("<project/>")

    with patch("jarseal.ui.cli.sign.make_primitive", return_value=fake_primitive):
        cmd_sign(_sign_args([jar, pom], dry_run=True))

    out = capsys.readouterr().out
    assert "Would sign" in out
    assert "Would skip: app.pom" in out
    assert fake_primitive.call_count == 0
    assert not is_signed(jar)


def test_cmd_sign_skip(make_jar, fake_primitive, capsys):
    from jarseal.ui.cli.sign import cmd_sign

    jar = make_jar("app.jar", ENTRIES)
    with patch("jarseal.ui.cli.sign.make_primitive", return_value=fake_primitive):
        cmd_sign(_sign_args([jar], skip=True))

    assert "Signing skipped." in capsys.readouterr().out
    assert fake_primitive.call_count == 0


def test_cmd_sign_exclude_inner_jars(make_jar, jar_bytes, fake_primitive):
    from jarseal.ui.cli.sign import cmd_sign

    inner = jar_bytes([("Inner.class", b"i")])
    jar = make_jar("app.jar", [("Outer.class", b"o"), ("lib/inner.jar", inner)])

    with patch("jarseal.ui.cli.sign.make_primitive", return_value=fake_primitive):
        cmd_sign(_sign_args([jar], exclude_inner_jars=True))

    assert fake_primitive.call_count == 1


def test_cmd_sign_config_error_exits_2(make_jar, capsys):
    from jarseal.ui.cli.sign import cmd_sign

    jar = make_jar("app.jar", ENTRIES)
    with pytest.raises(SystemExit) as exc_info:
        cmd_sign(_sign_args([jar], url="ftp://nowhere"))

    assert exc_info.value.code == 2
    assert "Error:" in capsys.readouterr().err


def test_cmd_sign_incomplete_keystore_exits_2(make_jar, tmp_path):
    from jarseal.ui.cli.sign import cmd_sign

    jar = make_jar("app.jar", ENTRIES)
    with pytest.raises(SystemExit) as exc_info:
        cmd_sign(_sign_args([jar], keystore=tmp_path / "ks.p12"))

    assert exc_info.value.code == 2


# ── check ─────────────────────────────────────────────────────────────


def test_check_signed_and_unsigned(make_jar, capsys):
    signed = make_jar("signed.jar", ENTRIES, signed={"org/A.class"})
    unsigned = make_jar("plain.jar", ENTRIES)

    with pytest.raises(SystemExit) as exc_info:
        _run_main("check", str(signed), str(unsigned))

    assert exc_info.value.code == 1
    out = capsys.readouterr().out
    assert "SIGNED  " in out
    assert "UNSIGNED" in out
    assert "first entry org/A.class" in out


def test_check_all_signed_exits_0(make_jar, capsys):
    signed = make_jar("signed.jar", ENTRIES, signed={"org/A.class"})
    _run_main("check", str(signed))
    assert "SIGNED" in capsys.readouterr().out


def test_check_corrupt_archive(tmp_path, capsys):
    broken = tmp_path / "broken.jar"
    broken.write_bytes(b"nope")

    with pytest.raises(SystemExit) as exc_info:
        _run_main("check", str(broken))

    assert exc_info.value.code == 1
    assert "ERROR" in capsys.readouterr().err


# ── config ────────────────────────────────────────────────────────────


def test_config_set_and_show(capsys):
    _run_main("config", "set", "retry_limit", "7")
    _run_main("config", "set", "continue_on_fail", "yes")
    _run_main("config", "set", "url", "https://signer.example.org/sign")
    assert load_config() == {
        "retry_limit": 7,
        "continue_on_fail": True,
        "url": "https://signer.example.org/sign",
    }

    capsys.readouterr()
    _run_main("config")
    out = capsys.readouterr().out
    assert "https://signer.example.org/sign" in out
    assert "Retry limit:      7" in out
    assert "Continue on fail: True" in out


def test_config_unset_and_reset(capsys):
    _run_main("config", "set", "retry_limit", "7")
    _run_main("config", "set", "retry_wait", "1")
    _run_main("config", "unset", "retry_limit")
    assert load_config() == {"retry_wait": 1}

    _run_main("config", "reset")
    assert load_raw_config() == {}
    assert "All configuration cleared." in capsys.readouterr().out


@pytest.mark.parametrize(
    ("key", "value"),
    [("retry_limit", "many"), ("continue_on_fail", "perhaps"), ("password", "x")],
)
def test_config_set_invalid_exits_2(capsys, key, value):
    with pytest.raises(SystemExit) as exc_info:
        _run_main("config", "set", key, value)
    assert exc_info.value.code == 2
    assert "Error:" in capsys.readouterr().err


# ── main ──────────────────────────────────────────────────────────────


def test_main_without_command_prints_help(capsys):
    with pytest.raises(SystemExit) as exc_info:
        _run_main()
    assert exc_info.value.code == 1
    assert "usage:" in capsys.readouterr().out.lower()


def test_main_module_invokes_cli():
    """python -m jarseal --help should exit 0 and print usage."""
    result = subprocess.run(
        [sys.executable, "-m", "jarseal", "--help"],
        capture_output=True,
        text=True,
        timeout=10,
    )
    assert result.returncode == 0
    assert "usage:" in result.stdout.lower()
    assert "JARSEAL_URL" in result.stdout


def test_main_module_version():
    """python -m jarseal --version should print version."""
    result = subprocess.run(
        [sys.executable, "-m", "jarseal", "--version"],
        capture_output=True,
        text=True,
        timeout=10,
    )
    assert result.returncode == 0
    assert "jarseal" in result.stdout.lower()


def test_main_module_sign_help():
    """python -m jarseal sign --help should list the signing options."""
    result = subprocess.run(
        [sys.executable, "-m", "jarseal", "sign", "--help"],
        capture_output=True,
        text=True,
        timeout=10,
    )
    assert result.returncode == 0
    assert "--continue-on-fail" in result.stdout
    assert "--resigning" in result.stdout
