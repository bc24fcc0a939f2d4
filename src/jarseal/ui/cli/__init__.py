"""
Command-line interface for jarseal.

Argument parsing, dispatch, and non-signing subcommands.
Signing logic lives in ``sign``.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from ...config import CONFIG_FILE, get_server_config, get_signing_config, reset_config, save_settings
from ...constants import ENV_CONTINUE_ON_FAIL, ENV_RETRY_LIMIT, ENV_RETRY_WAIT, ENV_TIMEOUT, ENV_URL, __version__
from ...core.archive import open_archive
from ...core.detection import first_entry, get_code_signers
from ...errors import ConfigurationError, JarsealError
from .sign import EXIT_CONFIG, EXIT_FAILED, add_sign_parser, cmd_sign

# Settings accepted by `jarseal config set`, with their value parsers
_INT_SETTINGS = ("timeout", "retry_limit", "retry_wait", "max_depth")
_BOOL_SETTINGS = ("continue_on_fail",)
_STR_SETTINGS = ("url", "digest_algorithm", "resigning")


def _cmd_check(args: argparse.Namespace) -> None:
    """Report whether each archive is signed, judged by its first entry."""
    unsigned = 0
    for path in args.files:
        try:
            with open_archive(path) as archive:
                entry = first_entry(archive)
                signers = get_code_signers(archive, entry.filename) if entry is not None else ()
        except (JarsealError, OSError) as e:
            print(f"  ERROR   {path}: {e}", file=sys.stderr)
            unsigned += 1
            continue

        if signers:
            names = ", ".join(s.display_name for s in signers)
            print(f"  SIGNED  {path} (first entry {entry.filename}, by {names})")  # type: ignore[union-attr]  # signers imply an entry
        else:
            detail = f"first entry {entry.filename}" if entry is not None else "no entries"
            print(f"  UNSIGNED {path} ({detail})")
            unsigned += 1

    if unsigned:
        sys.exit(EXIT_FAILED)


def _parse_setting(key: str, raw: str) -> object:
    if key in _INT_SETTINGS:
        try:
            return int(raw)
        except ValueError:
            raise ConfigurationError(f"{key} must be an integer, got {raw!r}") from None
    if key in _BOOL_SETTINGS:
        lowered = raw.strip().lower()
        if lowered in ("1", "true", "yes", "on"):
            return True
        if lowered in ("0", "false", "no", "off"):
            return False
        raise ConfigurationError(f"{key} must be true or false, got {raw!r}")
    if key in _STR_SETTINGS:
        return raw
    known = ", ".join(_INT_SETTINGS + _BOOL_SETTINGS + _STR_SETTINGS)
    raise ConfigurationError(f"Unknown setting {key!r}. Available: {known}")


def _cmd_config(args: argparse.Namespace) -> None:
    """Show, change, or clear saved settings."""
    try:
        if args.config_command == "set":
            save_settings(**{args.key: _parse_setting(args.key, args.value)})
            print(f"Saved {args.key} to {CONFIG_FILE}")
        elif args.config_command == "unset":
            save_settings(**{args.key: None})
            print(f"Removed {args.key} from {CONFIG_FILE}")
        elif args.config_command == "reset":
            reset_config()
            print("All configuration cleared.")
        else:
            url, timeout = get_server_config()
            config = get_signing_config()
            print(f"Config file:      {CONFIG_FILE}")
            print(f"Signing service:  {url}")
            print(f"Timeout:          {timeout}s")
            print(f"Retry limit:      {config.retry_limit}")
            print(f"Retry wait:       {config.retry_wait}s")
            print(f"Continue on fail: {config.continue_on_fail}")
            print(f"Nested archives:  {'sign' if config.max_depth else 'leave alone'}")
            print(f"Digest algorithm: {config.digest_algorithm or '(signer default)'}")
            print(f"Already signed:   {config.resigning}")
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(EXIT_CONFIG)


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="jarseal",
        description="Sign JAR files through a remote signing service or jarsigner.",
        epilog=(
            "Environment variables:\n"
            f"  {ENV_URL:<25} Signing service URL\n"
            f"  {ENV_TIMEOUT:<25} Timeout in seconds\n"
            f"  {ENV_RETRY_LIMIT:<25} Retries after a failed attempt\n"
            f"  {ENV_RETRY_WAIT:<25} Seconds between attempts\n"
            f"  {ENV_CONTINUE_ON_FAIL:<25} Keep going after failures (true/false)\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-V", "--version", action="version", version=f"jarseal {__version__}")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="More output (-vv for debug)")

    sub = parser.add_subparsers(dest="command", help="Available commands")

    # sign
    add_sign_parser(sub)

    # check
    p_check = sub.add_parser("check", help="Report whether JAR files are already signed")
    p_check.add_argument("files", nargs="+", type=Path, help="JAR files to check")

    # config
    p_config = sub.add_parser("config", help="Show or change saved settings")
    config_sub = p_config.add_subparsers(dest="config_command")
    config_sub.add_parser("show", help="Show the effective settings (default)")
    p_set = config_sub.add_parser("set", help="Save a setting")
    p_set.add_argument("key", help="Setting name, e.g. retry_limit")
    p_set.add_argument("value", help="Setting value")
    p_unset = config_sub.add_parser("unset", help="Remove a saved setting")
    p_unset.add_argument("key", help="Setting name")
    config_sub.add_parser("reset", help="Clear all saved settings")

    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG if args.verbose > 1 else logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    if args.command == "sign":
        cmd_sign(args)
    elif args.command == "check":
        _cmd_check(args)
    elif args.command == "config":
        _cmd_config(args)
    else:
        parser.print_help()
        sys.exit(EXIT_FAILED)


if __name__ == "__main__":
    main()
