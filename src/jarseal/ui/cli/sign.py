"""Signing command handler for jarseal CLI."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from ...api import make_primitive
from ...config import get_signing_config
from ...constants import __version__
from ...core.models import Artifact
from ...core.orchestrator import SigningOrchestrator
from ...errors import ConfigurationError
from ..helpers import file_size, format_size_kb, print_result

EXIT_FAILED = 1
EXIT_CONFIG = 2


def _dry_run(artifacts: list[Artifact]) -> None:
    for artifact in artifacts:
        if not artifact.is_archive:
            print(f"  Would skip: {artifact.path.name} (not an archive)")
            continue
        size = file_size(artifact.path)
        if size is None:
            print(f"  Would sign: {artifact.path} (not readable)")
        else:
            print(f"  Would sign: {artifact.path} ({format_size_kb(size)})")


def cmd_sign(args: argparse.Namespace) -> None:
    """Handle the 'sign' subcommand."""
    files = args.files
    if not files:
        print("Error: no input files specified.", file=sys.stderr)
        sys.exit(EXIT_FAILED)

    try:
        config = get_signing_config(
            retry_limit=args.retry_limit,
            retry_wait=args.retry_wait,
            continue_on_fail=args.continue_on_fail or None,
            max_depth=0 if args.exclude_inner_jars else None,
            digest_algorithm=args.digest_alg,
            resigning=args.resigning,
            inner_workers=args.inner_workers,
        )
        primitive = make_primitive(
            url=args.url,
            timeout=args.timeout,
            http_proxy=args.http_proxy,
            https_proxy=args.https_proxy,
            keystore=args.keystore,
            keystore_password_file=args.storepass_file,
            alias=args.alias,
            tsa=args.tsa,
            jarsigner=args.jarsigner,
        )
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(EXIT_CONFIG)

    artifacts = [Artifact.from_path(f) for f in files]

    print(f"jarseal v{__version__}")
    print(f"Signer: {primitive!r}")
    print(
        f"Retries: {config.retry_limit} (wait {config.retry_wait}s), "
        f"nested archives: {'yes' if config.max_depth else 'no'}, "
        f"already signed: {config.resigning}, "
        f"on failure: {'continue' if config.continue_on_fail else 'stop'}"
    )
    print()

    if args.dry_run:
        _dry_run(artifacts)
        print()
        print("Dry run complete: nothing was signed.")
        return

    orchestrator = SigningOrchestrator(primitive, config)
    batch = orchestrator.run(artifacts, skip=args.skip)
    if batch.skipped_run:
        print("Signing skipped.")
        return

    for result in batch.results:
        print_result(result)

    print()
    summary = f"{len(batch.succeeded)} signed, {len(batch.failures)} failed, {len(batch.skipped)} skipped"
    if batch.nested_failures:
        summary += f", {len(batch.nested_failures)} nested failed"
    if batch.ok:
        print(f"Done: {summary}.")
        return

    if batch.verdict.value == "aborted":
        not_reached = len(artifacts) - len(batch.results)
        print(f"Aborted: {summary}, {not_reached} not attempted.", file=sys.stderr)
    else:
        print(f"Done with failures: {summary}.", file=sys.stderr)
    sys.exit(EXIT_FAILED)


def add_sign_parser(sub: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    """Register the 'sign' subcommand."""
    p_sign = sub.add_parser("sign", help="Sign JAR file(s) in place")
    p_sign.add_argument("files", nargs="+", type=Path, help="Files to sign (non-.jar files are skipped)")

    service = p_sign.add_argument_group("signing service")
    service.add_argument("--url", default=None, help="Signing service URL")
    service.add_argument("--timeout", type=int, default=None, help="Timeout in seconds")
    service.add_argument("--http-proxy", default=None, metavar="HOST:PORT", help="Proxy for http")
    service.add_argument("--https-proxy", default=None, metavar="HOST:PORT", help="Proxy for https")

    local = p_sign.add_argument_group("local jarsigner (used when --keystore is given)")
    local.add_argument("--keystore", type=Path, default=None, help="Keystore file")
    local.add_argument("--storepass-file", type=Path, default=None, help="File holding the keystore password")
    local.add_argument("--alias", default=None, help="Key alias in the keystore")
    local.add_argument("--tsa", default=None, help="Timestamping authority URL")
    local.add_argument("--jarsigner", default=None, help="jarsigner executable (default: from PATH)")

    behavior = p_sign.add_argument_group("behavior")
    behavior.add_argument("--retry-limit", type=int, default=None, help="Retries after a failed attempt (default: 3)")
    behavior.add_argument("--retry-wait", type=int, default=None, help="Seconds between attempts (default: 30)")
    behavior.add_argument(
        "--continue-on-fail",
        action="store_true",
        default=False,
        help="Keep signing after a failure and report all failures at the end",
    )
    behavior.add_argument(
        "--exclude-inner-jars",
        action="store_true",
        default=False,
        help="Do not sign archives nested inside the given archives",
    )
    behavior.add_argument("--digest-alg", default=None, help="Digest algorithm, e.g. SHA-256")
    behavior.add_argument(
        "--resigning",
        choices=["resign", "reject", "ignore"],
        default=None,
        help="What to do with already signed archives (default: resign)",
    )
    behavior.add_argument("--inner-workers", type=int, default=None, help="Nested archives signed concurrently")
    behavior.add_argument("--skip", action="store_true", default=False, help="Skip signing entirely")
    behavior.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Show what would be done without actually signing",
    )
