"""
CLI entry point for crd-purge.

Parses options, configures logging, then runs purge() and prints the run
summary. Exits 1 only when the run could not start or discovery failed;
per-CRD and per-instance failures are logged and summarised.
"""

from __future__ import annotations

import asyncio
import sys
from typing import Optional

import click
import structlog

from .config import DEFAULT_CALL_TIMEOUT, DEFAULT_DEADLINE, SCOPE_LABELS, Settings
from .errors import PurgeError
from .logging_config import setup_logging
from .orchestrator import purge

logger = structlog.get_logger(__name__)

# Shown at the bottom of crd-purge --help / crd-purge -h
EPILOG = """
Examples:

  crd-purge                          # Remove host and member operator CRDs
  crd-purge --mode member            # Only member operator CRDs
  crd-purge --remove-webhooks        # Also delete webhooks that block teardown
  crd-purge --kubeconfig ~/.kube/c2  # Use another kubeconfig
  crd-purge --parallel 4             # Tear down up to 4 CRDs at once

Deletions are not reversible. Run against the intended cluster only.
"""


@click.command(
    context_settings={"help_option_names": ["-h", "--help"]},
    epilog=EPILOG,
)
@click.option(
    "-m",
    "--mode",
    type=click.Choice(list(SCOPE_LABELS), case_sensitive=False),
    default="both",
    show_default=True,
    help="Which operator's CRDs to remove",
)
@click.option(
    "--remove-webhooks",
    is_flag=True,
    help="Delete admission webhook configurations that block teardown first",
)
@click.option(
    "--kubeconfig",
    metavar="PATH",
    help="Kubeconfig to use instead of the default",
)
@click.option(
    "--context",
    metavar="NAME",
    help="Kubeconfig context to use",
)
@click.option(
    "--timeout",
    "call_timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=DEFAULT_CALL_TIMEOUT,
    show_default=True,
    help="Seconds allowed for each API call",
)
@click.option(
    "--deadline",
    type=click.FloatRange(min=0),
    default=DEFAULT_DEADLINE,
    show_default=True,
    help="Seconds allowed for the whole run (0 disables)",
)
@click.option(
    "--parallel",
    type=click.IntRange(min=1),
    default=1,
    show_default=True,
    help="Number of CRDs processed concurrently",
)
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    help="Debug logging (kubectl calls, resolved versions)",
)
def main(
    mode: str,
    remove_webhooks: bool,
    kubeconfig: Optional[str],
    context: Optional[str],
    call_timeout: float,
    deadline: float,
    parallel: int,
    verbose: bool,
) -> None:
    """
    Strip the toolchain finalizer from every custom resource owned by the
    host and/or member operator, then delete their CRDs.
    """
    setup_logging(verbose)
    settings = Settings(
        kubeconfig=kubeconfig or None,
        context=context or None,
        call_timeout=call_timeout,
        deadline=deadline or None,
    )

    try:
        summary = asyncio.run(purge(settings, mode.lower(), remove_webhooks, parallel))
    except PurgeError as exc:
        logger.error("run.aborted", error=str(exc))
        click.echo(f"crd-purge: {exc}", err=True)
        sys.exit(1)

    click.echo()
    click.echo(click.style("CRD teardown summary", bold=True))
    click.echo("----------------------------------------")
    click.echo(summary.render())


if __name__ == "__main__":
    main()
