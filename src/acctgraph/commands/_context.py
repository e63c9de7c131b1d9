"""AppContext: shared Click context for all commands.

Created once by the root group and passed to subcommands via
``@click.pass_obj``. Opens the workspace lazily so ``--help`` and
``--version`` never touch the database, and centralizes result emission
(stdout/stderr routing plus exit codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from acctgraph.config.logging import configure_logging
from acctgraph.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from acctgraph.config.settings import AcgSettings
    from acctgraph.infrastructure.registry import Registry
    from acctgraph.services.result import ServiceResult


class AppContext:
    """Per-invocation state: settings, the lazily opened registry, output."""

    def __init__(self, settings: AcgSettings) -> None:
        self.settings = settings
        self._registry: Registry | None = None

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)
        if settings.verbose:
            from acctgraph.services.telemetry import enable_telemetry

            enable_telemetry()

    @property
    def registry(self) -> Registry:
        """The workspace registry (opened on first access)."""
        if self._registry is None:
            from acctgraph.infrastructure.registry import Registry

            self._registry = Registry(self.settings)
        return self._registry

    def close(self) -> None:
        if self._registry is not None:
            self._registry.close()
            self._registry = None
        if self.settings.verbose:
            from acctgraph.services.telemetry import disable_telemetry

            disable_telemetry()

    def emit(self, result: ServiceResult) -> None:
        """Write a result with the right stream and exit code.

        * ``ok``: stdout; warnings go to stderr (they are already part of
          the payload in JSON mode).
        * failure: stderr and exit code 1.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
