"""AppContext — shared Click context for all commands.

Created once by the root CLI group and flows to all subcommands via
``@click.pass_obj``.  Provides lazy Catalog initialization and
centralized result emission (stdout/stderr routing + exit codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from svcmap.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from svcmap.config.settings import SvcmapSettings
    from svcmap.infrastructure.catalog import Catalog
    from svcmap.services.result import ServiceResult


class AppContext:
    """Shared context flowing through Click's command hierarchy.

    The catalog is lazily opened on first use so ``--help`` and
    ``--version`` never touch the database.
    """

    def __init__(self, settings: SvcmapSettings) -> None:
        self.settings = settings
        self._catalog: Catalog | None = None

        from svcmap.config.logging import configure_logging

        configure_logging(
            verbose=settings.verbose,
            log_json=settings.log_json,
            catalog_name=settings.catalog.name,
        )

        if settings.verbose:
            from svcmap.services.telemetry import enable_telemetry

            enable_telemetry()

    @property
    def catalog(self) -> Catalog:
        """The catalog instance (opened lazily on first access)."""
        if self._catalog is None:
            from svcmap.infrastructure.catalog import Catalog

            self._catalog = Catalog(self.settings)
        return self._catalog

    def close(self) -> None:
        """Dispose the catalog engine if one was opened."""
        if self._catalog is not None:
            self._catalog.close()
            self._catalog = None

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success (``result.ok``): writes to stdout, returns normally.
          Warnings go to stderr so they don't pollute piped output.
        * Failure: writes to stderr, exits with code 1.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
            # In JSON mode, warnings are already in the serialized payload.
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
