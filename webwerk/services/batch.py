"""Runs one operation over every resolved site."""

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, Mapping, Optional, Type

from ..errors import ConfigurationError, SiteOperationError
from ..models import BatchSummary, OperationKind, OperationResult, ResultStatus, Site
from .context import BatchContext, SiteOperation
from .installer import SiteInstaller
from .modifier import SiteModifier
from .updater import SiteUpdater

logger = logging.getLogger(__name__)

HANDLERS: Dict[OperationKind, Type[SiteOperation]] = {
    OperationKind.INSTALL: SiteInstaller,
    OperationKind.UPDATE: SiteUpdater,
    OperationKind.MODIFY: SiteModifier,
}


class BatchDriver:
    """Processes sites one after another and isolates per-site failures."""

    def __init__(
        self,
        context: BatchContext,
        handlers: Optional[Mapping[OperationKind, Type[SiteOperation]]] = None,
    ) -> None:
        """
        Initialize the driver.

        Args:
            context: Services and configuration shared by all sites
            handlers: Handler per operation kind; every kind must be covered

        Raises:
            TypeError: If an operation kind has no handler
        """
        self.context = context
        self.handlers = dict(HANDLERS if handlers is None else handlers)
        missing = [kind.value for kind in OperationKind if kind not in self.handlers]
        if missing:
            raise TypeError(f"No handler for operation kinds: {', '.join(missing)}")

    def handler_for(self, kind: OperationKind) -> Type[SiteOperation]:
        return self.handlers[kind]

    def run(self, kind: OperationKind, sites: Iterable[Site], options: Any = None) -> BatchSummary:
        """
        Apply ``kind`` to every site.

        Raises:
            ConfigurationError: If a required tool is missing; no site is processed
        """
        operation = self.handler_for(kind)(self.context, options)
        self.context.runner.require_tools(operation.required_tools())
        operation.prepare()

        sites = list(sites)
        summary = BatchSummary()
        for index, site in enumerate(sites, 1):
            logger.info("Processing site %d/%d: %s", index, len(sites), site.name)
            summary.results.append(self._process(operation, site))

        logger.info(
            "%s finished: %d succeeded, %d failed, %d skipped",
            kind.value.capitalize(),
            summary.succeeded(),
            summary.failed(),
            summary.skipped(),
        )
        return summary

    def _process(self, operation: SiteOperation, site: Site) -> OperationResult:
        result = OperationResult(site=site, started_at=datetime.now())

        if not site.exists():
            result.status = ResultStatus.FAILURE
            result.message = f"Site directory not found: {site.path}"
        else:
            try:
                operation.process(site, result)
            except SiteOperationError as e:
                result.status = ResultStatus.FAILURE
                result.message = str(e)
            except ConfigurationError:
                raise
            except Exception as e:
                logger.debug("Unexpected error on %s", site.name, exc_info=True)
                result.status = ResultStatus.FAILURE
                result.message = f"{type(e).__name__}: {e}"

        if result.status == ResultStatus.SUCCESS and result.only_skipped():
            result.status = ResultStatus.SKIPPED
        if not result.message:
            result.message = result.steps[-1] if result.steps else "nothing to do"
        result.completed_at = datetime.now()

        if result.status == ResultStatus.FAILURE:
            logger.error("Failed to process site %s: %s", site.name, result.message)
        elif result.status == ResultStatus.SKIPPED:
            logger.info("Skipped site %s", site.name)
        else:
            logger.info("Finished processing site: %s", site.name)
        return result
