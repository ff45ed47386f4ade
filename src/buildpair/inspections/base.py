"""Inspection interface and runner."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING

from buildpair.results.types import ResultParams, Severity, Verb

if TYPE_CHECKING:
    from buildpair.context import RunContext

logger = logging.getLogger(__name__)


class Inspection(ABC):
    """One check run against a RunContext.

    ``run`` submits findings to ``ctx.aggregator`` and returns True when
    the check passed.
    """

    name: str = ""
    description: str = ""

    @abstractmethod
    def run(self, ctx: RunContext) -> bool:
        raise NotImplementedError


class PairedCheck(Inspection):
    """Needs both a before and an after build."""


class SingleBuildCheck(Inspection):
    """Looks only at the after build, so it also runs without a before build."""


def run_inspections(
    ctx: RunContext,
    checks: Sequence[Inspection],
    *,
    single_build: bool | None = None,
    workers: int | None = None,
) -> dict[str, bool]:
    """Run ``checks`` against a correlated context.

    Paired checks are skipped when there is no before build. A check that
    raises is recorded as a BAD ``failed`` finding and reported as not
    passed; the remaining checks still run.

    Returns:
        Mapping of check name to pass/fail, in ``checks`` order.
    """
    if single_build is None:
        single_build = ctx.single_build
    if workers is None:
        workers = ctx.config.workers

    selected = [
        check for check in checks
        if not (single_build and isinstance(check, PairedCheck))
    ]
    for check in checks:
        if check not in selected:
            logger.info("skipping paired inspection %s in single build mode", check.name)

    if workers > 1 and len(selected) > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            outcomes = list(pool.map(lambda check: _run_one(ctx, check), selected))
    else:
        outcomes = [_run_one(ctx, check) for check in selected]

    return {check.name: outcome for check, outcome in zip(selected, outcomes)}


def _run_one(ctx: RunContext, check: Inspection) -> bool:
    logger.debug("running inspection %s", check.name)
    try:
        return bool(check.run(ctx))
    except Exception as exc:
        logger.warning("inspection %s raised: %s", check.name, exc)
        ctx.aggregator.submit(
            ResultParams(
                severity=Severity.BAD,
                header=check.name,
                msg=f"The {check.name} inspection failed to run: {exc}",
                verb=Verb.FAILED,
                noun=check.name,
                remedy="Inspect the traceback in the debug log and rerun the inspection.",
            )
        )
        return False
