"""Inspection interface and built-in checks."""

from buildpair.inspections.base import Inspection, PairedCheck, SingleBuildCheck, run_inspections
from buildpair.inspections.checks import (
    BUILTIN_CHECKS,
    EmptyPayloadCheck,
    OwnershipCheck,
    PayloadCheck,
    PermissionsCheck,
    select_checks,
)

__all__ = [
    "BUILTIN_CHECKS",
    "EmptyPayloadCheck",
    "Inspection",
    "OwnershipCheck",
    "PairedCheck",
    "PayloadCheck",
    "PermissionsCheck",
    "SingleBuildCheck",
    "run_inspections",
    "select_checks",
]
