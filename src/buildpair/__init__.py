"""buildpair - before/after build correlation and inspection engine."""

__version__ = "0.3.0"
