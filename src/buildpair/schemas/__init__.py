"""Packaged JSON Schemas for buildpair input files."""
