"""Pytest configuration and fixtures for buildpair tests."""
from pathlib import Path

import pytest

from buildpair.metadata.types import PackageMetadata
from buildpair.peers.types import FileEntry, FileStat, PackageSnapshot


def pytest_sessionfinish(session, exitstatus):
    """Check that coverage data was collected if --cov was requested.

    This prevents silent "no data collected" scenarios that produce 0% coverage
    without failing the test run.
    """
    cov_enabled = any("--cov" in str(arg) for arg in session.config.args)
    if not cov_enabled:
        return

    coverage_files = list(Path.cwd().glob(".coverage*"))
    if not coverage_files:
        pytest.exit(
            "Coverage was enabled but no data was collected. "
            "Check that tests import from 'buildpair' (the package) not 'src/buildpair'.",
            returncode=1
        )


def make_file(path, checksum="a" * 8, mode=0o644, owner="root", group="root", type=None):
    return FileEntry(
        localpath=path,
        stat=FileStat(mode=mode, owner=owner, group=group),
        checksum=checksum,
        type=type,
    )


def make_snapshot(name, side, files=(), version="1.0", release="1", epoch=None, arch="x86_64"):
    metadata = PackageMetadata(name=name, version=version, release=release, epoch=epoch, arch=arch)
    return PackageSnapshot(metadata, side, files)


@pytest.fixture
def file_factory():
    return make_file


@pytest.fixture
def snapshot_factory():
    return make_snapshot
