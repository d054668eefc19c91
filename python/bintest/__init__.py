"""
Locates and runs the executables built by cargo, for integration tests.

The first lookup runs `cargo build --message-format json`, once per process,
and indexes the executables it reports by target name::

    import bintest

    def test_help():
        res = bintest.get().command("mytool").run("--help", capture_output=True)
        assert res.returncode == 0
"""

from   .artifact import ArtifactRecord, Kind
from   .bintest import BinTest, get
from   .build import BuildConfig, Failed, Ready
from   .cache import BuildCache, State, shared_cache
from   .command import Command
from   .exc import (
    AmbiguousArtifact, ArtifactNotFound, BuildError, ConfigMismatchError,
    ParseError)
from   .index import ArtifactIndex
