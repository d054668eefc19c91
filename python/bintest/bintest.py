"""
Lookup of built executables, by name, as commands.
"""

import logging
from   pathlib import Path

from   .artifact import ArtifactRecord
from   .build import Failed, Ready
from   .cache import BuildCache, shared_cache
from   .command import Command
from   .index import ArtifactIndex

logger = logging.getLogger(__name__)

#-------------------------------------------------------------------------------

def _index(outcome) -> ArtifactIndex:
    match outcome:
        case Ready(index):
            return index
        case Failed(error):
            raise error


class BinTest:
    """
    Access to the executables built by cargo.

    The build runs on first use, once for the `BuildCache`.
    """

    def __init__(self, cache: BuildCache):
        self.cache = cache


    def __repr__(self):
        return f"{self.__class__.__name__}({self.cache!r})"


    def ensure_built(self) -> ArtifactIndex:
        """
        Builds, if not already built, and returns the executables.

        :raise BuildError:
          The build failed.
        """
        return _index(self.cache.ensure_built())


    async def ensure_built_async(self) -> ArtifactIndex:
        return _index(await self.cache.ensure_built_async())


    def lookup(self, name, *, package=None, kind=None) -> ArtifactRecord:
        """
        Looks up an executable.

        :param name:
          The target name.
        :param package:
          If not none, the name of the package that builds it.
        :param kind:
          If not none, the `Kind` of executable.
        :raise BuildError:
          The build failed.
        :raise ArtifactNotFound:
          No such executable.
        :raise AmbiguousArtifact:
          `package` is none, and multiple packages build an executable `name`.
        """
        index = self.ensure_built()
        if package is None:
            return index.lookup(name, kind=kind)
        else:
            return index.lookup_in_package(package, name, kind=kind)


    def path(self, name, *, package=None, kind=None) -> Path:
        """
        Returns the path to an executable.  See `lookup()`.
        """
        return self.lookup(name, package=package, kind=kind).executable


    def command(self, name, *, package=None, kind=None) -> Command:
        """
        Returns a command for an executable.  See `lookup()`.

        The command inherits this process's environment and working directory.
        """
        record = self.lookup(name, package=package, kind=kind)
        logger.debug(f"command: {record}")
        return Command(record.executable)


    def command_in_package(self, package, name, *, kind=None) -> Command:
        return self.command(name, package=package, kind=kind)


    def executables(self):
        """
        Returns all executables, as `ArtifactRecord` instances.

        :raise BuildError:
          The build failed.
        """
        return self.ensure_built().records()



def get(config=None) -> BinTest:
    """
    Returns a `BinTest` using the process-wide build cache.

    :param config:
      The `BuildConfig`; if none, the default.  All callers in a process must
      use equal configs.
    :raise ConfigMismatchError:
      The shared cache was already created with a different config.
    """
    return BinTest(shared_cache(config))


