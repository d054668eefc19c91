"""
Index of executables built by cargo, by target name.
"""

from   collections.abc import Mapping
import logging

from   .artifact import ArtifactRecord, Kind
from   .exc import AmbiguousArtifact, ArtifactNotFound

logger = logging.getLogger(__name__)

# When one package builds several kinds of executable with the same name, an
# unqualified lookup picks the first of these.
KIND_PREFERENCE = (Kind.BINARY, Kind.EXAMPLE, Kind.TEST, Kind.BENCH, Kind.OTHER)

#-------------------------------------------------------------------------------

def _preferred(records):
    return min(records, key=lambda r: KIND_PREFERENCE.index(r.kind))


class ArtifactIndex(Mapping):
    """
    Executables built by cargo.

    Maps target name to a tuple of `ArtifactRecord`, one for each package and
    kind that builds an executable with that name.
    """

    def __init__(self, records=()):
        # Target name -> (package name, kind) -> record.
        self.__names = {}
        for record in records:
            self.insert(record)


    def insert(self, record: ArtifactRecord):
        """
        Adds `record`, replacing any record for the same package, target, and
        kind.
        """
        records = self.__names.setdefault(record.target_name, {})
        key = (record.package_name, record.kind)
        if key in records:
            logger.debug(f"replacing artifact: {record}")
        records[key] = record


    def __candidates(self, name, kind):
        try:
            records = self.__names[name].values()
        except KeyError:
            raise ArtifactNotFound(name) from None
        if kind is not None:
            records = [ r for r in records if r.kind == kind ]
            if len(records) == 0:
                raise ArtifactNotFound(name)
        return records


    def lookup(self, name, *, kind=None) -> ArtifactRecord:
        """
        Looks up the executable for target `name`.

        :param kind:
          If not none, consider only executables of this `Kind`.
        :raise ArtifactNotFound:
          No executable named `name`.
        :raise AmbiguousArtifact:
          More than one package builds an executable named `name`.
        """
        records = self.__candidates(name, kind)
        packages = sorted({ r.package_name for r in records })
        if len(packages) > 1:
            raise AmbiguousArtifact(name, packages)
        return _preferred(records)


    def lookup_in_package(self, package, name, *, kind=None) -> ArtifactRecord:
        """
        Looks up the executable for target `name` in `package`.

        :raise ArtifactNotFound:
          `package` builds no executable named `name`.
        """
        try:
            records = self.__candidates(name, kind)
        except ArtifactNotFound:
            raise ArtifactNotFound(name, package) from None
        records = [ r for r in records if r.package_name == package ]
        if len(records) == 0:
            raise ArtifactNotFound(name, package)
        return _preferred(records)


    def records(self):
        """
        Returns all records, ordered by name, package, and kind.
        """
        return sorted(
            ( r for rs in self.__names.values() for r in rs.values() ),
            key=lambda r: (
                r.target_name, r.package_name, KIND_PREFERENCE.index(r.kind))
        )


    # Mapping methods

    def __contains__(self, name):
        return self.__names.__contains__(name)


    def __getitem__(self, name):
        return tuple(self.__names[name].values())


    def __len__(self):
        return self.__names.__len__()


    def __iter__(self):
        return self.__names.__iter__()



