from   pathlib import Path
import pytest

from   bintest.artifact import ArtifactRecord, Kind
from   bintest.exc import AmbiguousArtifact, ArtifactNotFound
from   bintest.index import ArtifactIndex

#-------------------------------------------------------------------------------

def rec(package, name, kind=Kind.BINARY, exe=None):
    exe = Path(f"/target/{package}/{name}") if exe is None else Path(exe)
    return ArtifactRecord(package, name, kind, exe)


def test_empty():
    index = ArtifactIndex()
    assert len(index) == 0
    assert index.records() == []
    with pytest.raises(ArtifactNotFound) as exc_info:
        index.lookup("hello")
    assert exc_info.value.name == "hello"
    assert exc_info.value.package is None


def test_lookup():
    index = ArtifactIndex([rec("tools", "hello"), rec("tools", "goodbye")])
    assert len(index) == 2
    assert "hello" in index
    assert index.lookup("hello").executable == Path("/target/tools/hello")
    assert index.lookup_in_package("tools", "hello") == index.lookup("hello")
    assert index["goodbye"] == (rec("tools", "goodbye"), )


def test_not_found():
    index = ArtifactIndex([rec("tools", "hello")])
    with pytest.raises(ArtifactNotFound):
        index.lookup("does-not-exist")
    # Failed lookups don't affect later ones.
    assert index.lookup("hello").target_name == "hello"

    with pytest.raises(ArtifactNotFound) as exc_info:
        index.lookup_in_package("other", "hello")
    assert exc_info.value.package == "other"
    with pytest.raises(ArtifactNotFound) as exc_info:
        index.lookup_in_package("tools", "nope")
    assert exc_info.value.package == "tools"


def test_ambiguous():
    index = ArtifactIndex([rec("p2", "t"), rec("p1", "t"), rec("p1", "u")])
    with pytest.raises(AmbiguousArtifact) as exc_info:
        index.lookup("t")
    assert exc_info.value.name == "t"
    assert exc_info.value.packages == ("p1", "p2")
    assert "p1, p2" in str(exc_info.value)

    # Qualified lookups work.
    assert index.lookup_in_package("p1", "t").executable == Path("/target/p1/t")
    assert index.lookup_in_package("p2", "t").executable == Path("/target/p2/t")
    # So do unambiguous names.
    assert index.lookup("u").package_name == "p1"
    assert len(index["t"]) == 2


def test_overwrite():
    """
    A later record for the same package, target, and kind replaces the earlier.
    """
    index = ArtifactIndex()
    index.insert(rec("p", "t", exe="/old/t"))
    index.insert(rec("p", "t", exe="/new/t"))
    assert len(index["t"]) == 1
    assert index.lookup("t").executable == Path("/new/t")


def test_kinds():
    """
    One package may build several executables with the same name.
    """
    index = ArtifactIndex([
        rec("p", "t", Kind.TEST, "/deps/t-0123"),
        rec("p", "t", Kind.BINARY, "/t"),
        rec("p", "t", Kind.EXAMPLE, "/examples/t"),
    ])
    # Not ambiguous; the bin is preferred.
    assert index.lookup("t").kind == Kind.BINARY
    assert index.lookup("t", kind=Kind.TEST).executable == Path("/deps/t-0123")
    assert index.lookup_in_package("p", "t", kind=Kind.EXAMPLE).kind == Kind.EXAMPLE
    with pytest.raises(ArtifactNotFound):
        index.lookup("t", kind=Kind.BENCH)


def test_kind_disambiguates():
    index = ArtifactIndex([
        rec("p1", "t", Kind.BINARY),
        rec("p2", "t", Kind.EXAMPLE),
    ])
    with pytest.raises(AmbiguousArtifact):
        index.lookup("t")
    assert index.lookup("t", kind=Kind.EXAMPLE).package_name == "p2"


def test_records():
    index = ArtifactIndex([
        rec("b", "y"),
        rec("a", "y", Kind.TEST),
        rec("a", "y"),
        rec("z", "x"),
    ])
    assert [ (r.target_name, r.package_name, r.kind) for r in index.records() ] == [
        ("x", "z", Kind.BINARY),
        ("y", "a", Kind.BINARY),
        ("y", "a", Kind.TEST),
        ("y", "b", Kind.BINARY),
    ]
    assert sorted(index) == ["x", "y"]


