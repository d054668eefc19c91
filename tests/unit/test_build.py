import logging
from   pathlib import Path
import pytest

from   bintest.artifact import Kind
from   bintest.build import BuildConfig, Failed, Ready, run_build, read_stream
from   bintest.exc import BuildError, ParseError
from   bintest.testing import (
    FakeCargo, artifact_message, build_finished, compiler_error,
    make_executable, to_line)

#-------------------------------------------------------------------------------

def test_argv_default(monkeypatch):
    monkeypatch.delenv("CARGO", raising=False)
    assert BuildConfig().argv() == ["cargo", "build", "--message-format", "json"]


def test_argv_cargo_env(monkeypatch):
    monkeypatch.setenv("CARGO", "/opt/rust/bin/cargo")
    assert BuildConfig().argv()[0] == "/opt/rust/bin/cargo"
    # An explicit cargo wins.
    assert BuildConfig(cargo="/x/cargo").argv()[0] == "/x/cargo"


def test_argv_options():
    config = BuildConfig(
        workspace=True,
        quiet=True,
        release=True,
        offline=True,
        all_targets=True,
        features="foo bar",
        profile="ci",
        binaries=["one", "two"],
        examples=("demo", ),
        manifest_path=Path("/src/Cargo.toml"),
        target_dir=Path("/tmp/target"),
        cargo="cargo",
    )
    assert config.argv() == [
        "cargo", "build", "--message-format", "json",
        "--workspace", "--quiet", "--release", "--offline", "--all-targets",
        "--features", "foo bar",
        "--profile", "ci",
        "--bin", "one", "--bin", "two",
        "--example", "demo",
        "--manifest-path", "/src/Cargo.toml",
        "--target-dir", "/tmp/target",
    ]


def test_config_equality():
    assert BuildConfig(binaries=["a"]) == BuildConfig(binaries=("a", ))
    assert BuildConfig(binaries="a") == BuildConfig(binaries=("a", ))
    assert BuildConfig() != BuildConfig(workspace=True)
    assert hash(BuildConfig(examples=["x"])) == hash(BuildConfig(examples=("x", )))


#-------------------------------------------------------------------------------

def test_build(tmp_path):
    hello = make_executable(tmp_path / "target/debug/hello")
    demo = make_executable(tmp_path / "target/debug/examples/demo")
    cargo = FakeCargo(tmp_path / "cargo", [
        artifact_message("mylib", None, kinds=["lib"]),
        artifact_message("hello", hello),
        artifact_message("demo", demo, kinds=["example"]),
        build_finished(),
    ])

    outcome = run_build(cargo.config(workspace=True))
    assert isinstance(outcome, Ready)
    assert outcome.warnings == ()
    index = outcome.index
    assert sorted(index) == ["demo", "hello"]
    assert index.lookup("hello").executable == hello
    assert index.lookup("demo").kind == Kind.EXAMPLE
    assert cargo.invocations == [
        ["build", "--message-format", "json", "--workspace"]]


def test_build_no_executables(tmp_path):
    """
    A successful build with no executables is not a failure.
    """
    cargo = FakeCargo(tmp_path, [
        artifact_message("mylib", None, kinds=["lib"]),
        build_finished(),
    ])
    outcome = run_build(cargo.config())
    assert isinstance(outcome, Ready)
    assert len(outcome.index) == 0


def test_build_malformed_line(tmp_path, caplog):
    """
    A malformed line is skipped, and the other artifacts are still indexed.
    """
    one = make_executable(tmp_path / "target/one")
    two = make_executable(tmp_path / "target/two")
    cargo = FakeCargo(tmp_path / "cargo", [
        artifact_message("one", one),
        "{\"reason\": \"compiler-artifact\", \"target\": ",
        artifact_message("two", two),
    ])
    with caplog.at_level(logging.WARNING):
        outcome = run_build(cargo.config())
    assert isinstance(outcome, Ready)
    assert sorted(outcome.index) == ["one", "two"]
    assert len(outcome.warnings) == 1
    assert isinstance(outcome.warnings[0], ParseError)
    assert outcome.warnings[0].line.startswith(b"{\"reason\"")
    assert "skipping cargo message" in caplog.text


def test_build_malformed_compiler_message(tmp_path):
    """
    A compiler error without usable text is skipped, not fatal.
    """
    one = make_executable(tmp_path / "target/one")
    two = make_executable(tmp_path / "target/two")
    cargo = FakeCargo(tmp_path / "cargo", [
        artifact_message("one", one),
        {"reason": "compiler-message", "message": {"level": "error", "message": 5}},
        {"reason": "compiler-message", "message": "error: not an object"},
        artifact_message("two", two),
    ])
    outcome = run_build(cargo.config())
    assert isinstance(outcome, Ready)
    assert sorted(outcome.index) == ["one", "two"]
    assert len(outcome.warnings) == 2
    assert all( isinstance(w, ParseError) for w in outcome.warnings )
    assert all( w.line is not None for w in outcome.warnings )


def test_build_unrendered_compiler_error(tmp_path):
    """
    A compiler error without rendered text falls back to its message.
    """
    cargo = FakeCargo(
        tmp_path,
        [{
            "reason": "compiler-message",
            "message": {"level": "error", "message": "expected `;`\n"},
        }],
        returncode=101,
    )
    outcome = run_build(cargo.config())
    assert isinstance(outcome, Failed)
    assert "expected `;`" in outcome.error.diagnostics


def test_build_missing_executable(tmp_path):
    """
    An artifact whose executable doesn't exist is not indexed.
    """
    hello = make_executable(tmp_path / "target/hello")
    cargo = FakeCargo(tmp_path / "cargo", [
        artifact_message("hello", hello),
        artifact_message("gone", tmp_path / "target/gone"),
    ])
    outcome = run_build(cargo.config())
    assert list(outcome.index) == ["hello"]
    assert len(outcome.warnings) == 1


def test_build_rebuild_overwrites(tmp_path):
    old = make_executable(tmp_path / "old/hello")
    new = make_executable(tmp_path / "new/hello")
    cargo = FakeCargo(tmp_path / "cargo", [
        artifact_message("hello", old),
        artifact_message("hello", new),
    ])
    outcome = run_build(cargo.config())
    assert outcome.index.lookup("hello").executable == new


def test_build_failed(tmp_path):
    """
    A failed build fails, even if artifacts were reported.
    """
    hello = make_executable(tmp_path / "target/hello")
    cargo = FakeCargo(
        tmp_path / "cargo",
        [
            artifact_message("hello", hello),
            compiler_error("error[E0425]: cannot find value `x` in this scope"),
            build_finished(False),
        ],
        returncode=101,
        stderr="error: could not compile `pkg` (bin \"broken\")\n",
    )
    outcome = run_build(cargo.config())
    assert isinstance(outcome, Failed)
    err = outcome.error
    assert isinstance(err, BuildError)
    assert err.returncode == 101
    assert "cannot find value `x`" in err.diagnostics
    assert "could not compile" in err.diagnostics
    assert "status 101" in str(err)


def test_build_no_cargo(tmp_path):
    outcome = run_build(BuildConfig(cargo=tmp_path / "no-such-cargo"))
    assert isinstance(outcome, Failed)
    assert "failed to run" in str(outcome.error)
    assert outcome.error.returncode is None


def test_build_timeout(tmp_path):
    cargo = FakeCargo(tmp_path, [build_finished()], hang=30)
    outcome = run_build(cargo.config(timeout=0.5))
    assert isinstance(outcome, Failed)
    assert "timed out" in str(outcome.error)


#-------------------------------------------------------------------------------

def test_read_stream_incremental(tmp_path):
    """
    Lines are parsed as they arrive, before the stream ends.
    """
    hello = make_executable(tmp_path / "hello")

    records = []
    def lines():
        yield to_line(artifact_message("hello", hello))
        # The first record is already parsed.
        assert len(records) == 1
        yield to_line(build_finished())

    warnings = []
    errors = []
    read_stream(lines(), records, warnings, errors)
    assert [ r.target_name for r in records ] == ["hello"]
    assert warnings == errors == []


