"""
Helpers for testing against canned cargo output.
"""

import orjson
import os
from   pathlib import Path
import shutil
import stat
import sys

from   .build import BuildConfig

#-------------------------------------------------------------------------------

def package_id(package, version="0.1.0", root="/src"):
    return f"path+file://{root}/{package}#{package}@{version}"


def artifact_message(
        name, executable, *, package="pkg", kinds=("bin", ), test=False):
    """
    Returns a `compiler-artifact` message, as cargo produces.

    :param executable:
      Path to the executable, or none for a library.
    """
    return {
        "reason": "compiler-artifact",
        "package_id": package_id(package),
        "manifest_path": f"/src/{package}/Cargo.toml",
        "target": {
            "kind": list(kinds),
            "crate_types": ["bin"] if executable is not None else ["lib"],
            "name": name,
            "src_path": f"/src/{package}/src/main.rs",
            "edition": "2021",
            "doc": not test,
            "doctest": False,
            "test": True,
        },
        "profile": {
            "opt_level": "0",
            "debuginfo": 2,
            "debug_assertions": True,
            "overflow_checks": True,
            "test": test,
        },
        "features": [],
        "filenames": [] if executable is None else [str(executable)],
        "executable": None if executable is None else str(executable),
        "fresh": False,
    }


def compiler_error(rendered):
    """
    Returns an error-level `compiler-message` message.
    """
    return {
        "reason": "compiler-message",
        "package_id": package_id("pkg"),
        "message": {
            "rendered": rendered,
            "level": "error",
            "message": rendered.splitlines()[0] if rendered else "",
        },
    }


def build_finished(success=True):
    return {"reason": "build-finished", "success": success}


def to_line(msg) -> bytes:
    """
    Serializes a message as a line of the stream; bytes and str pass through.
    """
    if isinstance(msg, bytes):
        return msg.rstrip(b"\n") + b"\n"
    elif isinstance(msg, str):
        return msg.rstrip("\n").encode() + b"\n"
    else:
        return orjson.dumps(msg) + b"\n"


def make_executable(path, text="#!/bin/sh\necho \"$0\" \"$@\"\n") -> Path:
    """
    Creates a trivial executable at `path`.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


#-------------------------------------------------------------------------------

FAKE_CARGO = """\
#!{python}
import os, sys, time
with open({count_path!r}, "a") as file:
    file.write(" ".join(sys.argv[1:]) + "\\n")
time.sleep({delay!r})
sys.stderr.write({stderr!r})
sys.stderr.flush()
with open({stream_path!r}, "rb") as file:
    for line in file:
        sys.stdout.buffer.write(line)
        sys.stdout.buffer.flush()
time.sleep({hang!r})
sys.exit({returncode!r})
"""

class FakeCargo:
    """
    A fake cargo executable that writes a canned message stream.

    Records each invocation, so tests can count builds.
    """

    def __init__(
            self, dir, messages=(), *, returncode=0, stderr="", delay=0,
            hang=0):
        """
        :param dir:
          Directory in which to create the script and its files.
        :param messages:
          Messages to write to stdout, each a dict, or a str or bytes line.
        :param delay:
          Seconds to wait before writing the stream.
        :param hang:
          Seconds to wait after writing the stream, before exiting.
        """
        dir = Path(dir)
        dir.mkdir(parents=True, exist_ok=True)
        self.path = dir / "cargo"
        self.count_path = dir / "invocations"
        self.stream_path = dir / "stream.jsonl"

        self.count_path.write_text("")
        self.stream_path.write_bytes(b"".join( to_line(m) for m in messages ))
        make_executable(self.path, FAKE_CARGO.format(
            python=sys.executable,
            count_path=str(self.count_path),
            stream_path=str(self.stream_path),
            returncode=returncode,
            stderr=stderr,
            delay=delay,
            hang=hang,
        ))


    @property
    def invocations(self):
        """
        The argument lists with which the fake cargo was invoked.
        """
        return [ l.split() for l in self.count_path.read_text().splitlines() ]


    def config(self, **kw_args) -> BuildConfig:
        """
        Returns a build config that uses this fake cargo.
        """
        return BuildConfig(cargo=self.path, **kw_args)



def cargo_available():
    """
    True if a real cargo is available.
    """
    return shutil.which(os.environ.get("CARGO", "cargo")) is not None


