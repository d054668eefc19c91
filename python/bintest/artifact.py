"""
Parsing of cargo's JSON message stream into artifact records.

Cargo, invoked with `--message-format json`, writes one JSON object per line
to stdout.  We care only about `compiler-artifact` messages that carry an
executable.
"""

from   dataclasses import dataclass
import enum
import orjson
from   pathlib import Path
from   typing import Optional

from   .exc import ParseError

#-------------------------------------------------------------------------------

class Kind(enum.Enum):
    """
    Kind of an executable artifact.
    """

    BINARY  = "bin"
    TEST    = "test"
    BENCH   = "bench"
    EXAMPLE = "example"
    OTHER   = "other"

    def __str__(self):
        return self.value



# Cargo target kinds we recognize.  Anything else is `Kind.OTHER`.
TARGET_KINDS = {
    "bin"       : Kind.BINARY,
    "test"      : Kind.TEST,
    "bench"     : Kind.BENCH,
    "example"   : Kind.EXAMPLE,
}

def classify(target_kinds, test_profile=False) -> Kind:
    """
    Collapses cargo's target kinds to a `Kind`.

    :param target_kinds:
      The `target.kind` list from a compiler-artifact message.
    :param test_profile:
      True if the target was compiled with the test harness.
    """
    kind = next(
        ( TARGET_KINDS[k] for k in target_kinds if k in TARGET_KINDS ),
        Kind.OTHER
    )
    # A bin, example, or lib compiled as a unit test harness is a test.
    if test_profile and kind in (Kind.BINARY, Kind.EXAMPLE, Kind.OTHER):
        kind = Kind.TEST
    return kind


def package_name_from_id(package_id: str) -> str:
    """
    Extracts the package name from a cargo package ID.

    Handles both the legacy format, `name version (source)`, and the package
    ID spec format, `source#name@version` or `source/name#version`.
    """
    if " " in package_id:
        # Legacy format.  The source may itself contain a '#'.
        name = package_id.split(" ", 1)[0]
    elif "#" in package_id:
        source, fragment = package_id.rsplit("#", 1)
        if "@" in fragment:
            name = fragment.split("@", 1)[0]
        else:
            # No name in the fragment; it's the last segment of the source
            # path, without any query.
            path = source.split("?", 1)[0]
            name = path.rstrip("/").rsplit("/", 1)[-1]
    else:
        name = ""
    if not name:
        raise ParseError(f"invalid package_id: {package_id}")
    return name


#-------------------------------------------------------------------------------

@dataclass(frozen=True)
class ArtifactRecord:
    """
    An executable built by cargo.
    """

    package_name: str
    target_name: str
    kind: Kind
    executable: Path
    package_id: Optional[str] = None

    @property
    def key(self):
        """
        Records with equal keys are the same logical artifact.
        """
        return (self.package_name, self.target_name, self.kind)


    def __str__(self):
        return f"{self.target_name} ({self.package_name} {self.kind}): {self.executable}"



def decode_message(line) -> dict:
    """
    Decodes one line of cargo's message stream.

    :param line:
      The line, as bytes or str.
    :raise ParseError:
      The line is not a JSON object with a reason.
    """
    try:
        jso = orjson.loads(line)
    except orjson.JSONDecodeError as err:
        raise ParseError(f"message JSON error: {err}", line) from None
    if not isinstance(jso, dict):
        raise ParseError("message not an object", line)
    # All cargo messages are tagged with a reason.
    reason = jso.get("reason")
    if not isinstance(reason, str):
        raise ParseError("message missing reason", line)
    return jso


def artifact_from_message(jso) -> Optional[ArtifactRecord]:
    """
    Converts a decoded cargo message to an artifact record.

    :return:
      The record, or none if the message isn't a compiler artifact with an
      executable.
    :raise ParseError:
      The message is a compiler artifact, but is malformed.
    """
    if jso.get("reason") != "compiler-artifact":
        return None

    executable = jso.get("executable")
    if executable is None:
        # Library or build script; nothing to run.
        return None
    if not isinstance(executable, str) or not Path(executable).is_absolute():
        raise ParseError(f"invalid executable: {executable!r}")

    target = jso.get("target")
    if not isinstance(target, dict):
        raise ParseError("compiler-artifact missing target")
    name = target.get("name")
    if not isinstance(name, str) or not name:
        raise ParseError("compiler-artifact missing target name")
    target_kinds = target.get("kind")
    if (
            not isinstance(target_kinds, list)
            or not all( isinstance(k, str) for k in target_kinds )
    ):
        raise ParseError(f"invalid target kind for {name}: {target_kinds!r}")

    package_id = jso.get("package_id")
    if not isinstance(package_id, str):
        raise ParseError(f"compiler-artifact missing package_id for {name}")

    profile = jso.get("profile")
    test_profile = isinstance(profile, dict) and profile.get("test") is True

    return ArtifactRecord(
        package_name=package_name_from_id(package_id),
        target_name=name,
        kind=classify(target_kinds, test_profile),
        executable=Path(executable),
        package_id=package_id,
    )


def compiler_error_from_message(jso) -> Optional[str]:
    """
    Extracts the text of an error-level compiler message.

    :return:
      The rendered error, or none if the message isn't a compiler error.
    :raise ParseError:
      The message is a compiler message, but is malformed.
    """
    if jso.get("reason") != "compiler-message":
        return None
    message = jso.get("message")
    if not isinstance(message, dict):
        raise ParseError("compiler-message missing message")
    if message.get("level") != "error":
        return None
    rendered = message.get("rendered")
    if isinstance(rendered, str):
        return rendered.rstrip("\n")
    # Not rendered; fall back to the bare message.
    text = message.get("message")
    if isinstance(text, str):
        return text.rstrip("\n")
    raise ParseError("compiler error without message text")


def parse_message(line):
    """
    Parses one line of cargo's message stream.

    :return:
      An artifact record or none, and the text of a compiler error or none.
      Both are none for blank lines and uninteresting messages.
    :raise ParseError:
      The line is malformed; its `line` is set.
    """
    if not line.strip():
        return None, None
    try:
        jso = decode_message(line)
        return artifact_from_message(jso), compiler_error_from_message(jso)
    except ParseError as err:
        if err.line is None:
            err.line = line
        raise


def parse_line(line) -> Optional[ArtifactRecord]:
    """
    Parses one line of cargo's message stream.

    :return:
      An artifact record, or none for blank lines and messages that aren't
      executable artifacts.
    :raise ParseError:
      The line is malformed.
    """
    record, _ = parse_message(line)
    return record


