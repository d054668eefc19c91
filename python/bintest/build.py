"""
Runs `cargo build` and collects the executables it reports.
"""

from   collections import deque
from   dataclasses import dataclass
import logging
import os
from   pathlib import Path
import subprocess
import tempfile
import threading
from   typing import Optional, Sequence, Union

from   .artifact import parse_message
from   .exc import BuildError, ParseError
from   .index import ArtifactIndex

logger = logging.getLogger(__name__)

# Number of trailing stderr lines to keep for diagnostics.
STDERR_TAIL = 40

#-------------------------------------------------------------------------------

@dataclass(frozen=True)
class BuildConfig:
    """
    Options for the `cargo build` invocation.
    """

    # Build all packages in the workspace.
    workspace: bool = False
    # Suppress cargo's progress output.
    quiet: bool = False
    release: bool = False
    offline: bool = False
    # Build lib, bins, tests, benches, and examples.
    all_targets: bool = False
    features: Optional[str] = None
    profile: Optional[str] = None
    # If not none, build only these binaries and examples.
    binaries: Optional[Sequence[str]] = None
    examples: Optional[Sequence[str]] = None
    manifest_path: Optional[Path] = None
    target_dir: Optional[Path] = None
    # Seconds after which the build is killed.
    timeout: Optional[float] = None
    # The cargo executable.  If none, uses the `CARGO` env var, then `cargo`.
    cargo: Optional[Union[str, Path]] = None

    def __post_init__(self):
        # Normalize sequences so configs compare and hash by value.
        for name in ("binaries", "examples"):
            val = getattr(self, name)
            if val is not None:
                if isinstance(val, str):
                    val = (val, )
                object.__setattr__(self, name, tuple( str(v) for v in val ))


    def get_cargo(self) -> str:
        if self.cargo is not None:
            return str(self.cargo)
        return os.environ.get("CARGO", "cargo")


    def argv(self):
        """
        Returns the full cargo command line.
        """
        argv = [self.get_cargo(), "build", "--message-format", "json"]
        if self.workspace:
            argv.append("--workspace")
        if self.quiet:
            argv.append("--quiet")
        if self.release:
            argv.append("--release")
        if self.offline:
            argv.append("--offline")
        if self.all_targets:
            argv.append("--all-targets")
        if self.features is not None:
            argv.extend(["--features", self.features])
        if self.profile is not None:
            argv.extend(["--profile", self.profile])
        for binary in self.binaries or ():
            argv.extend(["--bin", binary])
        for example in self.examples or ():
            argv.extend(["--example", example])
        if self.manifest_path is not None:
            argv.extend(["--manifest-path", str(self.manifest_path)])
        if self.target_dir is not None:
            argv.extend(["--target-dir", str(self.target_dir)])
        return argv



#-------------------------------------------------------------------------------

@dataclass(frozen=True)
class Ready:
    """
    The build succeeded.
    """

    index: ArtifactIndex
    # Parse errors from lines that were skipped.
    warnings: tuple = ()



@dataclass(frozen=True)
class Failed:
    """
    The build failed.
    """

    error: BuildError



BuildOutcome = Union[Ready, Failed]

#-------------------------------------------------------------------------------

def _read_tail(file, count=STDERR_TAIL):
    file.seek(0)
    lines = deque(
        ( l.decode(errors="replace").rstrip("\n") for l in file ),
        maxlen=count
    )
    return "\n".join(lines)


def read_stream(lines, records, warnings, errors):
    """
    Parses cargo's message stream incrementally.

    :param lines:
      Iterable of lines of the stream.
    :param records:
      List to which to append executable records.
    :param warnings:
      List to which to append `ParseError`s for malformed lines.
    :param errors:
      List to which to append rendered compiler errors.
    """
    for line in lines:
        try:
            record, error = parse_message(line)
        except ParseError as err:
            logger.warning(f"skipping cargo message: {err}")
            warnings.append(err)
            continue

        if error is not None:
            errors.append(error)
        if record is None:
            continue

        if not record.executable.exists():
            logger.warning(f"skipping missing executable: {record}")
            warnings.append(
                ParseError(f"missing executable: {record.executable}", line))
            continue

        logger.debug(f"artifact: {record}")
        records.append(record)


def run_build(config: BuildConfig) -> BuildOutcome:
    """
    Runs `cargo build` and collects the executables it builds.

    Reads cargo's stdout line by line while cargo runs.  Stderr is spooled to
    a temporary file.

    :return:
      `Ready` with the executables, or `Failed` if cargo could not be run or
      did not succeed.
    """
    argv = config.argv()
    logger.info(f"building: {' '.join(argv)}")

    records = []
    warnings = []
    errors = []

    with tempfile.TemporaryFile() as stderr:
        try:
            process = subprocess.Popen(
                argv,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=stderr,
            )
        except OSError as exc:
            return Failed(BuildError(f"failed to run {argv[0]}: {exc}"))

        timed_out = threading.Event()
        def kill():
            timed_out.set()
            logger.error(f"build timed out after {config.timeout} s")
            process.kill()

        timer = None
        if config.timeout is not None:
            timer = threading.Timer(config.timeout, kill)
            timer.daemon = True
            timer.start()

        try:
            with process.stdout:
                read_stream(process.stdout, records, warnings, errors)
        except OSError as exc:
            process.kill()
            process.wait()
            return Failed(BuildError(f"failed to read build output: {exc}"))
        finally:
            returncode = process.wait()
            if timer is not None:
                timer.cancel()

        stderr_tail = _read_tail(stderr)

    if returncode != 0:
        diagnostics = "\n".join(errors + ([stderr_tail] if stderr_tail else []))
        message = (
            f"build timed out after {config.timeout} s" if timed_out.is_set()
            else f"build failed with status {returncode}"
        )
        logger.error(message)
        return Failed(BuildError(
            message, returncode=returncode, diagnostics=diagnostics))

    index = ArtifactIndex(records)
    logger.info(
        f"build succeeded: {len(records)} executables"
        + (f", {len(warnings)} skipped messages" if warnings else "")
    )
    return Ready(index, tuple(warnings))


