"""
Builds with cargo and lists the executables found.
"""

import logging
from   pathlib import Path

from   .bintest import BinTest
from   .build import BuildConfig
from   .cache import BuildCache
from   .exc import BuildError

logger = logging.getLogger(__name__)

#-------------------------------------------------------------------------------

def main():
    import argparse

    parser = argparse.ArgumentParser(
        prog="bintest",
        description="Build with cargo and list the executables built.")
    parser.add_argument(
        "--workspace", action="store_true", default=False,
        help="build all packages in the workspace")
    parser.add_argument(
        "--quiet", action="store_true", default=False,
        help="suppress cargo progress output")
    parser.add_argument(
        "--release", action="store_true", default=False,
        help="build in release mode")
    parser.add_argument(
        "--offline", action="store_true", default=False,
        help="build without network access")
    parser.add_argument(
        "--all-targets", action="store_true", default=False,
        help="build bins, tests, benches, and examples")
    parser.add_argument(
        "--features", metavar="FEATURES", default=None,
        help="features to activate")
    parser.add_argument(
        "--profile", metavar="NAME", default=None,
        help="build with profile NAME")
    parser.add_argument(
        "--bin", metavar="NAME", dest="binaries", action="append",
        default=None,
        help="build only binary NAME; may be repeated")
    parser.add_argument(
        "--example", metavar="NAME", dest="examples", action="append",
        default=None,
        help="build only example NAME; may be repeated")
    parser.add_argument(
        "--manifest-path", metavar="PATH", type=Path, default=None,
        help="path to Cargo.toml")
    parser.add_argument(
        "--target-dir", metavar="DIR", type=Path, default=None,
        help="directory for build artifacts")
    parser.add_argument(
        "--timeout", metavar="SECS", type=float, default=None,
        help="kill the build after SECS seconds")
    parser.add_argument(
        "--debug", action="store_true", default=False,
        help="log debug messages")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s [%(levelname)-7s] %(message)s",
    )

    config = BuildConfig(
        workspace       =args.workspace,
        quiet           =args.quiet,
        release         =args.release,
        offline         =args.offline,
        all_targets     =args.all_targets,
        features        =args.features,
        profile         =args.profile,
        binaries        =args.binaries,
        examples        =args.examples,
        manifest_path   =args.manifest_path,
        target_dir      =args.target_dir,
        timeout         =args.timeout,
    )
    bintest = BinTest(BuildCache(config))
    try:
        records = bintest.executables()
    except BuildError as exc:
        logger.error(str(exc))
        raise SystemExit(1)

    for record in records:
        print(
            f"{record.target_name:24s} {record.package_name:24s} "
            f"{str(record.kind):8s} {record.executable}"
        )


if __name__ == "__main__":
    main()


