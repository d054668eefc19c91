"""
Runs the build once per process, and shares the outcome.
"""

import asyncio
import enum
import logging
import threading

from   .build import BuildConfig, Failed, Ready, run_build
from   .exc import BuildError, ConfigMismatchError

logger = logging.getLogger(__name__)

#-------------------------------------------------------------------------------

class State(enum.Enum):

    UNINITIALIZED   = "uninitialized"
    BUILDING        = "building"
    READY           = "ready"
    FAILED          = "failed"



class BuildCache:
    """
    Holds the outcome of a single build.

    The first call to `ensure_built()` runs the build; concurrent callers wait
    for it, and all callers receive the same outcome.  The build is never run
    again, even if it failed.
    """

    def __init__(self, config=None, *, build=run_build):
        """
        :param config:
          The `BuildConfig`; if none, the default.
        :param build:
          Function that takes the config, runs the build, and returns a
          `Ready` or `Failed` outcome.
        """
        self.config = BuildConfig() if config is None else config
        self.__build = build
        self.__lock = threading.Lock()
        self.__state = State.UNINITIALIZED
        # Published once, under the lock.
        self.__outcome = None


    def __repr__(self):
        return f"{self.__class__.__name__}({self.config!r}, state={self.state})"


    @property
    def state(self) -> State:
        return self.__state


    def __run(self):
        """
        Runs the build and publishes its outcome.

        Always publishes an outcome, even if the build is interrupted, so the
        build never runs again.
        """
        self.__state = State.BUILDING
        outcome = None
        try:
            outcome = self.__build(self.config)
            if not isinstance(outcome, (Ready, Failed)):
                raise TypeError(f"not a build outcome: {outcome!r}")
        except BuildError as exc:
            outcome = Failed(exc)
        except Exception as exc:
            logger.exception("build raised")
            err = BuildError(f"build raised {exc.__class__.__name__}: {exc}")
            err.__cause__ = exc
            outcome = Failed(err)
        finally:
            if outcome is None:
                # Interrupted by KeyboardInterrupt or similar, which propagates.
                logger.error("build interrupted")
                outcome = Failed(BuildError("build interrupted"))
            match outcome:
                case Ready():
                    self.__state = State.READY
                case Failed():
                    self.__state = State.FAILED
            self.__outcome = outcome


    def ensure_built(self):
        """
        Runs the build, if it hasn't run yet, and returns its outcome.

        Blocks while another thread is running the build.

        :return:
          `Ready` or `Failed`.
        """
        outcome = self.__outcome
        if outcome is None:
            with self.__lock:
                # Check again; another thread may have built while we waited.
                if self.__outcome is None:
                    self.__run()
                outcome = self.__outcome
        return outcome


    async def ensure_built_async(self):
        """
        Like `ensure_built()`, but waits in a thread instead of blocking the
        event loop.
        """
        if self.__outcome is not None:
            return self.__outcome
        return await asyncio.to_thread(self.ensure_built)



#-------------------------------------------------------------------------------

_shared_lock = threading.Lock()
_shared = None

def shared_cache(config=None) -> BuildCache:
    """
    Returns the process-wide build cache, creating it if necessary.

    :param config:
      The `BuildConfig`; if none, the default.
    :raise ConfigMismatchError:
      The shared cache was already created with a different config.
    """
    global _shared

    config = BuildConfig() if config is None else config
    with _shared_lock:
        if _shared is None:
            _shared = BuildCache(config)
        elif _shared.config != config:
            raise ConfigMismatchError(_shared.config, config)
        return _shared


