"""
Invocable commands for built executables.
"""

import asyncio
import os
from   pathlib import Path
import subprocess

#-------------------------------------------------------------------------------

class Command:
    """
    An executable with arguments, environment, and working directory.

    Constructing a command does not run it.
    """

    class Env:

        def __init__(self, *, inherit=True, vars={}):
            """
            :param inherit:
              True to inherit the whole environment of this process, false to
              inherit none of it, or a sequence of names of env vars to
              inherit.
            :param vars:
              Env vars to set, overriding inherited ones.
            """
            self.__inherit = (
                inherit if isinstance(inherit, bool)
                else tuple( str(n) for n in inherit )
            )
            self.__vars = { str(n): str(v) for n, v in vars.items() }


        def __repr__(self):
            return f"Env(inherit={self.__inherit!r}, vars={self.__vars!r})"


        def with_vars(self, **vars):
            return self.__class__(inherit=self.__inherit, vars=self.__vars | vars)


        def environ(self, base=None) -> dict:
            """
            Returns the environment, inherited from `base` or this process's.
            """
            base = os.environ if base is None else base
            if self.__inherit is True:
                env = dict(base)
            elif self.__inherit is False:
                env = {}
            else:
                env = { n: base[n] for n in self.__inherit if n in base }
            return env | self.__vars



    def __init__(self, exe, args=(), *, env=Env(), cwd=None):
        """
        :param exe:
          Path to the executable.
        :param cwd:
          Working directory; if none, this process's.
        """
        self.__exe  = Path(exe)
        self.__args = tuple( str(a) for a in args )
        self.__env  = env
        self.__cwd  = None if cwd is None else Path(cwd)


    def __repr__(self):
        return (
            f"Command({str(self.__exe)!r}, {self.__args!r}, "
            f"env={self.__env!r}, cwd={self.__cwd!r})"
        )


    @property
    def exe(self) -> Path:
        return self.__exe


    @property
    def args(self):
        return self.__args


    @property
    def env(self):
        return self.__env


    @property
    def cwd(self):
        return self.__cwd


    @property
    def argv(self):
        return (str(self.__exe), *self.__args)


    def environ(self) -> dict:
        return self.__env.environ()


    def with_args(self, *args):
        """
        Returns a new command with `args` appended.
        """
        return self.__class__(
            self.__exe, self.__args + args, env=self.__env, cwd=self.__cwd)


    def with_env(self, **vars):
        """
        Returns a new command with additional env `vars`.
        """
        return self.__class__(
            self.__exe, self.__args,
            env=self.__env.with_vars(**vars), cwd=self.__cwd
        )


    def with_cwd(self, cwd):
        return self.__class__(self.__exe, self.__args, env=self.__env, cwd=cwd)


    def __call_args(self, args, kw_args):
        kw_args.setdefault("env", self.environ())
        kw_args.setdefault("cwd", self.__cwd)
        return [*self.argv, *( str(a) for a in args )], kw_args


    def run(self, *args, **kw_args) -> subprocess.CompletedProcess:
        """
        Runs the command with additional `args` and waits for it.

        Keyword args are passed to `subprocess.run()`.
        """
        argv, kw_args = self.__call_args(args, kw_args)
        return subprocess.run(argv, **kw_args)


    def popen(self, *args, **kw_args) -> subprocess.Popen:
        """
        Starts the command with additional `args`.

        Keyword args are passed to `subprocess.Popen`.
        """
        argv, kw_args = self.__call_args(args, kw_args)
        return subprocess.Popen(argv, **kw_args)


    async def start(self, *args, **kw_args) -> asyncio.subprocess.Process:
        """
        Starts the command with additional `args` as an async process.

        Keyword args are passed to `asyncio.create_subprocess_exec()`.
        """
        argv, kw_args = self.__call_args(args, kw_args)
        return await asyncio.create_subprocess_exec(*argv, **kw_args)



