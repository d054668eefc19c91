"""
Exceptions raised by bintest.
"""

#-------------------------------------------------------------------------------

class BuildError(RuntimeError):
    """
    The cargo build could not be run, or failed.

    The same instance is raised to every caller sharing the failed build.
    """

    def __init__(self, message, *, returncode=None, diagnostics=""):
        super().__init__(message)
        self.returncode = returncode
        self.diagnostics = diagnostics


    def __str__(self):
        msg = super().__str__()
        return f"{msg}\n{self.diagnostics}" if self.diagnostics else msg



class ParseError(ValueError):
    """
    A line of cargo's message stream could not be decoded.
    """

    def __init__(self, message, line=None):
        super().__init__(message)
        self.line = line



#-------------------------------------------------------------------------------

class ArtifactNotFound(LookupError):
    """
    No executable with the given target name.
    """

    def __init__(self, name, package=None):
        super().__init__(
            f"no executable: {name}" if package is None
            else f"no executable in package {package}: {name}"
        )
        self.name = name
        self.package = package



class AmbiguousArtifact(LookupError):
    """
    More than one package builds an executable with the given target name.
    """

    def __init__(self, name, packages):
        packages = tuple(packages)
        super().__init__(
            f"ambiguous executable: {name} in packages {', '.join(packages)}")
        self.name = name
        self.packages = packages



class ConfigMismatchError(RuntimeError):
    """
    The shared build cache was requested with a different configuration.
    """

    def __init__(self, config, requested):
        super().__init__(
            f"shared build already configured with {config}, not {requested}")
        self.config = config
        self.requested = requested



