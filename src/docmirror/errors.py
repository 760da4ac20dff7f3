"""Exception hierarchy shared by the sync engine and its collaborators.

- ``ResolutionError``: project not found or GitHub sync disabled.  The
  engine degrades this to a logged no-op.
- ``ParseError``: an unparsable version string or navigation manifest.
  Aborts the reference being processed.
- ``ConfigError``: a reference or project setting that cannot be turned
  into local paths.
- ``RemoteError``: a remote call failed (HTTP error, timeout, transport).
  ``NotFoundError`` narrows it to "the path or ref does not exist".

Local filesystem failures are left as ``OSError`` and propagate.
"""


class DocMirrorError(Exception):
    """Base class for all docmirror errors."""


class ResolutionError(DocMirrorError):
    """A project handle could not be resolved into a syncable project."""


class ParseError(DocMirrorError):
    """Input could not be parsed (semver string, manifest document)."""


class ConfigError(DocMirrorError):
    """Configuration or reference value is unusable."""


class RemoteError(DocMirrorError):
    """A call to the remote host failed."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(RemoteError):
    """The requested remote path or reference does not exist."""
