class BundleError(Exception):
    """Base class for all errors raised by ``tsbundle``."""


class ResolutionError(BundleError):
    """A module specifier could not be mapped to a file on disk."""

    def __init__(self, importer: str, specifier: str) -> None:
        super().__init__(f"cannot resolve {specifier!r} imported from {importer}")
        self.importer = importer
        self.specifier = specifier


class ParseError(BundleError):
    """A source file could not be read or parsed."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"failed to parse {path}: {reason}")
        self.path = path
        self.reason = reason


class ConfigError(BundleError, ValueError):
    """Malformed entry string or missing required configuration."""
