from tsbundle import lang  # noqa: F401  registers the bundled parsers
from tsbundle.bundler import (
    TypeBundler,
    generate_batch_bundle,
    generate_batch_bundles_to_files,
    generate_bundle,
    parse_entry,
)
from tsbundle.errors import BundleError, ConfigError, ParseError, ResolutionError
from tsbundle.models import BatchFileResult, BatchResult, EntryError, EntryPoint
from tsbundle.settings import BundleSettings, load_settings

__all__ = [
    "TypeBundler",
    "generate_bundle",
    "generate_batch_bundle",
    "generate_batch_bundles_to_files",
    "parse_entry",
    "BundleError",
    "ConfigError",
    "ParseError",
    "ResolutionError",
    "BatchFileResult",
    "BatchResult",
    "EntryError",
    "EntryPoint",
    "BundleSettings",
    "load_settings",
]
