"""
Bundling entry points.

:func:`generate_bundle` bundles one declaration, :func:`generate_batch_bundle`
merges several into one text and :func:`generate_batch_bundles_to_files`
writes one ``.d.ts`` file per entry. All of them share the same pipeline:
collect, pick the reachable declarations, assign final names, rewrite, emit.
"""
import re
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from tsbundle.collector import DependencyCollector
from tsbundle.errors import ConfigError
from tsbundle.helpers import normalize_path, replace_identifiers, sanitize_file_name
from tsbundle.logger import BundleLogger as logger
from tsbundle.models import (
    BatchFileResult,
    BatchResult,
    Declaration,
    DeclarationId,
    EntryError,
    EntryPoint,
    FinalNameAssignment,
)
from tsbundle.naming import NameResolver
from tsbundle.parsers import AbstractDeclarationParser
from tsbundle.settings import BundleSettings, load_settings

OUTPUT_SUFFIX = ".d.ts"

_DRIVE_PREFIX = re.compile(r"^[A-Za-z]:[\\/]")


def parse_entry(entry: str) -> EntryPoint:
    """
    Parse ``path:TypeName`` or ``path:TypeName:Alias``.

    A Windows drive prefix (``C:\\src\\a.ts:User``) is kept as part of the path.
    Raises :class:`ConfigError` on a malformed entry.
    """
    text = entry.strip()
    drive = ""
    if _DRIVE_PREFIX.match(text):
        drive, text = text[:2], text[2:]

    parts = text.split(":")
    if len(parts) not in (2, 3):
        raise ConfigError(f"invalid entry {entry!r}, expected 'path:Type' or 'path:Type:Alias'")

    path = parts[0].strip()
    type_name = parts[1].strip()
    alias = parts[2].strip() if len(parts) == 3 else None
    if not path:
        raise ConfigError(f"invalid entry {entry!r}: empty file path")
    if not type_name:
        raise ConfigError(f"invalid entry {entry!r}: empty type name")
    if alias == "":
        raise ConfigError(f"invalid entry {entry!r}: empty alias")

    return EntryPoint(file_path=normalize_path(drive + path), type_name=type_name, alias=alias, raw=entry)


class ReferenceRewriter:
    """Rewrites declaration source text to use final names."""

    def __init__(self, collector: DependencyCollector, names: FinalNameAssignment) -> None:
        self.collector = collector
        self.names = names

    def replacements(self, declaration: Declaration) -> Dict[str, str]:
        mapping = {declaration.name: self.names[declaration.id]}
        for ref in declaration.referenced_names:
            match = self.collector.match_name(declaration.file_path, ref)
            if match is None:
                continue
            matched, target = match
            if target in self.names and matched not in mapping:
                mapping[matched] = self.names[target]
        return mapping

    def rewrite(self, declaration: Declaration) -> str:
        return replace_identifiers(declaration.raw, self.replacements(declaration))

    def emit(self, decl_ids: Iterable[DeclarationId]) -> str:
        rendered: List[Tuple[str, str]] = []
        for decl_id in decl_ids:
            declaration = self.collector.registry[decl_id]
            rendered.append((self.names[decl_id], self.rewrite(declaration)))
        if not rendered:
            return ""
        rendered.sort(key=lambda item: item[0])
        return "\n\n".join(text.strip() for _, text in rendered) + "\n"


class TypeBundler:
    """
    One bundle run. Files are parsed at most once per instance, so several
    requests against the same bundler share their parse work. Final names are
    computed from scratch on every :meth:`bundle` call, from the scopes of the
    files that call reaches, so a request names its declarations the same way
    whatever was bundled before it.
    """

    def __init__(
        self,
        settings: BundleSettings,
        parser: Optional[AbstractDeclarationParser] = None,
    ) -> None:
        self.settings = settings
        self.collector = DependencyCollector(settings, parser=parser)
        self.name_resolver = NameResolver()

    def locate(self, entry: EntryPoint) -> Optional[DeclarationId]:
        decl_id = self.collector.find(entry.file_path, entry.type_name)
        if decl_id is None:
            logger.info("Type not found", file=entry.file_path, type=entry.type_name)
        return decl_id

    def bundle(self, entries: Sequence[EntryPoint]) -> str:
        """Bundle *entries* into one text. Entries that cannot be found are skipped."""
        entry_aliases: Dict[DeclarationId, str] = {}
        roots: List[DeclarationId] = []
        entry_files: List[str] = []
        for entry in entries:
            decl_id = self.locate(entry)
            if decl_id is None:
                continue
            roots.append(decl_id)
            entry_files.append(entry.file_path)
            if entry.alias:
                entry_aliases[decl_id] = entry.alias

        if not roots:
            return ""

        kept = self.collector.reachable(roots)
        # only scopes this request reaches take part in naming
        names = self.name_resolver.resolve(
            [self.collector.registry[decl_id] for decl_id in kept],
            self.collector.scopes_for(entry_files, kept),
            entry_aliases,
        )
        logger.debug("Bundled declarations", entries=len(roots), declarations=len(kept))
        return ReferenceRewriter(self.collector, names).emit(kept)


def generate_bundle(
    entry_file: str,
    type_name: str,
    project_root: Optional[str] = None,
    alias: Optional[str] = None,
    settings: Optional[BundleSettings] = None,
    parser: Optional[AbstractDeclarationParser] = None,
) -> str:
    """
    Bundle *type_name* declared in (or imported into) *entry_file* together with
    everything it depends on. Returns ``""`` when the type cannot be found.
    """
    if not type_name:
        raise ConfigError("a type name is required")
    settings = settings or load_settings(entry_file, project_root)
    entry = EntryPoint(file_path=normalize_path(entry_file), type_name=type_name, alias=alias)
    return TypeBundler(settings, parser=parser).bundle([entry])


def _prepare_batch(
    entries: Sequence[str],
    project_root: Optional[str],
    settings: Optional[BundleSettings],
) -> Tuple[List[EntryPoint], List[EntryError], Optional[BundleSettings]]:
    parsed: List[EntryPoint] = []
    errors: List[EntryError] = []
    for raw in entries:
        try:
            parsed.append(parse_entry(raw))
        except ConfigError as exc:
            logger.error("Invalid batch entry", entry=raw, message=str(exc))
            errors.append(EntryError(entry=raw, message=str(exc)))

    if settings is None and parsed:
        settings = load_settings(parsed[0].file_path, project_root)
    return parsed, errors, settings


def generate_batch_bundle(
    entries: Sequence[str],
    project_root: Optional[str] = None,
    settings: Optional[BundleSettings] = None,
    parser: Optional[AbstractDeclarationParser] = None,
) -> BatchResult:
    """Bundle every entry string into one merged text, names unique across all of them."""
    parsed, errors, settings = _prepare_batch(entries, project_root, settings)
    if settings is None:
        return BatchResult(errors=errors)

    content = TypeBundler(settings, parser=parser).bundle(parsed)
    return BatchResult(content=content, errors=errors)


def generate_batch_bundles_to_files(
    entries: Sequence[str],
    output_dir: str,
    project_root: Optional[str] = None,
    settings: Optional[BundleSettings] = None,
    parser: Optional[AbstractDeclarationParser] = None,
) -> BatchResult:
    """
    Write one ``{Alias or TypeName}.d.ts`` per entry into *output_dir*.
    Entries whose type cannot be found produce no file.
    """
    parsed, errors, settings = _prepare_batch(entries, project_root, settings)
    if settings is None:
        return BatchResult(errors=errors)

    out_dir = Path(output_dir)
    bundler = TypeBundler(settings, parser=parser)
    files: List[BatchFileResult] = []
    for entry in parsed:
        content = bundler.bundle([entry])
        if not content:
            continue

        file_name = sanitize_file_name(entry.output_name) + OUTPUT_SUFFIX
        out_dir.mkdir(parents=True, exist_ok=True)
        target = out_dir / file_name
        target.write_text(content, encoding="utf-8")
        logger.info("Wrote bundle", entry=entry.raw, path=str(target), size=len(content))
        files.append(
            BatchFileResult(
                entry=entry,
                file_name=file_name,
                file_path=normalize_path(target),
                content_size=len(content),
            )
        )
    return BatchResult(files=files, errors=errors)
