"""
Dependency collection.

Every visited file gets a :data:`FileScope` mapping the names visible in that
file to the declarations they denote. Scopes are built depth first: local
declarations, then imports (descending into the imported files), then exports
and finally the default export. A file's (still empty) scope is stored in the
resolution maps *before* any descent, so import cycles terminate; a file
reached again while its own scope is still being filled sees only the entries
added so far.
"""
import os
from collections import deque
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional

from tsbundle.errors import ParseError
from tsbundle.helpers import matches_gitignore, normalize_path, parse_gitignore
from tsbundle.logger import BundleLogger as logger
from tsbundle.models import (
    DEFAULT_EXPORT_KEY,
    Declaration,
    DeclarationId,
    FileScope,
    ImportKind,
    ParsedExport,
    ParsedFile,
    ParsedImport,
    ResolutionMaps,
)
from tsbundle.parsers import AbstractDeclarationParser, RegistryDeclarationParser
from tsbundle.resolver import ModuleResolver
from tsbundle.settings import BundleSettings


class DeclarationRegistry:
    """All declarations discovered during one bundle run, keyed by id."""

    def __init__(self) -> None:
        self._declarations: Dict[DeclarationId, Declaration] = {}

    def register(self, declaration: Declaration) -> None:
        # write-once: a file is resolved a single time
        self._declarations.setdefault(declaration.id, declaration)

    def get(self, decl_id: DeclarationId) -> Optional[Declaration]:
        return self._declarations.get(decl_id)

    def __getitem__(self, decl_id: DeclarationId) -> Declaration:
        return self._declarations[decl_id]

    def __contains__(self, decl_id: object) -> bool:
        return decl_id in self._declarations

    def __len__(self) -> int:
        return len(self._declarations)

    def __iter__(self) -> Iterator[Declaration]:
        return iter(self._declarations.values())


class DependencyCollector:
    """
    Owns the declaration registry and the resolution maps for one bundle run.
    Instances are independent of each other; nothing is shared across runs.
    """

    def __init__(
        self,
        settings: BundleSettings,
        parser: Optional[AbstractDeclarationParser] = None,
        resolver: Optional[ModuleResolver] = None,
    ) -> None:
        self.settings = settings
        self.parser = parser or RegistryDeclarationParser()
        self.resolver = resolver or ModuleResolver.from_settings(settings)
        self.registry = DeclarationRegistry()
        self.resolution_maps: ResolutionMaps = {}
        self._global_names: Optional[Dict[str, DeclarationId]] = None
        # files without any import / export statement
        self._script_files: set[str] = set()
        # file -> files its imports and re-exports resolved to
        self._dependencies: Dict[str, List[str]] = {}

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #
    def collect(self, entry_file: str) -> FileScope:
        """Resolve *entry_file* and, transitively, every file it depends on."""
        return self.resolve_file(normalize_path(entry_file))

    def find(self, entry_file: str, type_name: str) -> Optional[DeclarationId]:
        """Return the id *type_name* denotes inside *entry_file*, if any."""
        scope = self.collect(entry_file)
        decl_id = scope.get(type_name)
        if decl_id is None and self.settings.global_declarations:
            decl_id = self._lookup_global(type_name)
        return decl_id

    def resolve_file(self, file_path: str) -> FileScope:
        if file_path in self.resolution_maps:
            return self.resolution_maps[file_path]

        scope: FileScope = {}
        self.resolution_maps[file_path] = scope

        parsed = self._parse(file_path)
        if parsed is None:
            return scope

        if not (parsed.imports or parsed.exports or parsed.default_export) \
                and not any(d.raw.startswith("export ") for d in parsed.declarations):
            self._script_files.add(file_path)

        for parsed_decl in parsed.declarations:
            decl_id = DeclarationId(file_path, parsed_decl.name)
            self.registry.register(
                Declaration(
                    id=decl_id,
                    name=parsed_decl.name,
                    kind=parsed_decl.kind,
                    raw=parsed_decl.raw,
                    referenced_names=set(parsed_decl.referenced_names),
                    file_path=file_path,
                )
            )
            scope[parsed_decl.name] = decl_id

        for imp in parsed.imports:
            self._link_import(file_path, scope, imp)

        for exp in parsed.exports:
            self._link_export(file_path, scope, exp)

        if parsed.default_export and parsed.default_export in scope:
            scope[DEFAULT_EXPORT_KEY] = scope[parsed.default_export]

        return scope

    def resolve_name(self, file_path: str, name: str) -> Optional[DeclarationId]:
        """
        Resolve a name referenced inside *file_path*.

        Dotted names without an exact entry fall back to their longest dotted
        prefix in scope (``Status.Active`` -> ``Status``).
        """
        match = self.match_name(file_path, name)
        return match[1] if match else None

    def match_name(self, file_path: str, name: str) -> Optional[tuple[str, DeclarationId]]:
        """Like :meth:`resolve_name` but also return the matched (prefix) name."""
        scope = self.resolution_maps.get(file_path, {})
        candidate = name
        while True:
            if candidate in scope:
                return candidate, scope[candidate]
            if "." not in candidate:
                break
            candidate = candidate.rsplit(".", 1)[0]

        if self.settings.global_declarations:
            head = name.split(".", 1)[0]
            decl_id = self._lookup_global(head)
            if decl_id is not None:
                return head, decl_id
        return None

    def reachable(self, entry_ids: Iterable[DeclarationId]) -> List[DeclarationId]:
        """
        Ids of *entry_ids* plus everything they reference, transitively.
        Returned sorted by ``(file_path, name)``.
        """
        seen: set[DeclarationId] = set()
        queue = deque(sorted(set(entry_ids)))
        while queue:
            decl_id = queue.popleft()
            if decl_id in seen or decl_id not in self.registry:
                continue
            seen.add(decl_id)
            declaration = self.registry[decl_id]
            for ref in sorted(declaration.referenced_names):
                target = self.resolve_name(declaration.file_path, ref)
                if target is not None and target not in seen:
                    queue.append(target)
        return sorted(seen)

    def reached_files(self, entry_files: Iterable[str]) -> set[str]:
        """Already resolved files reachable from *entry_files* through imports and re-exports."""
        seen: set[str] = set()
        stack = [normalize_path(f) for f in entry_files]
        while stack:
            file_path = stack.pop()
            if file_path in seen or file_path not in self.resolution_maps:
                continue
            seen.add(file_path)
            stack.extend(self._dependencies.get(file_path, ()))
        return seen

    def scopes_for(self, entry_files: Iterable[str], decl_ids: Iterable[DeclarationId]) -> ResolutionMaps:
        """
        The resolution maps restricted to files reached from *entry_files* plus
        the files declaring *decl_ids*. Files visited only for other entries of
        the same run are left out, so their aliases do not leak into naming.
        """
        files = self.reached_files(entry_files)
        files.update(self.reached_files(d.file_path for d in decl_ids))
        return {path: self.resolution_maps[path] for path in sorted(files)}

    # ------------------------------------------------------------------ #
    # Scope construction
    # ------------------------------------------------------------------ #
    def _parse(self, file_path: str) -> Optional[ParsedFile]:
        try:
            return self.parser.parse(file_path)
        except ParseError as exc:
            logger.warning("Failed to parse file, using empty scope", path=file_path, reason=exc.reason)
            return None

    def _resolve_target(self, file_path: str, module: str) -> Optional[FileScope]:
        resolved = self.resolver.resolve(file_path, module)
        if not resolved.is_file:
            return None
        self._dependencies.setdefault(file_path, []).append(resolved.path)
        return self.resolve_file(resolved.path)

    def _link_import(self, file_path: str, scope: FileScope, imp: ParsedImport) -> None:
        target = self._resolve_target(file_path, imp.module)
        if target is None:
            return

        if imp.kind == ImportKind.NAMESPACE:
            for member, decl_id in list(target.items()):
                if member != DEFAULT_EXPORT_KEY:
                    scope[f"{imp.local_name}.{member}"] = decl_id
        elif imp.kind == ImportKind.DEFAULT:
            if DEFAULT_EXPORT_KEY in target:
                scope[imp.local_name] = target[DEFAULT_EXPORT_KEY]
        elif imp.imported_name in target:
            scope[imp.local_name] = target[imp.imported_name]

    def _link_export(self, file_path: str, scope: FileScope, exp: ParsedExport) -> None:
        if exp.module is None:
            # export { X as Y } of a name already visible here
            if exp.local_name and exp.exported_name and exp.local_name in scope:
                scope[exp.exported_name] = scope[exp.local_name]
            return

        target = self._resolve_target(file_path, exp.module)
        if target is None:
            return

        if exp.namespace and exp.exported_name:
            for member, decl_id in list(target.items()):
                if member != DEFAULT_EXPORT_KEY:
                    scope[f"{exp.exported_name}.{member}"] = decl_id
        elif exp.wildcard:
            # explicit names of this file win over star re-exports
            for member, decl_id in list(target.items()):
                if member != DEFAULT_EXPORT_KEY:
                    scope.setdefault(member, decl_id)
        elif exp.local_name and exp.exported_name and exp.local_name in target:
            scope[exp.exported_name] = target[exp.local_name]

    # ------------------------------------------------------------------ #
    # Global (script scoped) declaration files
    # ------------------------------------------------------------------ #
    def _lookup_global(self, name: str) -> Optional[DeclarationId]:
        if self._global_names is None:
            self._global_names = self._scan_global_declarations()
        return self._global_names.get(name)

    def _iter_declaration_files(self) -> Iterator[str]:
        root = Path(self.settings.require_project_root())
        gitignore = parse_gitignore(root)
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames[:] = sorted(d for d in dirnames if d not in self.settings.ignored_dirs)
            for filename in sorted(filenames):
                if not filename.endswith(".d.ts"):
                    continue
                path = Path(dirpath) / filename
                if matches_gitignore(path.relative_to(root).as_posix(), gitignore):
                    continue
                yield normalize_path(path)

    def _scan_global_declarations(self) -> Dict[str, DeclarationId]:
        names: Dict[str, DeclarationId] = {}
        for path in sorted(self._iter_declaration_files()):
            scope = self.resolve_file(path)
            # a file with imports or exports is a module, not a global script
            if path not in self._script_files:
                continue
            for name, decl_id in scope.items():
                names.setdefault(name, decl_id)
        logger.debug("Scanned global declarations", count=len(names))
        return names
