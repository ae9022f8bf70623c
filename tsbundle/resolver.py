import os
from typing import Dict, Optional, Sequence

from tsbundle.errors import ResolutionError
from tsbundle.helpers import normalize_path
from tsbundle.logger import BundleLogger as logger
from tsbundle.models import ModuleKind, ResolvedModule
from tsbundle.settings import DEFAULT_EXTENSIONS, BundleSettings

# `./a.js` written in TypeScript ESM style refers to `./a.ts` on disk.
_ESM_SUFFIX_MAP: Dict[str, tuple[str, ...]] = {
    ".js": (".ts", ".tsx", ".d.ts"),
    ".jsx": (".tsx",),
    ".mjs": (".mts",),
    ".cjs": (".cts",),
}


def _is_relative(specifier: str) -> bool:
    return specifier in (".", "..") or specifier.startswith(("./", "../"))


def _match_alias(specifier: str, aliases: Dict[str, str]) -> Optional[str]:
    """
    Substitute the longest alias key that prefixes *specifier*.
    Keys and targets are expected without their trailing ``*``.
    """
    best: Optional[str] = None
    for key in aliases:
        if not key or not specifier.startswith(key):
            continue
        if best is None or len(key) > len(best):
            best = key
    if best is None:
        return None
    return aliases[best] + specifier[len(best):]


class ModuleResolver:
    """
    Maps a module specifier found in an import or export statement to a file
    on disk, or marks it as an external package. Never raises.
    """

    def __init__(
        self,
        base_path: str,
        aliases: Optional[Dict[str, str]] = None,
        extensions: Sequence[str] = DEFAULT_EXTENSIONS,
    ) -> None:
        self.base_path = normalize_path(base_path)
        self.aliases = dict(aliases or {})
        self.extensions = tuple(extensions)

    @classmethod
    def from_settings(cls, settings: BundleSettings) -> "ModuleResolver":
        return cls(settings.alias_base(), settings.aliases, settings.extensions)

    def resolve(self, source_file: str, specifier: str) -> ResolvedModule:
        try:
            path = self.resolve_file(source_file, specifier)
        except ResolutionError as exc:
            logger.debug("Module treated as external package",
                         importer=exc.importer, specifier=exc.specifier)
            return ResolvedModule(kind=ModuleKind.PACKAGE, path=specifier)
        return ResolvedModule(kind=ModuleKind.FILE, path=path)

    def resolve_file(self, source_file: str, specifier: str) -> str:
        """
        Like :meth:`resolve` but raise :class:`ResolutionError` when no file
        matches.
        """
        if not specifier:
            raise ResolutionError(source_file, specifier)

        aliased = _match_alias(specifier, self.aliases)
        target = specifier if aliased is None else aliased

        if aliased is None and _is_relative(target):
            candidate = os.path.join(os.path.dirname(source_file), target)
        elif os.path.isabs(target):
            candidate = target
        else:
            candidate = os.path.join(self.base_path, target)

        try:
            found = self._probe(normalize_path(candidate))
        except (OSError, ValueError):
            found = None
        if found is None:
            raise ResolutionError(source_file, specifier)
        return found

    def _has_known_extension(self, path: str) -> bool:
        return path.endswith(self.extensions)

    def _probe(self, path: str) -> Optional[str]:
        if self._has_known_extension(path):
            if os.path.isfile(path):
                return path
            stem, suffix = os.path.splitext(path)
            for replacement in _ESM_SUFFIX_MAP.get(suffix, ()):
                if os.path.isfile(stem + replacement):
                    return stem + replacement

        for ext in self.extensions:
            if os.path.isfile(path + ext):
                return path + ext

        for ext in self.extensions:
            index_file = os.path.join(path, "index" + ext)
            if os.path.isfile(index_file):
                return index_file

        return None
