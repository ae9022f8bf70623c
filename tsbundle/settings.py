import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from tsbundle.errors import ConfigError
from tsbundle.helpers import normalize_path, strip_json_comments
from tsbundle.logger import BundleLogger as logger

DEFAULT_EXTENSIONS: tuple[str, ...] = (".ts", ".tsx", ".d.ts", ".js", ".jsx")
ROOT_MARKERS: tuple[str, ...] = ("tsconfig.json", "package.json", ".git")
MAX_ROOT_SEARCH_DEPTH = 10
TSCONFIG_FILE = "tsconfig.json"


class BundleSettings(BaseSettings):
    """Settings for a bundle run. Every field can be set via ``TSBUNDLE_*`` env vars."""

    model_config = SettingsConfigDict(
        env_prefix="TSBUNDLE_",
        extra="ignore",
    )

    project_root: Optional[str] = Field(
        None, description="Root directory of the TypeScript project."
    )
    base_url: Optional[str] = Field(
        None,
        description=(
            "Absolute `compilerOptions.baseUrl`. Non-relative specifiers and path "
            "aliases are resolved against it (falls back to `project_root`)."
        ),
    )
    aliases: Dict[str, str] = Field(
        default_factory=dict,
        description='Path aliases with trailing "*" removed, eg. {"@/": "src/"}.',
    )
    extensions: tuple[str, ...] = Field(
        default=DEFAULT_EXTENSIONS,
        description="File extensions probed, in order, when a specifier has none.",
    )
    ignored_dirs: set[str] = Field(
        default_factory=lambda: {
            "node_modules",
            ".git",
            ".hg",
            ".svn",
            "dist",
            "build",
            ".idea",
            ".vscode",
        },
        description="Directory names skipped when scanning for global declaration files.",
    )
    global_declarations: bool = Field(
        False,
        description=(
            "If True, names that cannot be resolved through imports fall back to "
            "declarations of global (import/export free) `.d.ts` files."
        ),
    )

    def require_project_root(self) -> str:
        if not self.project_root:
            raise ConfigError("project_root must be set to resolve modules")
        return normalize_path(self.project_root)

    def alias_base(self) -> str:
        if self.base_url:
            return normalize_path(self.base_url)
        return self.require_project_root()


class TsConfig(BaseModel):
    """The subset of a (merged) ``tsconfig.json`` the bundler cares about."""

    aliases: Dict[str, str] = Field(default_factory=dict)
    base_url: Optional[str] = None


def format_alias(paths: Dict[str, str]) -> Dict[str, str]:
    """Drop a trailing ``/*`` or ``*`` from alias keys and targets."""
    formatted: Dict[str, str] = {}
    for key, target in paths.items():
        key = key.removesuffix("/*").removesuffix("*")
        target = target.removesuffix("/*").removesuffix("*")
        formatted[key] = target
    return formatted


def _read_json(config_path: Path) -> Dict[str, Any]:
    try:
        data = json.loads(strip_json_comments(config_path.read_text(encoding="utf-8")))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.warning("Invalid tsconfig file", path=str(config_path), error=str(exc))
        return {}
    if not isinstance(data, dict):
        logger.warning("Invalid tsconfig file", path=str(config_path), error="not an object")
        return {}
    return data


def load_tsconfig(config_path: str | Path, _seen: Optional[set[str]] = None) -> TsConfig:
    """
    Read *config_path* and its ``extends`` chain. Values of a child config
    override the ones inherited from its parent.
    """
    path = Path(normalize_path(config_path))
    seen = _seen if _seen is not None else set()
    if str(path) in seen or not path.is_file():
        return TsConfig()
    seen.add(str(path))

    data = _read_json(path)
    result = TsConfig()

    extends = data.get("extends")
    if isinstance(extends, str) and extends:
        parent_path = Path(extends)
        if not parent_path.is_absolute():
            parent_path = path.parent / parent_path
        if parent_path.suffix != ".json":
            parent_path = parent_path.with_name(parent_path.name + ".json")
        result = load_tsconfig(parent_path, seen)

    options = data.get("compilerOptions") or {}
    if not isinstance(options, dict):
        return result

    base_url = options.get("baseUrl")
    if isinstance(base_url, str):
        result.base_url = normalize_path(path.parent / base_url)

    paths = options.get("paths") or {}
    if isinstance(paths, dict):
        # only the first target of every alias is honoured
        first_targets = {
            key: targets[0]
            for key, targets in paths.items()
            if isinstance(targets, list) and targets and isinstance(targets[0], str)
        }
        result.aliases.update(format_alias(first_targets))

    return result


def find_project_root(entry_file: str, project_root: Optional[str] = None) -> str:
    """
    Return *project_root* when given. Otherwise walk up from *entry_file*
    looking for a directory holding one of ``tsconfig.json``, ``package.json``
    or ``.git``; fall back to the entry file's directory.
    """
    if project_root:
        return normalize_path(project_root)

    start = os.path.dirname(normalize_path(entry_file))
    current = start
    for _ in range(MAX_ROOT_SEARCH_DEPTH):
        if any(os.path.exists(os.path.join(current, marker)) for marker in ROOT_MARKERS):
            return current
        parent = os.path.dirname(current)
        if parent == current:
            break
        current = parent
    return start


def load_settings(
    entry_file: str,
    project_root: Optional[str] = None,
    **overrides: Any,
) -> BundleSettings:
    """
    Build :class:`BundleSettings` for *entry_file*: locate the project root,
    merge its ``tsconfig.json`` and apply explicit *overrides* last.
    """
    if not entry_file:
        raise ConfigError("an entry file is required")

    root = find_project_root(entry_file, project_root)
    tsconfig = load_tsconfig(os.path.join(root, TSCONFIG_FILE))

    values: Dict[str, Any] = {
        "project_root": root,
        "aliases": tsconfig.aliases,
    }
    if tsconfig.base_url:
        values["base_url"] = tsconfig.base_url
    values.update({k: v for k, v in overrides.items() if v is not None})

    return BundleSettings(**values)
