from enum import Enum
from typing import Dict, List, NamedTuple, Optional, Set

from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class DeclarationKind(str, Enum):
    # type Foo = ...
    TYPE_ALIAS = "type_alias"
    # interface Foo { ... }
    INTERFACE = "interface"
    # enum Foo { ... }
    ENUM = "enum"


class ImportKind(str, Enum):
    DEFAULT = "default"
    NAMESPACE = "namespace"
    NAMED = "named"


class ModuleKind(str, Enum):
    FILE = "file"
    PACKAGE = "package"


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------


class DeclarationId(NamedTuple):
    """Globally unique identity of a declaration: absolute file path + declared name."""
    file_path: str
    name: str

    def __str__(self) -> str:
        return f"{self.file_path}:{self.name}"


# Local name visible in one file -> declaration it refers to. Besides plain names
# a scope holds dotted namespace members ("ns.Foo") and the synthetic "default".
FileScope = Dict[str, DeclarationId]
# Absolute file path -> scope. Doubles as the "already visited" guard.
ResolutionMaps = Dict[str, FileScope]
FinalNameAssignment = Dict[DeclarationId, str]

DEFAULT_EXPORT_KEY = "default"


# ---------------------------------------------------------------------------
# Parser output
# ---------------------------------------------------------------------------


class ParsedDeclaration(BaseModel):
    name: str
    kind: DeclarationKind
    raw: str
    referenced_names: Set[str] = Field(default_factory=set)


class ParsedImport(BaseModel):
    local_name: str
    imported_name: str  # "default" for default imports, "*" for namespace imports
    kind: ImportKind
    module: str
    raw: str = ""


class ParsedExport(BaseModel):
    exported_name: Optional[str] = None  # None for `export * from ...`
    local_name: Optional[str] = None  # name inside this file or the source module
    module: Optional[str] = None  # set for re-exports
    wildcard: bool = False
    namespace: bool = False  # export * as ns from ...
    raw: str = ""


class ParsedFile(BaseModel):
    path: str  # absolute path
    declarations: List[ParsedDeclaration] = Field(default_factory=list)
    imports: List[ParsedImport] = Field(default_factory=list)
    exports: List[ParsedExport] = Field(default_factory=list)
    default_export: Optional[str] = None  # identifier of `export default Foo`


# ---------------------------------------------------------------------------
# Collected state
# ---------------------------------------------------------------------------


class Declaration(BaseModel):
    id: DeclarationId
    name: str
    kind: DeclarationKind
    raw: str
    referenced_names: Set[str] = Field(default_factory=set)
    file_path: str


class ResolvedModule(BaseModel):
    kind: ModuleKind
    path: str  # absolute file path, or the original specifier for packages

    @property
    def is_file(self) -> bool:
        return self.kind == ModuleKind.FILE


# ---------------------------------------------------------------------------
# Public request / result containers
# ---------------------------------------------------------------------------


class EntryPoint(BaseModel):
    file_path: str
    type_name: str
    alias: Optional[str] = None
    raw: str = ""  # entry string as given by the caller

    @property
    def output_name(self) -> str:
        return self.alias or self.type_name


class BatchFileResult(BaseModel):
    entry: EntryPoint
    file_name: str
    file_path: str
    content_size: int


class EntryError(BaseModel):
    entry: str
    message: str


class BatchResult(BaseModel):
    content: str = ""  # merged bundle, empty in per-file mode
    files: List[BatchFileResult] = Field(default_factory=list)
    errors: List[EntryError] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors
