import re
from typing import Optional

from tree_sitter import Language, Node, Parser
import tree_sitter_typescript as tsts  # pip install tree_sitter_typescript

from tsbundle.errors import ParseError
from tsbundle.logger import BundleLogger as logger
from tsbundle.models import (
    DeclarationKind,
    ImportKind,
    ParsedDeclaration,
    ParsedExport,
    ParsedFile,
    ParsedImport,
)
from tsbundle.parsers import AbstractDeclarationParser

# ---------------------------------------------------------------------- #
TS_LANGUAGE = Language(tsts.language_typescript())
TSX_LANGUAGE = Language(tsts.language_tsx())
_parsers: dict[str, Parser] = {}


def _get_parser(tsx: bool) -> Parser:
    key = "tsx" if tsx else "typescript"
    if key not in _parsers:
        _parsers[key] = Parser(TSX_LANGUAGE if tsx else TS_LANGUAGE)
    return _parsers[key]
# ---------------------------------------------------------------------- #

_TSX_SUFFIXES = (".tsx", ".jsx")


def _text(node: Optional[Node]) -> str:
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf8")


def _string_value(node: Optional[Node]) -> str:
    """Return the contents of a string literal node without its quotes."""
    raw = _text(node).strip()
    if len(raw) >= 2 and raw[0] in "\"'`" and raw[-1] == raw[0]:
        return raw[1:-1]
    return raw


def _first_child(node: Node, *types: str) -> Optional[Node]:
    return next((c for c in node.named_children if c.type in types), None)


class TypeScriptDeclarationParser(AbstractDeclarationParser):
    """
    Extracts top-level type aliases, interfaces and enums together with the
    file's import and export statements.
    """
    extensions = (".ts", ".tsx", ".mts", ".cts", ".js", ".jsx")

    _DECLARATION_NODES: dict[str, DeclarationKind] = {
        "type_alias_declaration": DeclarationKind.TYPE_ALIAS,
        "interface_declaration": DeclarationKind.INTERFACE,
        "enum_declaration": DeclarationKind.ENUM,
    }

    def parse_source(self, path: str, source: bytes) -> ParsedFile:
        try:
            source.decode("utf8")
        except UnicodeDecodeError as exc:
            raise ParseError(path, f"not valid UTF-8: {exc.reason}") from exc

        tree = _get_parser(path.endswith(_TSX_SUFFIXES)).parse(source)
        root_node = tree.root_node
        if root_node.has_error:
            logger.debug("TS parser: syntax errors, continuing with partial tree", path=path)

        parsed = ParsedFile(path=path)
        for child in root_node.named_children:
            self._process_node(child, parsed)
        return parsed

    def _process_node(self, node: Node, parsed: ParsedFile) -> None:
        if node.type in self._DECLARATION_NODES:
            self._handle_declaration(node, parsed)
        elif node.type == "import_statement":
            self._handle_import(node, parsed)
        elif node.type == "export_statement":
            self._handle_export(node, parsed)
        elif node.type == "ambient_declaration":
            self._handle_ambient(node, parsed)

    # ---- declarations ------------------------------------------------- #
    def _handle_declaration(
        self,
        node: Node,
        parsed: ParsedFile,
        raw: Optional[str] = None,
    ) -> Optional[str]:
        name_node = node.child_by_field_name("name")
        name = _text(name_node)
        if not name:
            return None

        parsed.declarations.append(
            ParsedDeclaration(
                name=name,
                kind=self._DECLARATION_NODES[node.type],
                raw=raw if raw is not None else _text(node),
                referenced_names=self._collect_type_refs(node, name),
            )
        )
        return name

    def _handle_ambient(self, node: Node, parsed: ParsedFile, prefix: str = "") -> Optional[str]:
        """`declare interface Foo {}` and friends. Module / global blocks are skipped."""
        decl = _first_child(node, *self._DECLARATION_NODES)
        if decl is None:
            return None
        return self._handle_declaration(decl, parsed, raw=prefix + _text(node))

    def _collect_type_refs(self, node: Node, own_name: str) -> set[str]:
        """
        Names of all types referenced inside *node*. Qualified names are kept
        dotted (``ns.Foo``); names bound inside the declaration itself (generic
        parameters, mapped-type keys, ``infer`` targets) are excluded.
        """
        refs: set[str] = set()
        bound: set[str] = set()

        stack = [node]
        while stack:
            current = stack.pop()
            kind = current.type

            if kind == "nested_type_identifier":
                refs.add(re.sub(r"\s+", "", _text(current)))
                continue
            if kind == "type_query":
                # typeof x refers to values
                continue
            if kind == "type_identifier":
                refs.add(_text(current))
            elif kind in ("type_parameter", "mapped_type_clause"):
                bound_name = current.child_by_field_name("name") \
                    or _first_child(current, "type_identifier")
                if bound_name is not None:
                    bound.add(_text(bound_name))
            elif kind == "infer_type":
                ident = _first_child(current, "type_identifier")
                if ident is not None:
                    bound.add(_text(ident))

            stack.extend(current.children)

        refs -= bound
        refs.discard(own_name)
        refs.discard("")
        return refs

    # ---- imports ------------------------------------------------------ #
    def _handle_import(self, node: Node, parsed: ParsedFile) -> None:
        raw = _text(node)
        source_node = node.child_by_field_name("source") or _first_child(node, "string")

        require = _first_child(node, "import_require_clause")
        if require is not None:
            # import x = require('./mod')
            ident = _first_child(require, "identifier")
            module = _string_value(require.child_by_field_name("source") or _first_child(require, "string"))
            if ident is not None and module:
                parsed.imports.append(
                    ParsedImport(local_name=_text(ident), imported_name="*",
                                 kind=ImportKind.NAMESPACE, module=module, raw=raw)
                )
            return

        module = _string_value(source_node)
        clause = _first_child(node, "import_clause")
        if clause is None or not module:
            # side-effect import
            return

        for child in clause.named_children:
            if child.type == "identifier":
                parsed.imports.append(
                    ParsedImport(local_name=_text(child), imported_name="default",
                                 kind=ImportKind.DEFAULT, module=module, raw=raw)
                )
            elif child.type == "namespace_import":
                ident = _first_child(child, "identifier")
                if ident is not None:
                    parsed.imports.append(
                        ParsedImport(local_name=_text(ident), imported_name="*",
                                     kind=ImportKind.NAMESPACE, module=module, raw=raw)
                    )
            elif child.type == "named_imports":
                for spec in child.named_children:
                    if spec.type != "import_specifier":
                        continue
                    imported = _string_value(spec.child_by_field_name("name"))
                    local = _text(spec.child_by_field_name("alias")) or imported
                    if not imported:
                        continue
                    kind = ImportKind.DEFAULT if imported == "default" else ImportKind.NAMED
                    parsed.imports.append(
                        ParsedImport(local_name=local, imported_name=imported,
                                     kind=kind, module=module, raw=raw)
                    )

    # ---- exports ------------------------------------------------------ #
    def _handle_export(self, node: Node, parsed: ParsedFile) -> None:
        """
        Handle every `export …` form:

        • `export interface Foo {}` / `export default interface Foo {}`
        • `export default Foo;` and `export = Foo;`
        • `export { a as b }` with or without `from '…'`
        • `export * from '…'` and `export * as ns from '…'`
        """
        raw = _text(node)
        tokens = {c.type for c in node.children if not c.is_named}
        is_default = "default" in tokens

        declaration = node.child_by_field_name("declaration") \
            or _first_child(node, *self._DECLARATION_NODES, "ambient_declaration")
        if declaration is not None:
            if declaration.type in self._DECLARATION_NODES:
                name = self._handle_declaration(declaration, parsed, raw="export " + _text(declaration))
            elif declaration.type == "ambient_declaration":
                name = self._handle_ambient(declaration, parsed, prefix="export ")
            else:
                # classes, functions, variables carry no type declaration
                name = None
            if is_default and name:
                parsed.default_export = name
            return

        if is_default or "=" in tokens:
            value = node.child_by_field_name("value") or _first_child(node, "identifier")
            if value is not None and value.type == "identifier":
                parsed.default_export = _text(value)
            return

        source_node = node.child_by_field_name("source") or _first_child(node, "string")
        module = _string_value(source_node) if source_node is not None else None

        namespace = _first_child(node, "namespace_export")
        clause = _first_child(node, "export_clause")
        if namespace is not None:
            names = [c for c in namespace.named_children if c.type in ("identifier", "string")]
            if names and module:
                parsed.exports.append(
                    ParsedExport(exported_name=_string_value(names[-1]), module=module,
                                 wildcard=True, namespace=True, raw=raw)
                )
        elif clause is not None:
            for spec in clause.named_children:
                if spec.type != "export_specifier":
                    continue
                local = _string_value(spec.child_by_field_name("name"))
                exported = _string_value(spec.child_by_field_name("alias")) or local
                if not local:
                    continue
                parsed.exports.append(
                    ParsedExport(exported_name=exported, local_name=local, module=module, raw=raw)
                )
        elif module and "*" in tokens:
            parsed.exports.append(ParsedExport(module=module, wildcard=True, raw=raw))
        else:
            logger.debug("TS parser: unhandled export statement", path=parsed.path, raw=raw)
