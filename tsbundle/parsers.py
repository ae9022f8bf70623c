import os
from abc import ABC, abstractmethod
from typing import Dict, Optional, Type

from tsbundle.errors import ParseError
from tsbundle.models import ParsedFile


# Abstract base parser class
class AbstractDeclarationParser(ABC):
    """
    Turns one source file into the declaration / import / export records the
    collector consumes. Implementations must raise :class:`ParseError` when the
    file cannot be read or parsed.
    """
    extensions: tuple[str, ...] = ()

    @abstractmethod
    def parse_source(self, path: str, source: bytes) -> ParsedFile:
        ...

    def parse(self, path: str) -> ParsedFile:
        try:
            with open(path, "rb") as file:
                source = file.read()
        except OSError as exc:
            raise ParseError(path, exc.strerror or str(exc)) from exc
        return self.parse_source(path, source)


class DeclarationParserRegistry:
    """
    Singleton registry mapping file extensions to parser implementations.
    """
    _instance = None
    _parsers: Dict[str, Type[AbstractDeclarationParser]] = {}

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(DeclarationParserRegistry, cls).__new__(cls)
        return cls._instance

    @classmethod
    def register_parser(cls, parser: Type[AbstractDeclarationParser]) -> None:
        for ext in parser.extensions:
            cls._parsers[ext] = parser

    @classmethod
    def get_parser(cls, ext: str) -> Optional[Type[AbstractDeclarationParser]]:
        return cls._parsers.get(ext)

    @classmethod
    def get_parser_for_path(cls, path: str) -> Optional[Type[AbstractDeclarationParser]]:
        return cls.get_parser(os.path.splitext(path)[1])


class RegistryDeclarationParser(AbstractDeclarationParser):
    """
    Dispatches every file to the parser registered for its extension.
    Parser instances are created once per extension and reused.
    """

    def __init__(self) -> None:
        self._instances: Dict[Type[AbstractDeclarationParser], AbstractDeclarationParser] = {}

    def _get(self, path: str) -> AbstractDeclarationParser:
        parser_cls = DeclarationParserRegistry.get_parser_for_path(path)
        if parser_cls is None:
            raise ParseError(path, "no parser registered for this file type")
        if parser_cls not in self._instances:
            self._instances[parser_cls] = parser_cls()
        return self._instances[parser_cls]

    def parse(self, path: str) -> ParsedFile:
        return self._get(path).parse(path)

    def parse_source(self, path: str, source: bytes) -> ParsedFile:
        return self._get(path).parse_source(path, source)
