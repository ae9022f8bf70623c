from tsbundle.parsers import DeclarationParserRegistry

from .typescript import TypeScriptDeclarationParser

DeclarationParserRegistry.register_parser(TypeScriptDeclarationParser)
