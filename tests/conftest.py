from collections import Counter
from pathlib import Path
from typing import Callable, Dict

import pytest

from tsbundle.lang.typescript import TypeScriptDeclarationParser
from tsbundle.models import ParsedFile
from tsbundle.settings import BundleSettings


class CountingParser(TypeScriptDeclarationParser):
    """TypeScript parser remembering how often every file was parsed."""

    def __init__(self) -> None:
        self.calls: Counter = Counter()

    def parse(self, path: str) -> ParsedFile:
        self.calls[path] += 1
        return super().parse(path)


@pytest.fixture()
def write_files(tmp_path: Path) -> Callable[[Dict[str, str]], Path]:
    """Write ``{relative_path: source}`` under *tmp_path* and return the root."""

    def _write(files: Dict[str, str]) -> Path:
        for rel, text in files.items():
            path = tmp_path / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        return tmp_path

    return _write


@pytest.fixture()
def counting_parser() -> CountingParser:
    return CountingParser()


@pytest.fixture()
def settings(tmp_path: Path) -> BundleSettings:
    return BundleSettings(project_root=str(tmp_path))
