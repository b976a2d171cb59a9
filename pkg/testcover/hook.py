"""Import hook that swaps coverable modules for their instrumented form."""

from __future__ import annotations

import ast
import importlib
import importlib.abc
import importlib.machinery
import importlib.util
import os
import sys
from types import CodeType, ModuleType
from typing import Callable, Iterable, Iterator

Transform = Callable[[str, str], "ast.Module | str"]
PrepareModule = Callable[[ModuleType], None]


def normalize_path(path: str) -> str:
    """Resolved absolute path, case-folded on platforms with case-insensitive paths."""
    return os.path.normcase(os.path.realpath(path))


class SourceFileSet:
    """Immutable set of coverable source paths."""

    def __init__(self, paths: Iterable[str]) -> None:
        self._paths = frozenset(normalize_path(path) for path in paths)

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, str):
            return False
        return normalize_path(path) in self._paths

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._paths))

    def __len__(self) -> int:
        return len(self._paths)

    @property
    def files(self) -> list[str]:
        return list(self)


class InstrumentingLoader(importlib.machinery.SourceFileLoader):
    """Source loader that compiles transformed source and skips bytecode caches."""

    def __init__(self, fullname: str, path: str, transform: Transform, prepare: PrepareModule | None) -> None:
        super().__init__(fullname, path)
        self._transform = transform
        self._prepare = prepare

    def get_code(self, fullname: str) -> CodeType:
        source_path = self.get_filename(fullname)
        source = importlib.util.decode_source(self.get_data(source_path))
        transformed = self._transform(source, normalize_path(source_path))
        return compile(transformed, source_path, "exec", dont_inherit=True)

    def exec_module(self, module: ModuleType) -> None:
        # Transform first so `prepare` can see what the transform registered.
        code = self.get_code(module.__name__)
        if self._prepare is not None:
            self._prepare(module)
        exec(code, module.__dict__)


class InstrumentingFinder(importlib.abc.MetaPathFinder):
    """Resolves imports like the path finder, then claims the ones in `source_files`."""

    def __init__(self, source_files: SourceFileSet, transform: Transform, prepare: PrepareModule | None = None) -> None:
        self.source_files = source_files
        self._transform = transform
        self._prepare = prepare

    def find_spec(self, fullname, path=None, target=None):
        spec = importlib.machinery.PathFinder.find_spec(fullname, path)
        if spec is None or spec.origin is None:
            return None
        if not isinstance(spec.loader, importlib.machinery.SourceFileLoader):
            return None
        if spec.origin not in self.source_files:
            return None
        spec.loader = InstrumentingLoader(fullname, spec.origin, self._transform, self._prepare)
        return spec


def hook_loader(source_files: SourceFileSet, transform: Transform, *, prepare: PrepareModule | None = None) -> Callable[[], None]:
    """Route imports of `source_files` through `transform`; returns the uninstall callable."""
    finder = InstrumentingFinder(source_files, transform, prepare)
    sys.meta_path.insert(0, finder)
    importlib.invalidate_caches()

    def unhook() -> None:
        if finder in sys.meta_path:
            sys.meta_path.remove(finder)

    return unhook


def evict_cached_modules(source_files: SourceFileSet) -> list[str]:
    """Drop already-imported coverable modules so their next import is hooked."""
    evicted = []
    for name, module in list(sys.modules.items()):
        filename = getattr(module, "__file__", None)
        if isinstance(filename, str) and filename in source_files:
            del sys.modules[name]
            evicted.append(name)
    importlib.invalidate_caches()
    return evicted
