"""Import helpers for scripts that aren't packages, plus import-state isolation."""
import importlib
import importlib.util
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).parent.parent
SCRIPTS_DIR = ROOT / "scripts"

# The scripts import `pkg.testcover` from the repository root.
for path in (ROOT, SCRIPTS_DIR):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))


def _import_script(name: str, filename: str):
    """Import a script file as a module using importlib."""
    spec = importlib.util.spec_from_file_location(name, SCRIPTS_DIR / filename)
    mod = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(mod)
    return mod


run_tests = _import_script("run_tests", "run-tests.py")
merge_coverage = _import_script("merge_coverage", "merge-coverage.py")


@pytest.fixture
def isolated_imports(tmp_path_factory):
    """Undo meta_path hooks and forget modules the test imported from temp dirs."""
    basetemp = str(tmp_path_factory.getbasetemp().resolve())
    meta_path = list(sys.meta_path)
    modules = set(sys.modules)
    yield
    sys.meta_path[:] = meta_path
    for name in set(sys.modules) - modules:
        filename = getattr(sys.modules[name], "__file__", None) or ""
        if str(Path(filename).resolve()).startswith(basetemp):
            del sys.modules[name]
    importlib.invalidate_caches()
