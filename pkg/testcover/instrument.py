"""AST rewriting that makes Python source count its own execution.

Every statement is preceded by a statement counter, every function body
starts with a function counter (so a generator or coroutine function counts
once its body first runs, not when it is called; one that is never iterated
or awaited shows 0 calls), and each branch path bumps its own slot in
the branch counters. The instrumented module refers to one module-global
name (the run's coverage variable, suffixed when a file is reloaded) that the
import hook binds to the file's `FileCoverage` record before the module body
runs.
"""

from __future__ import annotations

import ast
from typing import Any

from .coverage_data import BranchMeta, FileCoverage, FunctionMeta, Position, Range
from .errors import InstrumentationError

BLOCK_FIELDS = ("body", "orelse", "finalbody")


def _range(node: ast.AST) -> Range:
    end_line = getattr(node, "end_lineno", None) or node.lineno
    end_column = getattr(node, "end_col_offset", None)
    if end_column is None:
        end_column = node.col_offset
    return Range(Position(node.lineno, node.col_offset), Position(end_line, end_column))


def _block_range(stmts: list[ast.stmt]) -> Range:
    return Range(_range(stmts[0]).start, _range(stmts[-1]).end)


def _is_docstring(stmt: ast.stmt) -> bool:
    return (
        isinstance(stmt, ast.Expr)
        and isinstance(stmt.value, ast.Constant)
        and isinstance(stmt.value.value, str)
    )


def _is_future_import(stmt: ast.stmt) -> bool:
    return isinstance(stmt, ast.ImportFrom) and stmt.module == "__future__"


def _split_docstring(body: list[ast.stmt]) -> tuple[list[ast.stmt], list[ast.stmt]]:
    if body and _is_docstring(body[0]):
        return body[:1], body[1:]
    return [], list(body)


def _located(node: ast.AST, ref: ast.AST) -> ast.AST:
    for child in ast.walk(node):
        ast.copy_location(child, ref)
    return node


class _CounterInjector(ast.NodeTransformer):
    def __init__(self, coverage_variable: str, coverage: FileCoverage) -> None:
        self._var = coverage_variable
        self._coverage = coverage

    def instrument_module(self, tree: ast.Module) -> ast.Module:
        body = list(tree.body)
        prefix: list[ast.stmt] = []
        if body and _is_docstring(body[0]):
            prefix.append(body.pop(0))
        while body and _is_future_import(body[0]):
            prefix.append(body.pop(0))
        tree.body = prefix + self._block(body)
        return tree

    # -- node builders -------------------------------------------------

    def _counters(self, attr: str) -> ast.expr:
        return ast.Attribute(value=ast.Name(id=self._var, ctx=ast.Load()), attr=attr, ctx=ast.Load())

    def _increment(self, attr: str, index: int, ref: ast.AST, path: int | None = None) -> ast.stmt:
        target: ast.expr = self._counters(attr)
        if path is not None:
            target = ast.Subscript(value=target, slice=ast.Constant(index), ctx=ast.Load())
            index = path
        node = ast.AugAssign(
            target=ast.Subscript(value=target, slice=ast.Constant(index), ctx=ast.Store()),
            op=ast.Add(),
            value=ast.Constant(1),
        )
        return _located(node, ref)

    def _wrap(self, method: str, args: list[int], value: ast.expr) -> ast.expr:
        call = ast.Call(
            func=self._counters(method),
            args=[ast.Constant(arg) for arg in args],
            keywords=[],
        )
        _located(call, value)
        call.args.append(value)
        return call

    # -- traversal -----------------------------------------------------

    def _block(self, stmts: list[ast.stmt]) -> list[ast.stmt]:
        out: list[ast.stmt] = []
        for stmt in stmts:
            index = self._coverage.add_statement(_range(stmt))
            out.append(self._increment("s", index, stmt))
            visited = self.visit(stmt)
            if isinstance(visited, list):
                out.extend(visited)
            elif visited is not None:
                out.append(visited)
        return out

    def _visit_list(self, items: list[Any]) -> list[Any]:
        out = []
        for item in items:
            if not isinstance(item, ast.AST):
                out.append(item)
                continue
            visited = self.visit(item)
            if isinstance(visited, list):
                out.extend(visited)
            elif visited is not None:
                out.append(visited)
        return out

    def generic_visit(self, node: ast.AST) -> ast.AST:
        for name, value in ast.iter_fields(node):
            if isinstance(value, list):
                if name in BLOCK_FIELDS and value and isinstance(value[0], ast.stmt):
                    setattr(node, name, self._block(value))
                else:
                    setattr(node, name, self._visit_list(value))
            elif isinstance(value, ast.AST):
                setattr(node, name, self.visit(value))
        return node

    def _visit_arguments(self, args: ast.arguments) -> None:
        # Annotations are left alone; only default values run.
        args.defaults = [self.visit(value) for value in args.defaults]
        args.kw_defaults = [self.visit(value) if value is not None else None for value in args.kw_defaults]

    def _visit_function(self, node: ast.FunctionDef | ast.AsyncFunctionDef) -> ast.AST:
        node.decorator_list = [self.visit(item) for item in node.decorator_list]
        self._visit_arguments(node.args)

        keyword = "async def " if isinstance(node, ast.AsyncFunctionDef) else "def "
        name_col = node.col_offset + len(keyword)
        decl = Range(Position(node.lineno, name_col), Position(node.lineno, name_col + len(node.name)))
        index = self._coverage.add_function(FunctionMeta(node.name, decl, _range(node), node.lineno))

        docstring, body = _split_docstring(node.body)
        counter = self._increment("f", index, body[0] if body else node)
        node.body = docstring + [counter] + self._block(body)
        return node

    def visit_FunctionDef(self, node: ast.FunctionDef) -> ast.AST:
        return self._visit_function(node)

    def visit_AsyncFunctionDef(self, node: ast.AsyncFunctionDef) -> ast.AST:
        return self._visit_function(node)

    def visit_Lambda(self, node: ast.Lambda) -> ast.AST:
        self._visit_arguments(node.args)
        start = Position(node.lineno, node.col_offset)
        decl = Range(start, Position(node.lineno, node.col_offset + len("lambda")))
        name = f"(anonymous_{len(self._coverage.fn_map)})"
        index = self._coverage.add_function(FunctionMeta(name, decl, _range(node), node.lineno))
        node.body = self._wrap("function_value", [index], self.visit(node.body))
        return node

    def visit_ClassDef(self, node: ast.ClassDef) -> ast.AST:
        node.decorator_list = [self.visit(item) for item in node.decorator_list]
        node.bases = [self.visit(item) for item in node.bases]
        node.keywords = [self.visit(item) for item in node.keywords]
        docstring, body = _split_docstring(node.body)
        node.body = docstring + self._block(body)
        return node

    def visit_AnnAssign(self, node: ast.AnnAssign) -> ast.AST:
        if node.value is not None:
            node.value = self.visit(node.value)
        return node

    def visit_If(self, node: ast.If) -> ast.AST:
        if node.orelse:
            else_range = _block_range(node.orelse)
            else_ref: ast.AST = node.orelse[0]
        else:
            start = _range(node).start
            else_range = Range(start, start)
            else_ref = node
        meta = BranchMeta("if", _range(node), (_block_range(node.body), else_range), node.lineno)
        branch = self._coverage.add_branch(meta)

        node.test = self.visit(node.test)
        body_ref = node.body[0]
        node.body = [self._increment("b", branch, body_ref, path=0)] + self._block(node.body)
        node.orelse = [self._increment("b", branch, else_ref, path=1)] + self._block(node.orelse)
        return node

    def visit_IfExp(self, node: ast.IfExp) -> ast.AST:
        meta = BranchMeta("cond-expr", _range(node), (_range(node.body), _range(node.orelse)), node.lineno)
        branch = self._coverage.add_branch(meta)
        node.test = self.visit(node.test)
        node.body = self._wrap("branch_value", [branch, 0], self.visit(node.body))
        node.orelse = self._wrap("branch_value", [branch, 1], self.visit(node.orelse))
        return node

    def visit_BoolOp(self, node: ast.BoolOp) -> ast.AST:
        meta = BranchMeta("binary-expr", _range(node), tuple(_range(value) for value in node.values), node.lineno)
        branch = self._coverage.add_branch(meta)
        node.values = [
            self._wrap("branch_value", [branch, path], self.visit(value))
            for path, value in enumerate(node.values)
        ]
        return node

    def visit_Match(self, node: ast.Match) -> ast.AST:
        meta = BranchMeta("switch", _range(node), tuple(_range(case.pattern) for case in node.cases), node.lineno)
        branch = self._coverage.add_branch(meta)
        node.subject = self.visit(node.subject)
        for path, case in enumerate(node.cases):
            if case.guard is not None:
                case.guard = self.visit(case.guard)
            body_ref = case.body[0]
            case.body = [self._increment("b", branch, body_ref, path=path)] + self._block(case.body)
        return node


class Instrumenter:
    """Rewrites source so it records hits into the record bound to `coverage_variable`.

    The static metadata of every instrumented file is kept and can be read
    back with `file_coverage(filename)`; counters in that copy stay at zero.

    Instrumenting the same file again (a reload) uses a new global name,
    returned by `variable_for(filename)`, so functions left over from the
    previous exec keep counting into the record they were compiled against.
    """

    def __init__(self, coverage_variable: str) -> None:
        self.coverage_variable = coverage_variable
        self.last_file_coverage: FileCoverage | None = None
        self._files: dict[str, FileCoverage] = {}
        self._variables: dict[str, str] = {}
        self._generations: dict[str, int] = {}

    def _next_variable(self, filename: str) -> str:
        generation = self._generations.get(filename, 0)
        self._generations[filename] = generation + 1
        if generation == 0:
            return self.coverage_variable
        return f"{self.coverage_variable.rstrip('_')}_r{generation}__"

    def instrument_tree(self, source: str, filename: str, source_map: dict[str, Any] | None = None) -> ast.Module:
        try:
            tree = ast.parse(source, filename=filename)
        except (SyntaxError, ValueError) as exc:
            raise InstrumentationError(filename, str(exc)) from exc

        variable = self._next_variable(filename)
        coverage = FileCoverage(path=filename, input_source_map=source_map)
        tree = _CounterInjector(variable, coverage).instrument_module(tree)
        ast.fix_missing_locations(tree)

        self._files[filename] = coverage
        self._variables[filename] = variable
        self.last_file_coverage = coverage
        return tree

    def instrument(self, source: str, filename: str, source_map: dict[str, Any] | None = None) -> str:
        return ast.unparse(self.instrument_tree(source, filename, source_map))

    def file_coverage(self, filename: str) -> FileCoverage:
        return self._files[filename]

    def variable_for(self, filename: str) -> str:
        """Global name the latest instrumentation of `filename` reads its record from."""
        return self._variables.get(filename, self.coverage_variable)
