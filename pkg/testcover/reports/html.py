"""Browsable HTML report rendered from jinja2 templates."""

from __future__ import annotations

import os
from dataclasses import dataclass

from jinja2 import Environment, FileSystemLoader, select_autoescape

from .context import FileEntry, ReportContext
from .summary import Totals

TEMPLATES_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "templates")

# Percentages at or above these bounds render as high / medium coverage.
WATERMARKS = (80.0, 50.0)


def coverage_level(totals: Totals) -> str:
    high, medium = WATERMARKS
    if totals.pct >= high:
        return "high"
    if totals.pct >= medium:
        return "medium"
    return "low"


@dataclass(frozen=True)
class SourceLine:
    number: int
    text: str
    hits: int | None

    @property
    def status(self) -> str:
        if self.hits is None:
            return "neutral"
        return "covered" if self.hits > 0 else "uncovered"


def _environment() -> Environment:
    env = Environment(
        loader=FileSystemLoader(TEMPLATES_DIR),
        autoescape=select_autoescape(["html"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters["level"] = coverage_level
    return env


def page_name(entry: FileEntry) -> str:
    return f"{entry.name}.html"


class HtmlReport:
    """`index.html` for the whole tree plus one annotated page per file."""

    def __init__(self, subdir: str = "") -> None:
        self._subdir = subdir
        self._env = _environment()

    def _target(self, name: str) -> str:
        return f"{self._subdir}/{name}" if self._subdir else name

    def _source_lines(self, context: ReportContext, entry: FileEntry) -> list[SourceLine] | None:
        source = context.read_source(entry.path)
        if source is None:
            return None
        hits = entry.coverage.line_coverage()
        return [
            SourceLine(number=number, text=text, hits=hits.get(number))
            for number, text in enumerate(source.splitlines(), 1)
        ]

    def render(self, context: ReportContext) -> None:
        index = self._env.get_template("index.html")
        context.write_file(
            self._target("index.html"),
            index.render(entries=context.entries, total=context.total, root=context.root, page_name=page_name),
        )

        page = self._env.get_template("file.html")
        for entry in context.entries:
            depth = entry.name.count("/")
            context.write_file(
                self._target(page_name(entry)),
                page.render(
                    entry=entry,
                    lines=self._source_lines(context, entry),
                    functions=list(zip(entry.coverage.fn_map, entry.coverage.f)),
                    index_href="../" * depth + "index.html",
                ),
            )
