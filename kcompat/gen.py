# Copyright (C) 2024 The Android Open Source Project
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#       http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Evaluates "gen" queries against a kernel source tree."""

import logging
from typing import Sequence, TextIO

from kcompat import decl_locator
from kcompat import kcompat_errors
from kcompat import matcher
from kcompat import method_locator
from kcompat import query as query_lib
from kcompat import source_files
from kcompat.decl_locator import DeclarationSpan
from kcompat.query import Kind


def locate(query: query_lib.Query, text: str) -> list[DeclarationSpan]:
    """Returns the spans the query's test applies to, in text order."""
    if query.kind == Kind.METHOD:
        spans = [method_locator.find_method(query.method_of, query.name, text)]
    elif query.kind == Kind.INITIALIZER:
        spans = method_locator.find_initializers(query.method_of, query.name,
                                                 text, query.instance)
        if not query.any_instance:
            spans = spans[:1]
    else:
        spans = [decl_locator.find_declaration(query.kind.value, query.name,
                                               text)]
    return [span for span in spans if span is not None]


def render(macro: str, comment: str) -> str:
    comment = comment.replace("*/", "* /")
    return f"#define {macro} 1 /* {comment} */\n"


class Generator:
    """Writes one "#define" per query whose test holds to out."""

    def __init__(self, root: source_files.SourceRoot, out: TextIO):
        self._root = root
        self._out = out

    def _first_match(
        self, query: query_lib.Query, sources: Sequence[source_files.Source]
    ) -> tuple[source_files.Source | None, list[DeclarationSpan]]:
        for source in sources:
            try:
                text = source.read()
            except kcompat_errors.SourceReadError as err:
                raise kcompat_errors.SourceReadError(
                    f"{err} (evaluating {query.macro})") from err
            spans = locate(query, text)
            if spans:
                return source, spans
        return None, []

    def evaluate(self, query: query_lib.Query) -> matcher.Verdict:
        """Evaluates query; the first candidate file that has it wins."""
        source, spans = self._first_match(query,
                                          self._root.resolve(query.files))
        if source is None:
            where = " ".join(str(ref) for ref in query.files)
            return matcher.evaluate(None, query.test, where)
        verdict = None
        for span in spans:
            verdict = matcher.evaluate(span, query.test,
                                       f"{source.label}:{span.line}")
            if verdict:
                break
        return verdict

    def gen(self, query: query_lib.Query) -> bool:
        """Emits query.macro if its test holds; returns whether it did."""
        verdict = self.evaluate(query)
        logging.debug("%s: %s %s: %s", query.macro, query.subject(),
                      verdict.evidence, verdict.holds)
        if verdict:
            self._out.write(render(query.macro,
                                   f"{query.subject()} {verdict.evidence}"))
        return verdict.holds

    def gen_line(self, line: str, **kwargs) -> bool:
        """Parses and evaluates a query written as in the catalog."""
        return self.gen(query_lib.parse(line, **kwargs))

    def extract(self, kind: str, name: str, files: Sequence[str]) -> str:
        """Returns the text of the first declaration found, or "".

        The result is meant to be passed as literal text ("-") to further
        queries, so a big header is scanned once for several checks.
        """
        if kind not in decl_locator.FINDERS:
            raise kcompat_errors.CatalogError(
                f"unknown kind '{kind}' to extract {name}")
        for source in self._root.resolve(
                source_files.FileRef(path=file) for file in files):
            span = decl_locator.find_declaration(kind, name, source.read())
            if span is not None:
                return span.text
        return ""
