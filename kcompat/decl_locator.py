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

"""Locates C declarations in header text without parsing C.

The scanner works on a masked copy of the text where comments, string
literals and character literals are blanked out with spaces. Newlines are
kept, so offsets and line numbers in the masked text are the same as in the
original; spans are always cut from the original text.

Known limitations: braces that only balance after macro expansion confuse
the brace counter, and #if branches are not evaluated, so the first textual
occurrence of a declaration wins.
"""

import dataclasses
import re

_MASKED = re.compile(r"""
      /\*.*?\*/                 # block comment
    | //[^\n]*                  # line comment
    | "(?:\\.|[^"\\\n])*"       # string literal
    | '(?:\\.|[^'\\\n])*'       # character literal
""", re.DOTALL | re.VERBOSE)

_BRACKETS = {"{": "}", "(": ")", "[": "]"}

# Words that may precede a call, never a declared name.
_NOT_A_TYPE = frozenset({
    "return", "else", "case", "do", "goto", "sizeof", "typeof",
    "__typeof__", "if", "while", "for", "switch", "define",
})

# Annotations between ")" and ";" of a prototype, e.g. "__must_check";
# their argument lists are skipped by paren matching.
_ANNOTATION = re.compile(r"\s*__\w+\s*")
_TERMINATOR = re.compile(r"\s*;")

_DIRECTIVE_LINE = re.compile(r"^[ \t]*#(?:[^\n]*\\\n)*[^\n]*\n", re.M)


@dataclasses.dataclass(frozen=True)
class DeclarationSpan:
    """The smallest text fragment that holds one declaration."""
    text: str
    start: int
    end: int
    line: int


def make_span(text: str, start: int, end: int) -> DeclarationSpan:
    return DeclarationSpan(text=text[start:end], start=start, end=end,
                           line=text.count("\n", 0, start) + 1)


def mask(text: str) -> str:
    """Blanks out comments and literals, keeping offsets and newlines."""
    return _MASKED.sub(lambda mo: re.sub(r"[^\n]", " ", mo.group()), text)


def match_close(masked: str, open_pos: int) -> int | None:
    """Returns the offset just past the bracket closing masked[open_pos]."""
    opening = masked[open_pos]
    closing = _BRACKETS[opening]
    depth = 0
    for pos in range(open_pos, len(masked)):
        char = masked[pos]
        if char == opening:
            depth += 1
        elif char == closing:
            depth -= 1
            if depth == 0:
                return pos + 1
    return None


def match_open(masked: str, close_pos: int) -> int | None:
    """Returns the offset of the bracket opening masked[close_pos]."""
    closing = masked[close_pos]
    opening = next(k for k, v in _BRACKETS.items() if v == closing)
    depth = 0
    for pos in range(close_pos, -1, -1):
        char = masked[pos]
        if char == closing:
            depth += 1
        elif char == opening:
            depth -= 1
            if depth == 0:
                return pos
    return None


def word_before(masked: str, pos: int) -> str:
    """Returns the identifier ending at pos, skipping whitespace."""
    while pos > 0 and masked[pos - 1].isspace():
        pos -= 1
    end = pos
    while pos > 0 and (masked[pos - 1].isalnum() or masked[pos - 1] == "_"):
        pos -= 1
    return masked[pos:end]


def statement_start(masked: str, pos: int) -> int:
    """Returns where the declaration containing pos begins.

    That is after the previous ";", "{" or "}" and after any preprocessor
    line in between, with leading whitespace skipped.
    """
    start = max(masked.rfind(char, 0, pos) for char in ";{}") + 1
    for mo in _DIRECTIVE_LINE.finditer(masked, start, pos):
        start = mo.end()
    while start < pos and masked[start].isspace():
        start += 1
    return start


def in_directive(masked: str, pos: int) -> bool:
    """Returns whether pos is on a (possibly continued) preprocessor line."""
    line_start = masked.rfind("\n", 0, pos) + 1
    while line_start > 0:
        prev_start = masked.rfind("\n", 0, line_start - 1) + 1
        if not masked[prev_start:line_start - 1].rstrip().endswith("\\"):
            break
        line_start = prev_start
    return masked[line_start:pos].lstrip().startswith("#")


def _is_declared_name(masked: str, name_start: int) -> bool:
    pos = name_start
    while pos > 0 and (masked[pos - 1].isspace() or masked[pos - 1] == "*"):
        pos -= 1
    if pos == 0:
        return False
    char = masked[pos - 1]
    if char == ")":
        # __printf(1, 2) or __attribute__((...)) right before the name
        open_pos = match_open(masked, pos - 1)
        return open_pos is not None and \
            word_before(masked, open_pos).startswith("__")
    if char.isalnum() or char == "_":
        word = word_before(masked, pos)
        return word not in _NOT_A_TYPE and not word[0].isdigit()
    return False


def _trailer_end(masked: str, pos: int) -> int | None:
    """Returns the end of the annotations and ";" after a prototype."""
    while True:
        mo = _ANNOTATION.match(masked, pos)
        if mo is None:
            break
        pos = mo.end()
        if masked.startswith("(", pos):
            pos = match_close(masked, pos)
            if pos is None:
                return None
    mo = _TERMINATOR.match(masked, pos)
    return mo.end() if mo else None


def find_function(name: str, text: str) -> DeclarationSpan | None:
    """Finds the prototype of function name.

    Also finds a function pointer member declared as "(*name)(...)", so a
    method can be looked up within an already extracted struct body.
    """
    masked = mask(text)
    pattern = re.compile(r"(?<![\w.>])" + re.escape(name) + r"\s*(\)\s*)?\(")
    for mo in pattern.finditer(masked):
        if in_directive(masked, mo.start()):
            continue
        if mo.group(1):
            if not re.search(r"\(\s*\*\s*$",
                             masked[max(0, mo.start() - 80):mo.start()]):
                continue
        elif not _is_declared_name(masked, mo.start()):
            continue
        close = match_close(masked, mo.end() - 1)
        if close is None:
            continue
        end = _trailer_end(masked, close) or close
        return make_span(text, statement_start(masked, mo.start()), end)
    return None


def _find_body(keyword: str, name: str, text: str) -> DeclarationSpan | None:
    masked = mask(text)
    pattern = re.compile(r"\b" + keyword + r"\s+" + re.escape(name) + r"\s*\{")
    for mo in pattern.finditer(masked):
        end = match_close(masked, mo.end() - 1)
        if end is not None:
            return make_span(text, mo.start(), end)
    return None


def find_struct(name: str, text: str) -> DeclarationSpan | None:
    """Finds "struct name { ... }" up to its matching closing brace."""
    return _find_body("struct", name, text)


def find_enum(name: str, text: str) -> DeclarationSpan | None:
    """Finds "enum name { ... }" up to its matching closing brace."""
    return _find_body("enum", name, text)


def find_macro(name: str, text: str) -> DeclarationSpan | None:
    """Finds "#define name", including backslash continued lines."""
    masked = mask(text)
    mo = re.search(r"^[ \t]*#[ \t]*define[ \t]+" + re.escape(name) + r"\b",
                   masked, re.M)
    if not mo:
        return None
    end = mo.end()
    while True:
        newline = text.find("\n", end)
        if newline < 0:
            end = len(text)
            break
        end = newline
        if not text[mo.start():end].rstrip().endswith("\\"):
            break
        end += 1
    return make_span(text, mo.start(), end)


FINDERS = {
    "fun": find_function,
    "struct": find_struct,
    "enum": find_enum,
    "macro": find_macro,
}


def find_declaration(kind: str, name: str,
                     text: str) -> DeclarationSpan | None:
    """Finds the first declaration of the given kind and name."""
    return FINDERS[kind](name, text)
