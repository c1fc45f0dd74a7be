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

"""Decides whether a located declaration satisfies a query's test."""

import dataclasses
import enum
import re

from kcompat.decl_locator import DeclarationSpan


class Mode(enum.Enum):
    PRESENCE = "presence"
    MATCHES = "matches"
    LACKS = "lacks"
    ABSENT = "absent"


@dataclasses.dataclass(frozen=True)
class VerdictTest:
    """What to check on the declaration found, if any.

    Patterns are regular expressions searched anywhere in the declaration
    text, so catalog entries escape metacharacters they mean literally,
    e.g. 'struct firmware \\*fw'.
    """
    mode: Mode = Mode.PRESENCE
    pattern: re.Pattern | None = None

    def __post_init__(self):
        needs_pattern = self.mode in (Mode.MATCHES, Mode.LACKS)
        if needs_pattern != (self.pattern is not None):
            raise ValueError(f"{self.mode.value}: pattern {self.pattern!r}")

    def describe(self) -> str:
        if self.pattern is not None:
            return f"{self.mode.value} '{self.pattern.pattern}'"
        if self.mode == Mode.ABSENT:
            return self.mode.value
        return ""


@dataclasses.dataclass(frozen=True)
class Verdict:
    holds: bool
    evidence: str

    def __bool__(self):
        return self.holds


def check(span: DeclarationSpan | None, test: VerdictTest) -> bool:
    """Returns whether span satisfies test.

    span is None when no candidate file contained the declaration. A
    missing declaration never satisfies "lacks": the feature can't be
    assessed without it.
    """
    if test.mode == Mode.ABSENT:
        return span is None
    if span is None:
        return False
    if test.mode == Mode.PRESENCE:
        return True
    found = test.pattern.search(span.text) is not None
    return found if test.mode == Mode.MATCHES else not found


def evaluate(span: DeclarationSpan | None, test: VerdictTest,
             where: str) -> Verdict:
    """Like check(), with evidence: the test and where it was decided.

    A hit of "matches" also quotes the text the pattern found, with
    whitespace runs collapsed.
    """
    holds = check(span, test)
    parts = [test.describe(), "in", where]
    if holds and test.mode == Mode.MATCHES:
        found = " ".join(test.pattern.search(span.text).group().split())
        parts.append(f"found '{found}'")
    evidence = " ".join(part for part in parts if part)
    return Verdict(holds=holds, evidence=evidence)
