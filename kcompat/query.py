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

"""The "gen" query language.

A query reads:

  gen DEFINE if (KIND [method M of]) NAME [(matches|lacks) PATTERN|absent] in FILE...

where
  DEFINE  is the HAVE_ or NEED_ macro to define when the test holds;
  KIND    is one of: fun, struct, enum, macro;
          or "method M of" to look at member M in the declaration of struct
          NAME, or "initializer M of" to look at what is assigned to M in
          designated-initializer instances of struct NAME ("any initializer
          M of" accepts any instance, "initializer M of NAME instance VAR"
          only looks at instance VAR, otherwise the first one decides);
  PATTERN is a regular expression searched in the declaration found;
  FILE    are headers relative to the kernel source root, tried in order
          until one contains the declaration. "-" stands for literal text
          passed along with the query.

Examples:
  gen HAVE_DEVLINK_HEALTH if enum devlink_health_reporter_state in include/net/devlink.h
  gen HAVE_NDO_FDB_DEL_EXTACK if method ndo_fdb_del of net_device_ops matches ext_ack in include/linux/netdevice.h
  gen NEED_ETH_HW_ADDR_SET if fun eth_hw_addr_set absent in include/linux/etherdevice.h
"""

import dataclasses
import enum
import re
import shlex
from typing import Sequence

from kcompat import kcompat_errors
from kcompat import matcher
from kcompat import source_files

_IDENTIFIER = re.compile(r"^[A-Za-z_]\w*$")


class Kind(enum.Enum):
    FUN = "fun"
    STRUCT = "struct"
    ENUM = "enum"
    MACRO = "macro"
    METHOD = "method"
    INITIALIZER = "initializer"


@dataclasses.dataclass(frozen=True)
class Query:
    """One parsed "gen" query."""
    macro: str
    kind: Kind
    name: str
    files: tuple[source_files.FileRef, ...]
    test: matcher.VerdictTest = matcher.VerdictTest()
    # Struct type a METHOD or INITIALIZER field belongs to.
    method_of: str | None = None
    any_instance: bool = False
    # Variable name of the INITIALIZER instance to look at.
    instance: str | None = None

    def subject(self) -> str:
        if self.method_of is None:
            return f"{self.kind.value} {self.name}"
        kind = self.kind.value
        if self.any_instance:
            kind = "any " + kind
        subject = f"{kind} {self.name} of {self.method_of}"
        if self.instance is not None:
            subject += f" instance {self.instance}"
        return subject


class _Tokens:
    """Consumes query tokens, raising CatalogError on unexpected input."""

    def __init__(self, argv: Sequence[str]):
        self._argv = list(argv)
        self._pos = 0

    def error(self, message: str) -> kcompat_errors.CatalogError:
        return kcompat_errors.CatalogError(
            f"{message} in query: gen {shlex.join(self._argv)}")

    def peek(self) -> str | None:
        if self._pos < len(self._argv):
            return self._argv[self._pos]
        return None

    def next(self, what: str) -> str:
        token = self.peek()
        if token is None:
            raise self.error(f"missing {what}")
        self._pos += 1
        return token

    def expect(self, keyword: str) -> None:
        token = self.next(f"'{keyword}'")
        if token != keyword:
            raise self.error(f"expected '{keyword}', got '{token}'")

    def identifier(self, what: str) -> str:
        token = self.next(what)
        if not _IDENTIFIER.match(token):
            raise self.error(f"bad {what} '{token}'")
        return token

    def rest(self) -> list[str]:
        ret = self._argv[self._pos:]
        self._pos = len(self._argv)
        return ret


def _parse_test(tokens: _Tokens) -> matcher.VerdictTest:
    word = tokens.peek()
    if word in (matcher.Mode.MATCHES.value, matcher.Mode.LACKS.value):
        tokens.next(word)
        pattern = tokens.next("pattern")
        try:
            compiled = re.compile(pattern)
        except re.error as err:
            raise tokens.error(f"bad pattern '{pattern}': {err}") from err
        return matcher.VerdictTest(matcher.Mode(word), compiled)
    if word == matcher.Mode.ABSENT.value:
        tokens.next(word)
        return matcher.VerdictTest(matcher.Mode.ABSENT)
    return matcher.VerdictTest()


def parse_query(argv: Sequence[str], literal: str | None = None,
                literal_label: str = source_files.LITERAL) -> Query:
    """Parses the tokens of a query; a leading "gen" is optional.

    literal is the text that "-" stands for in the list of files.
    Raises CatalogError for anything that does not follow the grammar.
    """
    if argv and argv[0] == "gen":
        argv = argv[1:]
    tokens = _Tokens(argv)
    macro = tokens.identifier("define")
    tokens.expect("if")

    any_instance = tokens.peek() == "any"
    if any_instance:
        tokens.next("any")
    kind_word = tokens.next("kind")
    try:
        kind = Kind(kind_word)
    except ValueError:
        raise tokens.error(f"unknown kind '{kind_word}'") from None
    if any_instance and kind != Kind.INITIALIZER:
        raise tokens.error("'any' only applies to 'initializer'")

    method_of = None
    instance = None
    if kind in (Kind.METHOD, Kind.INITIALIZER):
        name = tokens.identifier("field name")
        tokens.expect("of")
        method_of = tokens.identifier("struct name")
        if kind == Kind.INITIALIZER and tokens.peek() == "instance":
            tokens.next("instance")
            if any_instance:
                raise tokens.error("'any' and 'instance' exclude each other")
            instance = tokens.identifier("instance name")
    else:
        name = tokens.identifier("name")

    test = _parse_test(tokens)
    tokens.expect("in")
    files = []
    for file in tokens.rest():
        if file != source_files.LITERAL:
            files.append(source_files.FileRef(path=file))
        elif literal is None:
            raise tokens.error("'-' given without literal text")
        else:
            files.append(source_files.FileRef.literal(literal, literal_label))
    if not files:
        raise tokens.error("missing files after 'in'")

    return Query(macro=macro, kind=kind, name=name, files=tuple(files),
                 test=test, method_of=method_of, any_instance=any_instance,
                 instance=instance)


def parse(line: str, **kwargs) -> Query:
    """Parses a query written as a shell-like line."""
    try:
        argv = shlex.split(line)
    except ValueError as err:
        raise kcompat_errors.CatalogError(
            f"{err} in query: {line}") from err
    return parse_query(argv, **kwargs)
