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

"""Locates fields of operation tables.

A field can be looked up in two places:

  * the struct type declaration, to check the declared shape of a member,
    for example the signature of a function pointer;
  * the designated-initializer instances of the struct, to check what is
    assigned to a member, for example which callback got wired up.
"""

import re

from kcompat import decl_locator
from kcompat.decl_locator import DeclarationSpan

# Tokens after a member name that end its declarator.
_DECLARATOR_END = re.compile(r"\s*(?:[;\[:,]|__\w+)")
_POINTER_MEMBER = re.compile(r"\s*\)\s*\(")


def _is_member(masked: str, mo: re.Match) -> bool:
    # Parameters of function pointers are one paren level deeper than members.
    head = masked[decl_locator.statement_start(masked, mo.start()):mo.start()]
    depth = head.count("(") - head.count(")")
    if _POINTER_MEMBER.match(masked, mo.end()):
        return depth == 1 and bool(re.search(r"\(\s*\*\s*$", head))
    if depth != 0 or not _DECLARATOR_END.match(masked, mo.end()):
        return False
    word = decl_locator.word_before(masked, mo.start())
    return word not in ("struct", "union", "enum")


def find_method(struct_type: str, field: str,
                text: str) -> DeclarationSpan | None:
    """Finds the declaration of member field in struct struct_type.

    The span is the whole member declaration up to its ";", which for a
    function pointer includes the return type and the argument list.
    Members of nested anonymous structs and unions are found too.
    """
    struct = decl_locator.find_struct(struct_type, text)
    if struct is None:
        return None
    masked = decl_locator.mask(struct.text)
    pattern = re.compile(r"(?<![\w.>])" + re.escape(field) + r"\b")
    for mo in pattern.finditer(masked, masked.index("{") + 1):
        if not _is_member(masked, mo):
            continue
        end = masked.find(";", mo.end())
        if end < 0:
            return None
        start = decl_locator.statement_start(masked, mo.start())
        return decl_locator.make_span(text, struct.start + start,
                                      struct.start + end + 1)
    return None


def _initializer_value(text: str, masked: str, body_start: int, body_end: int,
                       field: str) -> DeclarationSpan | None:
    assignment = re.compile(r"\.\s*" + re.escape(field) + r"\s*=\s*")
    depth = 0
    pos = body_start
    while pos < body_end:
        char = masked[pos]
        if char in "{([":
            depth += 1
        elif char in "})]":
            depth -= 1
        elif char == "." and depth == 0:
            mo = assignment.match(masked, pos)
            if mo:
                return _expression(text, masked, mo.end(), body_end)
        pos += 1
    return None


def _expression(text: str, masked: str, start: int,
                body_end: int) -> DeclarationSpan:
    depth = 0
    end = start
    while end < body_end:
        char = masked[end]
        if char in "{([":
            depth += 1
        elif char in "})]":
            depth -= 1
        elif char == "," and depth == 0:
            break
        end += 1
    while end > start and masked[end - 1].isspace():
        end -= 1
    return decl_locator.make_span(text, start, end)


def find_initializers(struct_type: str, field: str, text: str,
                      instance: str | None = None) -> list[DeclarationSpan]:
    """Finds what is assigned to field in every instance of struct_type.

    Instances are designated-initializer definitions such as

        static const struct net_device_ops ice_netdev_ops = {
            .ndo_open = ice_open,
        };

    The span of each result is the assigned expression ("ice_open" above).
    Instances that do not assign field are left out, and so are instances
    not named instance when it is given. Results are in textual order.
    """
    masked = decl_locator.mask(text)
    pattern = re.compile(r"\bstruct\s+" + re.escape(struct_type) +
                         r"\s+(?:\w+\s+)*?(\w+)(?:\s+__\w+)*\s*=\s*\{")
    ret = []
    for mo in pattern.finditer(masked):
        if instance is not None and mo.group(1) != instance:
            continue
        close = decl_locator.match_close(masked, mo.end() - 1)
        if close is None:
            continue
        span = _initializer_value(text, masked, mo.end(), close - 1, field)
        if span is not None:
            ret.append(span)
    return ret
