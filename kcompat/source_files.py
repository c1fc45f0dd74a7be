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

"""Resolves candidate headers under a kernel source root."""

import dataclasses
import logging
import pathlib
from typing import Iterable

from kcompat import kcompat_errors

LITERAL = "-"


@dataclasses.dataclass(frozen=True)
class FileRef:
    """A header path relative to the source root, or an inline literal.

    A literal carries its text directly; it is used to query a fragment that
    was already extracted from a (big) header without scanning it again.
    """
    path: str | None = None
    text: str | None = None
    label: str = LITERAL

    @staticmethod
    def literal(text: str, label: str = LITERAL) -> "FileRef":
        return FileRef(text=text, label=label)

    def is_literal(self) -> bool:
        return self.text is not None

    def __str__(self):
        return self.path if self.path is not None else self.label


@dataclasses.dataclass(frozen=True)
class Source:
    """A resolved FileRef that can be scanned."""
    ref: FileRef
    file: pathlib.Path | None = None

    @property
    def label(self) -> str:
        return str(self.ref)

    def read(self) -> str:
        if self.ref.is_literal():
            return self.ref.text
        try:
            with open(self.file, encoding="utf-8", errors="replace") as f:
                return f.read()
        except OSError as os_error:
            raise kcompat_errors.SourceReadError(
                f"failed to read {self.file}: {os_error}") from os_error


@dataclasses.dataclass(frozen=True)
class SourceRoot:
    """The root directory of the kernel sources that are scanned."""
    root: pathlib.Path

    def path(self, rel: str) -> pathlib.Path:
        return self.root / rel

    def exists(self, rel: str) -> bool:
        """Returns whether rel is a non-empty regular file under the root."""
        file = self.path(rel)
        try:
            return file.is_file() and file.stat().st_size > 0
        except OSError:
            return False

    def resolve(self, refs: Iterable[FileRef]) -> list[Source]:
        """Filters out refs that do not exist, are directories or are empty.

        Order is kept. Literals are always valid. Missing files are normal:
        they only reflect the version of the scanned tree.
        """
        ret = []
        for ref in refs:
            if ref.is_literal():
                ret.append(Source(ref))
            elif self.exists(ref.path):
                ret.append(Source(ref, self.path(ref.path)))
            else:
                logging.debug("Skipping missing or empty %s", ref.path)
        return ret
