#!/usr/bin/env python3
#
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

"""Generates HAVE_ and NEED_ defines for a kernel source tree.

Every define comes from a "gen" query of the catalog (see catalog.py and
query.py) that looks for a declaration in the kernel headers. This replaces
defines maintained by hand per kernel version, and also covers backports
done by OS vendors, even partial ones.

Usually called from a Makefile:

  KSRC=/lib/modules/$(uname -r)/build CONFFILE=$KSRC/include/generated/autoconf.h \\
    OUT=kcompat_generated_defs.h kcompat_generator.py

Exit status: 0 on success, 8 if KSRC does not contain kernel headers, 9 if
CONFFILE is missing, 1 on any other error.
"""

import argparse
import dataclasses
import logging
import os
import pathlib
import re
import shutil
import sys
import tempfile
from typing import Sequence, TextIO

from kcompat import catalog as catalog_lib
from kcompat import gen
from kcompat import kcompat_errors
from kcompat import query as query_lib
from kcompat import source_files

_MARKER = "include/linux/kernel.h"
_BANNER = "/* Autogenerated for KSRC={ksrc} via {prog} */\n"
_PROG = pathlib.Path(__file__).name


def _new_file_mode() -> int:
    """Returns the mode open() gives new files under the current umask."""
    umask = os.umask(0o022)
    os.umask(umask)
    return 0o666 & ~umask


def config_enabled(config: str, flag: str) -> bool:
    """Returns whether flag is enabled in a .config or autoconf.h text."""
    flag = re.escape(flag)
    return re.search(rf"^(?:{flag}=y|#define\s+{flag}\s+1)\s*$", config,
                     re.M) is not None


@dataclasses.dataclass(kw_only=True)
class KcompatGenerator:
    """Runs the catalog against a kernel source tree."""

    # None scans the current directory.
    ksrc: pathlib.Path | None
    conffile: pathlib.Path | None
    out: pathlib.Path | None = None
    just_unit_testing: bool = False
    catalog: Sequence[catalog_lib.CatalogGroup] = catalog_lib.CATALOG
    stdout: TextIO = dataclasses.field(default_factory=lambda: sys.stdout)
    stderr: TextIO = dataclasses.field(default_factory=lambda: sys.stderr)

    def _ksrc_label(self) -> str:
        return "" if self.ksrc is None else str(self.ksrc)

    def _validate_source_root(self, root: source_files.SourceRoot):
        if root.exists(_MARKER):
            return
        if root.root.is_dir():
            listing = "\n".join(sorted(os.listdir(root.root))) or "(empty)"
        else:
            listing = "(not a directory)"
        raise kcompat_errors.SourceTreeError(
            f"seems that there are no kernel includes placed in "
            f"KSRC={self._ksrc_label()}: missing {root.path(_MARKER)}; "
            f"contents:\n"
            f"{listing}")

    def _read_config(self) -> str:
        if self.conffile is None or not self.conffile.is_file():
            raise kcompat_errors.ConfigFileError(
                f".config should be passed as --conffile or env CONFFILE "
                f"(and it's not set or not a file): {self.conffile}")
        with open(self.conffile, encoding="utf-8", errors="replace") as f:
            return f.read()

    def _should_run(self, group: catalog_lib.CatalogGroup,
                    root: source_files.SourceRoot, config: str) -> bool:
        if self.just_unit_testing and not group.gold_tested:
            logging.info("Skipping %s: not covered by unit tests", group.name)
            return False
        if group.config_flag and not config_enabled(config, group.config_flag):
            logging.info("Skipping %s: %s is not enabled", group.name,
                         group.config_flag)
            return False
        if group.required_file and not root.exists(group.required_file):
            logging.info("Skipping %s: no %s", group.name, group.required_file)
            return False
        return True

    @staticmethod
    def _run_group(generator: gen.Generator,
                   group: catalog_lib.CatalogGroup) -> None:
        logging.info("Generating %s", group.name)
        fragments = {
            fragment.name: generator.extract(fragment.kind, fragment.decl,
                                             fragment.files)
            for fragment in group.fragments
        }
        for entry in group.entries:
            if entry.literal is not None and entry.literal not in fragments:
                raise kcompat_errors.CatalogError(
                    f"unknown fragment {entry.literal} in query: "
                    f"{entry.query}")
            literal = fragments.get(entry.literal)
            generator.gen(query_lib.parse(entry.query, literal=literal,
                                          literal_label=f"<{entry.literal}>"))

    def _generate(self, root: source_files.SourceRoot, config: str,
                  out: TextIO) -> None:
        generator = gen.Generator(root, out)
        for group in self.catalog:
            if self._should_run(group, root, config):
                self._run_group(generator, group)

    def _echo(self) -> None:
        """Shows the generated file, line-numbered, for CI logs."""
        with open(self.out, encoding="utf-8") as f:
            for number, line in enumerate(f, start=1):
                self.stderr.write(f"{number:6}\t{line}")

    def run(self) -> None:
        root = source_files.SourceRoot(self.ksrc or pathlib.Path("."))
        self._validate_source_root(root)
        config = self._read_config()

        if self.out is None:
            self._generate(root, config, self.stdout)
            return

        # Nothing is written to self.out unless the whole catalog ran.
        output_file = tempfile.NamedTemporaryFile(
            mode="w", encoding="utf-8", delete=False,
            dir=self.out.parent, prefix=f".{self.out.name}.")
        try:
            with output_file:
                output_file.write(
                    _BANNER.format(ksrc=self._ksrc_label(), prog=_PROG))
                self._generate(root, config, output_file)
            os.chmod(output_file.name, _new_file_mode())
            shutil.move(output_file.name, self.out)
        finally:
            pathlib.Path(output_file.name).unlink(missing_ok=True)

        if not self.just_unit_testing:
            self._echo()


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=__doc__, formatter_class=argparse.RawTextHelpFormatter)
    parser.add_argument(
        "--ksrc",
        type=pathlib.Path,
        default=os.environ.get("KSRC") or None,
        help="Kernel source tree to look for headers in. Default: env KSRC,"
             " else the current directory.",
    )
    parser.add_argument(
        "--conffile",
        type=pathlib.Path,
        default=os.environ.get("CONFFILE") or None,
        help="Kernel .config or autoconf.h. Default: env CONFFILE.",
    )
    parser.add_argument(
        "--out",
        type=pathlib.Path,
        default=os.environ.get("OUT") or None,
        help="File to write the defines to. Default: env OUT, else stdout.",
    )
    parser.add_argument(
        "--just_unit_testing",
        action="store_true",
        default=bool(os.environ.get("JUST_UNIT_TESTING")),
        help="Only run the groups covered by the gold test.",
    )
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Enable INFO log level.")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING,
                        format="%(levelname)s: %(message)s")
    try:
        KcompatGenerator(
            ksrc=args.ksrc,
            conffile=args.conffile,
            out=args.out,
            just_unit_testing=args.just_unit_testing,
        ).run()
    except (kcompat_errors.SourceTreeError,
            kcompat_errors.ConfigFileError) as e:
        logging.error("%s", e)
        return e.exit_code
    except kcompat_errors.KcompatError as e:
        logging.error(e, exc_info=e)
        return e.exit_code
    return 0


if __name__ == "__main__":
    sys.exit(main())
