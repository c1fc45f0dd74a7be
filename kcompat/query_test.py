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

"""Tests for query.py"""

from absl.testing import absltest
from absl.testing import parameterized

from kcompat import kcompat_errors
from kcompat import query
from kcompat.matcher import Mode
from kcompat.query import Kind


class ParseTest(parameterized.TestCase):

    def test_presence(self):
        got = query.parse(
            "gen HAVE_DEVLINK_HEALTH if enum devlink_health_reporter_state"
            " in include/net/devlink.h")
        self.assertEqual("HAVE_DEVLINK_HEALTH", got.macro)
        self.assertEqual(Kind.ENUM, got.kind)
        self.assertEqual("devlink_health_reporter_state", got.name)
        self.assertEqual(Mode.PRESENCE, got.test.mode)
        self.assertEqual(["include/net/devlink.h"],
                         [ref.path for ref in got.files])
        self.assertIsNone(got.method_of)

    def test_gen_is_optional(self):
        self.assertEqual(
            query.parse("HAVE_X if fun x in a.h"),
            query.parse("gen HAVE_X if fun x in a.h"))

    def test_quoted_pattern(self):
        got = query.parse(
            "HAVE_DEVLINK_FLASH_UPDATE_PARAMS_FW if struct"
            " devlink_flash_update_params matches 'struct firmware \\*fw'"
            " in include/net/devlink.h")
        self.assertEqual(Mode.MATCHES, got.test.mode)
        self.assertEqual(r"struct firmware \*fw", got.test.pattern.pattern)

    def test_method(self):
        got = query.parse(
            "HAVE_NDO_FDB_DEL_EXTACK if method ndo_fdb_del of net_device_ops"
            " matches ext_ack in include/linux/netdevice.h")
        self.assertEqual(Kind.METHOD, got.kind)
        self.assertEqual("ndo_fdb_del", got.name)
        self.assertEqual("net_device_ops", got.method_of)
        self.assertEqual("method ndo_fdb_del of net_device_ops", got.subject())

    def test_any_initializer(self):
        got = query.parse(
            "HAVE_X if any initializer ndo_open of net_device_ops"
            " lacks _safe in drivers/net/x.c")
        self.assertEqual(Kind.INITIALIZER, got.kind)
        self.assertTrue(got.any_instance)
        self.assertEqual(Mode.LACKS, got.test.mode)
        self.assertEqual("any initializer ndo_open of net_device_ops",
                         got.subject())

    def test_named_initializer(self):
        got = query.parse(
            "HAVE_X if initializer ndo_open of net_device_ops instance"
            " ice_netdev_ops matches '^ice_open$' in drivers/net/x.c")
        self.assertEqual(Kind.INITIALIZER, got.kind)
        self.assertFalse(got.any_instance)
        self.assertEqual("ice_netdev_ops", got.instance)
        self.assertEqual(Mode.MATCHES, got.test.mode)
        self.assertEqual(
            "initializer ndo_open of net_device_ops instance ice_netdev_ops",
            got.subject())

    def test_absent_many_files(self):
        got = query.parse(
            "NEED_X if fun x absent in include/linux/a.h include/linux/b.h")
        self.assertEqual(Mode.ABSENT, got.test.mode)
        self.assertEqual(["include/linux/a.h", "include/linux/b.h"],
                         [str(ref) for ref in got.files])

    def test_literal(self):
        got = query.parse("HAVE_X if fun snapshot in -",
                          literal="int (*snapshot)(void);",
                          literal_label="<OPS>")
        (ref,) = got.files
        self.assertTrue(ref.is_literal())
        self.assertEqual("int (*snapshot)(void);", ref.text)
        self.assertEqual("<OPS>", str(ref))

    @parameterized.named_parameters([
        ("NoIf", "HAVE_X when fun x in a.h"),
        ("UnknownKind", "HAVE_X if function x in a.h"),
        ("NoIn", "HAVE_X if fun x a.h"),
        ("NoFiles", "HAVE_X if fun x in"),
        ("NoPattern", "HAVE_X if fun x matches"),
        ("BadPattern", "HAVE_X if fun x matches 'a(' in a.h"),
        ("MethodWithoutOf", "HAVE_X if method x net_device_ops in a.h"),
        ("AnyWithoutInitializer", "HAVE_X if any method x of y in a.h"),
        ("AnyAndInstance",
         "HAVE_X if any initializer x of y instance z in a.h"),
        ("MethodInstance", "HAVE_X if method x of y instance z in a.h"),
        ("NoInstanceName", "HAVE_X if initializer x of y instance"),
        ("BadDefine", "HAVE-X if fun x in a.h"),
        ("BadName", "HAVE_X if fun x() in a.h"),
        ("LiteralWithoutText", "HAVE_X if fun x in -"),
        ("UnbalancedQuote", "HAVE_X if fun x matches 'a in a.h"),
        ("Empty", ""),
    ])
    def test_malformed(self, line):
        with self.assertRaises(kcompat_errors.CatalogError):
            query.parse(line)

    def test_error_names_query(self):
        with self.assertRaisesRegex(kcompat_errors.CatalogError,
                                    "unknown kind 'function'.*HAVE_X"):
            query.parse("HAVE_X if function x in a.h")


if __name__ == "__main__":
    absltest.main()
