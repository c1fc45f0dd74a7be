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

"""Tests for decl_locator.py"""

import textwrap

from absl.testing import absltest
from absl.testing import parameterized

from kcompat import decl_locator

_HEADER = textwrap.dedent("""\
    /* struct foo_ops { is only mentioned here */
    #define FOO_MAX 16

    struct foo_ops {
    \tint (*open)(struct foo *foo);
    \tunion {
    \t\tstruct {
    \t\t\tu32 lo;
    \t\t\tu32 hi;
    \t\t};
    \t\tu64 full;
    \t};
    \tconst char *name; /* "}" in a comment */
    \tchar sep; /* '}' */
    };

    enum foo_state {
    \tFOO_STATE_DOWN,
    \tFOO_STATE_UP,
    };

    static inline int foo_wrap(struct foo *foo)
    {
    \treturn foo_open(foo, 0);
    }

    int __must_check
    foo_open(struct foo *foo,
    \t int flags) __acquires(foo->lock);

    __printf(2, 3) void foo_log(struct foo *foo, const char *fmt, ...);

    #define FOO_CALL(x) \\
    \tfoo_close((x), \\
    \t\t  0)
    """)


class MaskTest(absltest.TestCase):

    def test_offsets_kept(self):
        text = 'a /* b\nc */ "d{" \'}\' // e\nf'
        masked = decl_locator.mask(text)
        self.assertLen(masked, len(text))
        self.assertEqual(text.count("\n"), masked.count("\n"))
        self.assertNotIn("{", masked)
        self.assertNotIn("}", masked)
        self.assertTrue(masked.startswith("a "))
        self.assertTrue(masked.endswith("\nf"))


class FindStructTest(absltest.TestCase):

    def test_nested_braces(self):
        """Tests the span ends at the outer closing brace."""
        span = decl_locator.find_struct("foo_ops", _HEADER)
        self.assertIsNotNone(span)
        self.assertTrue(span.text.startswith("struct foo_ops {"))
        self.assertTrue(span.text.endswith("'}' */\n}"))
        self.assertIn("u64 full;", span.text)
        self.assertIn("const char *name;", span.text)
        self.assertEqual(4, span.line)
        self.assertEqual(_HEADER[span.start:span.end], span.text)

    def test_not_in_comment(self):
        span = decl_locator.find_struct("foo_ops", _HEADER)
        self.assertNotEqual(1, span.line)

    def test_missing(self):
        self.assertIsNone(decl_locator.find_struct("bar_ops", _HEADER))

    def test_forward_declaration_is_not_a_definition(self):
        text = "struct foo;\nstruct foo *foo_get(void);\n"
        self.assertIsNone(decl_locator.find_struct("foo", text))

    def test_prefix_of_other_name(self):
        text = "struct foo_ops_ext {\n\tint x;\n};\n"
        self.assertIsNone(decl_locator.find_struct("foo_ops", text))

    def test_brace_on_next_line(self):
        span = decl_locator.find_struct("foo", "struct foo\n{\n\tint x;\n};\n")
        self.assertEqual("struct foo\n{\n\tint x;\n}", span.text)

    def test_unbalanced(self):
        self.assertIsNone(decl_locator.find_struct("foo", "struct foo {\n"))


class FindEnumTest(absltest.TestCase):

    def test_found(self):
        span = decl_locator.find_enum("foo_state", _HEADER)
        self.assertEqual(
            "enum foo_state {\n\tFOO_STATE_DOWN,\n\tFOO_STATE_UP,\n}",
            span.text)
        self.assertEqual(17, span.line)

    def test_struct_is_not_enum(self):
        self.assertIsNone(decl_locator.find_enum("foo_ops", _HEADER))


class FindMacroTest(absltest.TestCase):

    def test_simple(self):
        span = decl_locator.find_macro("FOO_MAX", _HEADER)
        self.assertEqual("#define FOO_MAX 16", span.text)
        self.assertEqual(2, span.line)

    def test_continuation(self):
        span = decl_locator.find_macro("FOO_CALL", _HEADER)
        self.assertEqual("#define FOO_CALL(x) \\\n\tfoo_close((x), \\\n\t\t  0)",
                         span.text)

    def test_prefix_of_other_name(self):
        self.assertIsNone(decl_locator.find_macro("FOO", _HEADER))

    def test_last_line_without_newline(self):
        span = decl_locator.find_macro("BAR", "#  define BAR 1")
        self.assertEqual("#  define BAR 1", span.text)


class FindFunctionTest(parameterized.TestCase):

    def test_multiline_with_modifiers(self):
        """Tests prefixes, line breaks and trailing attributes are tolerated."""
        span = decl_locator.find_function("foo_open", _HEADER)
        self.assertEqual(
            "int __must_check\nfoo_open(struct foo *foo,\n"
            "\t int flags) __acquires(foo->lock);", span.text)
        self.assertEqual(27, span.line)

    def test_skips_calls(self):
        """Tests the call in foo_wrap() is not taken for a declaration."""
        span = decl_locator.find_function("foo_open", _HEADER)
        self.assertNotIn("return", span.text)

    def test_inline_definition(self):
        span = decl_locator.find_function("foo_wrap", _HEADER)
        self.assertEqual("static inline int foo_wrap(struct foo *foo)",
                         span.text)

    def test_attribute_before_name(self):
        span = decl_locator.find_function("foo_log", _HEADER)
        self.assertIsNotNone(span)
        self.assertTrue(span.text.endswith("const char *fmt, ...);"))

    @parameterized.named_parameters([
        ("Format", "__attribute__((format(printf, 1, 2)))"),
        ("Chained",
         "__must_check __attribute__((nonnull(1), format(printf, 1, 2)))"),
        ("Macro", "__printf(1, 2) __cold"),
    ])
    def test_nested_trailing_attributes(self, attributes):
        text = f"void foo_log(const char *fmt, ...) {attributes};\nint x;\n"
        span = decl_locator.find_function("foo_log", text)
        self.assertEqual(
            f"void foo_log(const char *fmt, ...) {attributes};", span.text)

    def test_function_pointer_member(self):
        span = decl_locator.find_function("open", _HEADER)
        self.assertEqual("int (*open)(struct foo *foo);", span.text)

    def test_macro_body_is_not_a_declaration(self):
        self.assertIsNone(decl_locator.find_function("foo_close", _HEADER))

    @parameterized.named_parameters([
        ("Return", "int f(void)\n{\n\treturn bar(1);\n}\n"),
        ("Assignment", "int x = bar(1);\n"),
        ("Argument", "int y = f(bar(1));\n"),
        ("Member", "int z = ops->bar(1) + ops.bar(2);\n"),
        ("Condition", "void g(void)\n{\n\tif (x) bar(1);\n}\n"),
        ("Comment", "/* int bar(int x); */\n"),
        ("Export", "EXPORT_SYMBOL(bar);\n"),
        ("LongerName", "int bar_ext(int x);\n"),
    ])
    def test_not_found(self, text):
        self.assertIsNone(decl_locator.find_function("bar", text))

    def test_pointer_return(self):
        text = "struct foo *\nfoo_get(int id);\n"
        span = decl_locator.find_function("foo_get", text)
        self.assertEqual("struct foo *\nfoo_get(int id);", span.text)

    def test_after_preprocessor_line(self):
        text = "#ifdef CONFIG_FOO\nvoid foo_put(struct foo *foo);\n#endif\n"
        span = decl_locator.find_function("foo_put", text)
        self.assertEqual("void foo_put(struct foo *foo);", span.text)
        self.assertEqual(2, span.line)


class FindDeclarationTest(parameterized.TestCase):

    @parameterized.parameters(
        ("fun", "foo_open"),
        ("struct", "foo_ops"),
        ("enum", "foo_state"),
        ("macro", "FOO_MAX"),
    )
    def test_dispatch(self, kind, name):
        self.assertIsNotNone(decl_locator.find_declaration(kind, name, _HEADER))


if __name__ == "__main__":
    absltest.main()
