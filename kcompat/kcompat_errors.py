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

"""Errors raised by the kcompat generator.

Every error carries the exit status the generator terminates with. Expected
negative results (a declaration or pattern that is not found) are never
errors.
"""


class KcompatError(RuntimeError):
    """Base error; aborts the whole run."""
    exit_code = 1


class SourceTreeError(KcompatError):
    """The kernel source tree is missing or does not look like one."""
    exit_code = 8


class ConfigFileError(KcompatError):
    """The kernel configuration file is missing."""
    exit_code = 9


class CatalogError(KcompatError):
    """A catalog entry is malformed: bad grammar, kind or pattern."""


class SourceReadError(KcompatError):
    """A resolved header could not be read."""
