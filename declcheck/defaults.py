from __future__ import annotations

import os
from typing import Final

# File extensions of catalogue files, used when a directory is given on the command line.
CATALOGUE_EXTENSIONS: Final = (".rbs",)

CONFIG_FILE: Final = ["declcheck.ini", ".declcheck.ini"]
PYPROJECT_CONFIG_FILES: Final = ["pyproject.toml"]
SHARED_CONFIG_FILES: Final = ["setup.cfg"]
USER_CONFIG_FILES: Final = ["~/.config/declcheck/config", "~/.declcheck.ini"]
if os.environ.get("XDG_CONFIG_HOME"):
    USER_CONFIG_FILES.insert(0, os.path.join(os.environ["XDG_CONFIG_HOME"], "declcheck/config"))

CONFIG_FILES: Final = (
    CONFIG_FILE + PYPROJECT_CONFIG_FILES + SHARED_CONFIG_FILES + USER_CONFIG_FILES
)

# Core types that a catalogue may refer to without declaring them, mapped to the
# number of type arguments they take. None means the arity is not known.
BUILTIN_TYPES: Final[dict[str, int | None]] = {
    # Classes
    "BasicObject": 0,
    "Object": 0,
    "Module": 0,
    "Class": 0,
    "NilClass": 0,
    "TrueClass": 0,
    "FalseClass": 0,
    "Integer": 0,
    "Float": 0,
    "Numeric": 0,
    "Rational": 0,
    "Complex": 0,
    "String": 0,
    "Symbol": 0,
    "Regexp": 0,
    "MatchData": 0,
    "Encoding": 0,
    "Encoding::Converter": 0,
    "Array": 1,
    "Hash": 2,
    "Range": 1,
    "Set": 1,
    "Struct": 1,
    "Enumerator": 2,
    "Enumerator::Lazy": 2,
    "Enumerator::Yielder": 0,
    "Proc": 0,
    "Method": 0,
    "UnboundMethod": 0,
    "Binding": 0,
    "Time": 0,
    "Random": 0,
    "Thread": 0,
    "Thread::Queue": 0,
    "Mutex": 0,
    "Fiber": 0,
    "IO": 0,
    "File": 0,
    "File::Stat": 0,
    "Dir": 0,
    "Data": 0,
    # Modules
    "Kernel": 0,
    "Comparable": 0,
    "Enumerable": 1,
    "Process": 0,
    "Marshal": 0,
    "Math": 0,
    "ObjectSpace": 0,
    "Signal": 0,
    "Errno": 0,
    "FileTest": 0,
    # Exceptions
    "Exception": 0,
    "StandardError": 0,
    "ScriptError": 0,
    "RuntimeError": 0,
    "ArgumentError": 0,
    "TypeError": 0,
    "NameError": 0,
    "NoMethodError": 0,
    "NotImplementedError": 0,
    "IndexError": 0,
    "KeyError": 0,
    "StopIteration": 0,
    "RangeError": 0,
    "IOError": 0,
    "EOFError": 0,
    "SystemCallError": 0,
    "FrozenError": 0,
    "Interrupt": 0,
    # Interfaces
    "_ToS": 0,
    "_ToStr": 0,
    "_ToInt": 0,
    "_ToI": 0,
    "_ToF": 0,
    "_ToR": 0,
    "_ToC": 0,
    "_ToSym": 0,
    "_ToPath": 0,
    "_ToIO": 0,
    "_ToProc": 0,
    "_ToAry": 1,
    "_ToA": 1,
    "_ToHash": 2,
    "_ToH": 2,
    "_Each": 1,
    "_Reader": 0,
    "_Writer": 0,
    "_Inspect": 0,
    # Global type aliases
    "int": 0,
    "float": 0,
    "real": 0,
    "string": 0,
    "path": 0,
    "interned": 0,
    "io": 0,
    "array": 1,
    "hash": 2,
    "range": 1,
}
