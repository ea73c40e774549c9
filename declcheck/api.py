"""This module makes it possible to use declcheck as part of a Python application.

It just mimics command line activation without starting a new interpreter.
So the normal docs about the declcheck command line apply.

Just import this module and then call the 'run' function with a parameter of
type list[str], containing what normally would have been the command line
arguments to declcheck.

Function 'run' returns a tuple[str, str, int], namely
(<normal_report>, <error_report>, <exit_status>),
in which <normal_report> is what declcheck normally writes to sys.stdout,
<error_report> is what declcheck normally writes to sys.stderr and exit_status is
the exit status declcheck normally returns to the operating system.

Any pretty formatting is left to the caller.

Trivial example of code using this module:

import sys
from declcheck import api

result = api.run(sys.argv[1:])

if result[0]:
    print('\\nValidation report:\\n')
    print(result[0])  # stdout

if result[1]:
    print('\\nError report:\\n')
    print(result[1])  # stderr

print('\\nExit status:', result[2])
"""

from __future__ import annotations

from io import StringIO


def run(args: list[str]) -> tuple[str, str, int]:
    # Lazy import to avoid needing to import all of declcheck to call run
    from declcheck.main import main

    stdout = StringIO()
    stderr = StringIO()

    try:
        main(args=args, stdout=stdout, stderr=stderr)
        exit_status = 0
    except SystemExit as system_exit:
        assert isinstance(system_exit.code, int)
        exit_status = system_exit.code

    return stdout.getvalue(), stderr.getvalue(), exit_status
