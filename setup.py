#!/usr/bin/env python

from __future__ import annotations

import os
import os.path
import sys

if sys.version_info < (3, 9, 0):  # noqa: UP036, RUF100
    sys.stderr.write("ERROR: You need Python 3.9 or later to use declcheck.\n")
    exit(1)

# we'll import stuff from the source tree, let's ensure is on the sys path
sys.path.insert(0, os.path.dirname(os.path.realpath(__file__)))

# This requires setuptools when building; setuptools is not needed
# when installing from a wheel file.
from setuptools import find_packages, setup
from setuptools.command.build_py import build_py

from declcheck.version import __version__ as version

description = "Validator for declaration catalogues"
long_description = """
declcheck: validate declaration catalogues
==========================================

declcheck reads catalogue files that declare the classes, modules and
interfaces of a library together with the signatures of their members.
It reports malformed declarations, conflicting declarations, references
to undeclared types and generic instantiations with the wrong number of
type arguments.
""".lstrip()


class CustomPythonBuild(build_py):
    def pin_version(self) -> None:
        path = os.path.join(self.build_lib, "declcheck")
        self.mkpath(path)
        with open(os.path.join(path, "version.py"), "w") as stream:
            stream.write(f'__version__ = "{version}"\n')

    def run(self) -> None:
        self.execute(self.pin_version, ())
        build_py.run(self)


cmdclass = {"build_py": CustomPythonBuild}

classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "License :: OSI Approved :: MIT License",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3.9",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development",
]

setup(
    name="declcheck",
    version=version,
    description=description,
    long_description=long_description,
    license="MIT",
    classifiers=classifiers,
    packages=find_packages(include=["declcheck", "declcheck.*"]),
    entry_points={"console_scripts": ["declcheck=declcheck.__main__:console_entry"]},
    cmdclass=cmdclass,
    install_requires=[
        "typing_extensions>=4.6.0",
        "mypy_extensions>=1.0.0",
        "tomli>=1.1.0; python_version<'3.11'",
    ],
    extras_require={"test": ["pytest>=7.0"]},
    python_requires=">=3.9",
    include_package_data=True,
)
