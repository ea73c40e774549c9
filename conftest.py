from __future__ import annotations

import os.path

pytest_plugins = ["declcheck.test.data"]


def pytest_configure(config):
    declcheck_source_root = os.path.dirname(os.path.abspath(__file__))
    if os.getcwd() != declcheck_source_root:
        os.chdir(declcheck_source_root)
