from __future__ import annotations

import os.path

provided_prefix = os.getenv("DECLCHECK_TEST_PREFIX", None)
if provided_prefix:
    PREFIX = provided_prefix
else:
    this_file_dir = os.path.dirname(os.path.realpath(__file__))
    PREFIX = os.path.dirname(os.path.dirname(this_file_dir))

# Location of test data files such as test case descriptions.
test_data_prefix = os.path.join(PREFIX, "test-data", "unit")
samples_prefix = os.path.join(PREFIX, "test-data", "samples")

assert os.path.isdir(test_data_prefix), f"Test data prefix ({test_data_prefix}) not set correctly"

# Temp directory used for the temp files created when running test cases.
# This is *within* the tempfile.TemporaryDirectory that is chroot'ed per testcase.
test_temp_dir = "tmp"
