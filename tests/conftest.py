"""
Shared test configuration.

Points WORLDSIM_DB_PATH at a temporary file for the whole test session so
no test writes a database into the project directory.
"""

import os

import pytest


@pytest.fixture(autouse=True, scope="session")
def _isolate_db(tmp_path_factory):
    """Use a temp DB path for all tests to avoid polluting the project dir."""
    tmp_dir = tmp_path_factory.mktemp("worldsim_test_data")
    os.environ["WORLDSIM_DB_PATH"] = str(tmp_dir / "test_worldsim.db")
    yield
    os.environ.pop("WORLDSIM_DB_PATH", None)
