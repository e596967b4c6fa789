# Configuration for the tests.
# Use `py.test` to run the tests.

# (This file needs to be in or above the directory where py.test is called)

import pytest

def pytest_addoption(parser):
    group = parser.getgroup("pksave")
    group.addoption("--engine", action="store", default=None,
        help="Reference database URI (default: an in-memory database "
            "loaded from the bundled CSV files)")
    group.addoption("--all", action="store_true", default=False,
        help="Run all tests, even those that take a lot of time")

def pytest_configure(config):
    config.addinivalue_line("markers", "slow: takes a lot of time")

def pytest_runtest_setup(item):
    if 'slow' in item.keywords and not item.config.getvalue('all'):
        pytest.skip("skipping slow tests")

@pytest.fixture(scope="module")
def session(request):
    import pksave.db
    import pksave.db.load
    engine_uri = request.config.getvalue("engine")
    if engine_uri:
        return pksave.db.connect(engine_uri)
    session = pksave.db.connect('sqlite://')
    pksave.db.load.load(session)
    return session
