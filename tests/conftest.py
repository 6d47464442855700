pytest_plugins = ("tests.fix_db",)


def pytest_configure(config):
    markers = [
        "slow: this test is kinda slow (skip with -m 'not slow')",
    ]

    for marker in markers:
        config.addinivalue_line("markers", marker)
