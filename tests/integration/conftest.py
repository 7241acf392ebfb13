import pytest


def pytest_collection_modifyitems(items):
    """Mark collected tests in this directory as integration tests."""
    for item in items:
        if "tests/integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


@pytest.fixture(autouse=True)
def _isolated_query_runtime():
    """Integration tests build their own service; never leak it to the next test."""
    from mcp_server.runtime import QueryRuntime

    QueryRuntime.set_service(None)
    yield
    QueryRuntime.set_service(None)
