import pytest


@pytest.fixture
def anyio_backend():
    # the observation loop schedules its timer with asyncio
    return "asyncio"
