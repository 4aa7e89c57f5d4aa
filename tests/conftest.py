import pytest

from gateway import ConnectionGateway
from registry import RoomRegistry

FIXED_MILLIS = 1_700_000_000_000


@pytest.fixture
def fixed_millis() -> int:
    return FIXED_MILLIS


@pytest.fixture
def registry() -> RoomRegistry:
    return RoomRegistry()


@pytest.fixture
def gateway(registry: RoomRegistry) -> ConnectionGateway:
    gw = ConnectionGateway(registry, clock=lambda: FIXED_MILLIS)
    for session_id in ("s1", "s2", "s3"):
        gw.connect(session_id)
    return gw
