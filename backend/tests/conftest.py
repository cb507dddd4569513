import pytest
from venue_scheduler.domain.snapshots import ResourceSnapshot
from venue_scheduler.models import ResourceType


@pytest.fixture
def venue() -> tuple[ResourceSnapshot, ...]:
    """Four axe bays, two physical lane pairs and two party rooms."""
    return (
        ResourceSnapshot(1, "Bay 1", ResourceType.AXE, 1),
        ResourceSnapshot(2, "Bay 2", ResourceType.AXE, 2),
        ResourceSnapshot(3, "Bay 3", ResourceType.AXE, 3),
        ResourceSnapshot(4, "Bay 4", ResourceType.AXE, 4),
        ResourceSnapshot(11, "Lane 1", ResourceType.DUCKPIN, 1, pair_group=1),
        ResourceSnapshot(12, "Lane 2", ResourceType.DUCKPIN, 2, pair_group=1),
        ResourceSnapshot(13, "Lane 3", ResourceType.DUCKPIN, 3, pair_group=2),
        ResourceSnapshot(14, "Lane 4", ResourceType.DUCKPIN, 4, pair_group=2),
        ResourceSnapshot(21, "Party Room A", ResourceType.PARTY, 1),
        ResourceSnapshot(22, "Party Room B", ResourceType.PARTY, 2),
    )
