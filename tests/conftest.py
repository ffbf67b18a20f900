from __future__ import annotations

from datetime import datetime

import pytest

from teamdesk.models import Member, Role


@pytest.fixture
def clock():
    return lambda: datetime(2024, 5, 17, 9, 5, 30)


@pytest.fixture
def alice_bob():
    return (
        Member("a", "Alice", "Engineer", "alice.png"),
        Member("b", "Bob", "Lead", "bob.png", role=Role.ADMIN),
    )
