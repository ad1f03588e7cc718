from __future__ import annotations

import pytest

from fakes import (
    ALICE_ROUTE,
    BOB_ROUTE,
    MANAGER_KEY,
    MANAGER_ROUTE,
    MANAGERS_PATH,
    TREASURY_ROUTE,
    USERS_PATH,
    FakeCustody,
    FakeLedger,
)
from ledger_custody.config import Settings
from ledger_custody.orchestrator import TransferOrchestrator


@pytest.fixture
def settings() -> Settings:
    return Settings(
        users_path=USERS_PATH,
        managers_path=MANAGERS_PATH,
        manager_key=MANAGER_KEY,
        wait_rounds=5,
    )


@pytest.fixture
def custody() -> FakeCustody:
    fake = FakeCustody()
    fake.add_key(MANAGER_ROUTE, seed=1)
    fake.add_key(TREASURY_ROUTE, seed=2)
    fake.add_key(ALICE_ROUTE, seed=3)
    fake.add_key(BOB_ROUTE, seed=4)
    return fake


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def orchestrator(
    ledger: FakeLedger, custody: FakeCustody, settings: Settings
) -> TransferOrchestrator:
    return TransferOrchestrator(ledger, custody, settings=settings)
