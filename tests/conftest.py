from datetime import UTC, datetime

import pytest
from fastapi.testclient import TestClient

from app.api.dependencies import get_access_policy
from app.clients.sheets import InMemorySheetRowReader
from app.config import settings
from app.main import app
from app.services.access.roles import AdminAccessPolicy, InMemoryRoleRepository
from app.services.access.sessions import issue_session_token
from app.services.premises.cache import TTLCache
from app.services.premises.repositories import InMemoryRoundWindowRepository
from app.services.premises.service import (
    PremisesVisitService,
    SheetTabs,
    get_premises_visit_service,
)
from tests.helpers.premises_fixtures import (
    bangkit_row,
    mapping_row,
    maju_row,
    three_round_windows,
    tracking_row,
)

ADMIN_EMAIL = "admin@example.com"
COORDINATOR_EMAIL = "coordinator@example.com"
MENTOR_EMAIL = "mentor@example.com"


@pytest.fixture
def client():
    """Test client with dependency overrides reset afterwards."""
    test_client = TestClient(app)
    yield test_client
    app.dependency_overrides.clear()


def bearer(email: str) -> dict[str, str]:
    token = issue_session_token(
        email,
        secret=settings.secret_key,
        ttl_seconds=settings.session_ttl_seconds,
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return bearer(ADMIN_EMAIL)


@pytest.fixture
def coordinator_headers() -> dict[str, str]:
    return bearer(COORDINATOR_EMAIL)


@pytest.fixture
def mentor_headers() -> dict[str, str]:
    return bearer(MENTOR_EMAIL)


@pytest.fixture
def access_policy(client) -> AdminAccessPolicy:
    policy = AdminAccessPolicy(
        admin_emails=[ADMIN_EMAIL],
        admin_roles={"program_coordinator"},
        repository=InMemoryRoleRepository(
            {COORDINATOR_EMAIL: ["program_coordinator"], MENTOR_EMAIL: ["mentor"]}
        ),
    )
    app.dependency_overrides[get_access_policy] = lambda: policy
    return policy


@pytest.fixture
def sheet_tabs() -> dict[str, list[dict[str, str]]]:
    return {
        "mapping": [
            mapping_row("Aisyah", "Zul", batch="Batch 5 Bangkit", program="Bangkit"),
            mapping_row("Badrul", "Zul", batch="Batch 5 Bangkit", program="Bangkit"),
            mapping_row("Cici", "Hani", batch="Batch 2 Maju", program="Maju"),
        ],
        "UM": [tracking_row("Aisyah", "2025-04-20")],
        "V8": [bangkit_row("Badrul")],
        "LaporanMajuUM": [maju_row("Cici", photos='["url1","url2"]')],
    }


@pytest.fixture
def premises_service(client, access_policy, sheet_tabs) -> PremisesVisitService:
    """Dashboard service over in-memory sheets, pinned to 1 May 2025 (KL time)."""
    reader = InMemorySheetRowReader(sheet_tabs)
    service = PremisesVisitService(
        reader_factory=lambda: reader,
        rounds=InMemoryRoundWindowRepository(three_round_windows()),
        cache=TTLCache(ttl_seconds=300, name="test"),
        tabs=SheetTabs(),
        clock=lambda: datetime(2025, 5, 1, 2, 0, tzinfo=UTC),
        timezone="Asia/Kuala_Lumpur",
    )
    app.dependency_overrides[get_premises_visit_service] = lambda: service
    return service
