"""
Shared pytest fixtures for the journey map test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate, workspace reset (autouse)
    - client: Flask test client (function-scoped)
    - sample_csv: Three-row journey CSV text
    - workspace_id: Empty workspace created via the API
    - imported_workspace: Workspace with SAMPLE_CSV imported (auto-connected)
"""

import pytest

from journey_map import create_app
from journey_map.models import db as _db
from journey_map.services.workspace_service import reset_workspaces


# Rows are deliberately out of sequence order: sequence 2 comes first, so
# performer ids follow file order while job ids follow sequence order.
#
#   performers: jp-0 Contract Manager (Operations), jp-1 Finance Analyst
#               (Finance), jp-2 Sales Rep (Sales Team)
#   jobs:       job-1 seq 1 [jp-2, jp-0]  team "Contract Management"
#               job-2 seq 2 [jp-0, jp-1]  team "Finance"
#               job-3 seq 3 [jp-2]        team "Analytics"
SAMPLE_CSV = (
    "Sequence,Micro Job,Main Job,Domain,Phase,High Level Description,"
    "Detail Description,Job Performer,Job Performer Group,Product Team\n"
    '2,Review terms,Manage Contract,Contracting,Operate,HL2,DD2,'
    '"Contract Manager, Finance Analyst","Operations, Finance",Finance\n'
    '1,Activate contract,Manage Contract,Contracting,Onboard,HL1,DD1,'
    '"Sales Rep, Contract Manager","Sales Team, Operations",Contract Management\n'
    "3,Analyze bookings,Analyze Sales,Performance,Operate,HL3,DD3,"
    "Sales Rep,Sales Team,Analytics\n"
)


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        reset_workspaces()
        yield
        reset_workspaces()
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def sample_csv():
    """Three-row journey CSV (see SAMPLE_CSV above for the expected ids)."""
    return SAMPLE_CSV


@pytest.fixture()
def workspace_id(client):
    """Create an empty workspace via the API and return its id."""
    res = client.post("/api/v1/workspaces")
    assert res.status_code == 201
    return res.get_json()["workspace_id"]


@pytest.fixture()
def imported_workspace(client, workspace_id):
    """Workspace with SAMPLE_CSV imported and sequential edges generated."""
    res = client.post(
        f"/api/v1/workspaces/{workspace_id}/import",
        json={"csv_content": SAMPLE_CSV},
    )
    assert res.status_code == 200, res.get_json()
    return workspace_id
