"""
Workspace API tests.

Covers:
    1. Workspace lifecycle (create / get / delete / unknown id)
    2. CSV import: JSON, multipart, raw body, errors, auto_connect
    3. Filters: set / clear / options / performer search
    4. Node drag
    5. Connections + edge editor (open / patch / save / delete / cancel)
    6. Import template + dry-run validation endpoints
"""

import io

BASE = "/api/v1/workspaces"


def _edges(client, ws):
    return {e["id"]: e for e in client.get(f"{BASE}/{ws}").get_json()["edges"]}


# ── 1. Lifecycle ────────────────────────────────────────────────────────


class TestWorkspaceLifecycle:

    def test_create_returns_empty_diagram(self, client):
        res = client.post(BASE)
        assert res.status_code == 201
        data = res.get_json()
        assert data["workspace_id"]
        assert data["nodes"] == []
        assert data["edges"] == []
        assert data["editor"] is None

    def test_get_and_delete(self, client, workspace_id):
        assert client.get(f"{BASE}/{workspace_id}").status_code == 200
        assert client.delete(f"{BASE}/{workspace_id}").status_code == 200
        res = client.get(f"{BASE}/{workspace_id}")
        assert res.status_code == 404
        assert res.get_json()["code"] == "ERR_NOT_FOUND"

    def test_unknown_workspace(self, client):
        res = client.put(f"{BASE}/nope/filters", json={})
        assert res.status_code == 404


# ── 2. Import ───────────────────────────────────────────────────────────


class TestWorkspaceImport:

    def test_json_import(self, client, workspace_id, sample_csv):
        res = client.post(f"{BASE}/{workspace_id}/import", json={"csv_content": sample_csv})
        assert res.status_code == 200
        data = res.get_json()
        assert data["imported"] == {"micro_jobs": 3, "job_performers": 3, "connections": 2}
        assert [n["id"] for n in data["diagram"]["nodes"]] == ["job-1", "job-2", "job-3"]

    def test_multipart_import(self, client, workspace_id, sample_csv):
        res = client.post(
            f"{BASE}/{workspace_id}/import",
            data={"file": (io.BytesIO(sample_csv.encode("utf-8")), "journey.csv")},
            content_type="multipart/form-data",
        )
        assert res.status_code == 200
        assert res.get_json()["imported"]["micro_jobs"] == 3

    def test_raw_body_import(self, client, workspace_id, sample_csv):
        res = client.post(
            f"{BASE}/{workspace_id}/import", data=sample_csv, content_type="text/csv",
        )
        assert res.status_code == 200
        assert res.get_json()["imported"]["micro_jobs"] == 3

    def test_auto_connect_off(self, client, workspace_id, sample_csv):
        res = client.post(
            f"{BASE}/{workspace_id}/import?auto_connect=false",
            json={"csv_content": sample_csv},
        )
        assert res.status_code == 200
        assert res.get_json()["diagram"]["edges"] == []

    def test_non_csv_file_rejected(self, client, workspace_id, sample_csv):
        res = client.post(
            f"{BASE}/{workspace_id}/import",
            data={"file": (io.BytesIO(sample_csv.encode("utf-8")), "journey.txt")},
            content_type="multipart/form-data",
        )
        assert res.status_code == 400
        assert res.get_json()["error"] == "Please upload a CSV file"

    def test_missing_columns_leave_workspace_untouched(self, client, imported_workspace):
        res = client.post(
            f"{BASE}/{imported_workspace}/import",
            json={"csv_content": "Sequence,Micro Job\n1,A\n"},
        )
        assert res.status_code == 400
        body = res.get_json()
        assert body["error"] == "Missing required columns: main_job, domain"
        assert body["details"]["missing_columns"] == ["main_job", "domain"]
        nodes = client.get(f"{BASE}/{imported_workspace}").get_json()["nodes"]
        assert len(nodes) == 3

    def test_empty_csv(self, client, workspace_id):
        res = client.post(
            f"{BASE}/{workspace_id}/import",
            json={"csv_content": "Sequence,Micro Job,Main Job,Domain\n"},
        )
        assert res.status_code == 400
        assert res.get_json()["error"] == "No data found in CSV file"

    def test_no_content(self, client, workspace_id):
        res = client.post(f"{BASE}/{workspace_id}/import", json={})
        assert res.status_code == 400

    def test_non_string_content_leaves_workspace_untouched(self, client, imported_workspace):
        res = client.post(f"{BASE}/{imported_workspace}/import", json={"csv_content": 123})
        assert res.status_code == 400
        body = res.get_json()
        assert body["code"] == "ERR_IMPORT_INVALID"
        assert body["details"] == {"csv_content": "Must be a string."}
        nodes = client.get(f"{BASE}/{imported_workspace}").get_json()["nodes"]
        assert len(nodes) == 3


# ── 3. Filters ──────────────────────────────────────────────────────────


class TestFilters:

    def test_set_filters_updates_flags(self, client, imported_workspace):
        res = client.put(
            f"{BASE}/{imported_workspace}/filters",
            json={"selectedJobPerformers": ["jp-1"], "selectedDomains": ["Contracting"]},
        )
        assert res.status_code == 200
        nodes = {n["id"]: n for n in res.get_json()["nodes"]}
        assert nodes["job-2"]["data"]["isHighlighted"] is True
        assert nodes["job-2"]["minimapColor"] == "#3B82F6"
        assert nodes["job-1"]["data"]["isHighlighted"] is False
        assert nodes["job-3"]["hidden"] is True

    def test_team_highlight_minimap_color(self, client, imported_workspace):
        res = client.put(f"{BASE}/{imported_workspace}/filters", json={"selectedTeams": ["Analytics"]})
        nodes = {n["id"]: n for n in res.get_json()["nodes"]}
        assert nodes["job-3"]["minimapColor"] == "#10B981"

    def test_clear_filters(self, client, imported_workspace):
        client.put(f"{BASE}/{imported_workspace}/filters", json={"selectedGroups": ["Finance"]})
        res = client.delete(f"{BASE}/{imported_workspace}/filters")
        data = res.get_json()
        assert data["filters"]["selectedGroups"] == []
        assert not any(n["data"]["isHighlighted"] for n in data["nodes"])

    def test_invalid_filter_payload(self, client, imported_workspace):
        res = client.put(f"{BASE}/{imported_workspace}/filters", json={"selectedGroups": "Finance"})
        assert res.status_code == 422
        assert "selectedGroups" in res.get_json()["details"]

    def test_options(self, client, imported_workspace):
        data = client.get(f"{BASE}/{imported_workspace}/filters/options").get_json()
        assert data["groups"] == ["Finance", "Operations", "Sales Team"]
        assert data["phases"] == ["Onboard", "Operate"]

    def test_performer_search(self, client, imported_workspace):
        data = client.get(f"{BASE}/{imported_workspace}/performers/search?q=finance").get_json()
        assert data["total"] == 1
        assert data["items"][0]["name"] == "Finance Analyst"


# ── 4. Node drag ────────────────────────────────────────────────────────


class TestNodePosition:

    def test_move(self, client, imported_workspace):
        res = client.patch(
            f"{BASE}/{imported_workspace}/nodes/job-2/position", json={"x": 10, "y": 20.5},
        )
        assert res.status_code == 200
        assert res.get_json()["position"] == {"x": 10, "y": 20.5}
        nodes = client.get(f"{BASE}/{imported_workspace}").get_json()["nodes"]
        assert nodes[1]["position"] == {"x": 10, "y": 20.5}

    def test_invalid_coordinates(self, client, imported_workspace):
        res = client.patch(
            f"{BASE}/{imported_workspace}/nodes/job-2/position", json={"x": "left"},
        )
        assert res.status_code == 400
        assert set(res.get_json()["details"]) == {"x", "y"}

    def test_unknown_job(self, client, imported_workspace):
        res = client.patch(
            f"{BASE}/{imported_workspace}/nodes/job-9/position", json={"x": 1, "y": 1},
        )
        assert res.status_code == 404


# ── 5. Connections + editor ─────────────────────────────────────────────


class TestConnectionEditing:

    def test_add_connection(self, client, imported_workspace):
        res = client.post(
            f"{BASE}/{imported_workspace}/connections",
            json={"source": "job-3", "target": "job-1", "label": "Retry"},
        )
        assert res.status_code == 201
        conn = res.get_json()
        assert conn["type"] == "normal"
        assert conn["label"] == "Retry"
        assert len(_edges(client, imported_workspace)) == 3

    def test_add_connection_unknown_job(self, client, imported_workspace):
        res = client.post(
            f"{BASE}/{imported_workspace}/connections", json={"source": "job-1", "target": "job-7"},
        )
        assert res.status_code == 422

    def test_add_connection_missing_fields(self, client, imported_workspace):
        res = client.post(f"{BASE}/{imported_workspace}/connections", json={"source": "job-1"})
        assert res.status_code == 400

    def test_edit_and_save_feedback(self, client, imported_workspace):
        ws = imported_workspace
        res = client.post(f"{BASE}/{ws}/connections/e-job-1-job-2/edit")
        assert res.status_code == 200
        assert res.get_json()["choice"] == "smoothstep"

        res = client.patch(f"{BASE}/{ws}/editor", json={"label": "Rework", "type": "feedback"})
        assert res.status_code == 200
        draft = res.get_json()["editor"]
        assert draft["animated"] is True
        assert draft["style"] == {"stroke": "#ef4444"}

        res = client.post(f"{BASE}/{ws}/editor/save", json={})
        assert res.status_code == 200
        assert res.get_json()["connection"]["type"] == "feedback"

        edges = _edges(client, ws)
        assert edges["e-job-1-job-2"]["label"] == "Rework"
        assert edges["e-job-1-job-2"]["style"]["strokeDasharray"] == "5,5"
        assert edges["e-job-2-job-3"]["label"] == ""
        assert edges["e-job-2-job-3"]["animated"] is False

    def test_geometric_type(self, client, imported_workspace):
        ws = imported_workspace
        client.post(f"{BASE}/{ws}/connections/e-job-2-job-3/edit")
        client.patch(f"{BASE}/{ws}/editor", json={"type": "straight"})
        client.post(f"{BASE}/{ws}/editor/save", json={})
        assert _edges(client, ws)["e-job-2-job-3"]["type"] == "straight"

    def test_delete_edge(self, client, imported_workspace):
        ws = imported_workspace
        client.post(f"{BASE}/{ws}/connections/e-job-2-job-3/edit")
        res = client.post(f"{BASE}/{ws}/editor/delete", json={})
        assert res.status_code == 200
        assert res.get_json()["deleted"] == "e-job-2-job-3"
        assert list(_edges(client, ws)) == ["e-job-1-job-2"]

    def test_cancel_discards_draft(self, client, imported_workspace):
        ws = imported_workspace
        before = _edges(client, ws)
        client.post(f"{BASE}/{ws}/connections/e-job-1-job-2/edit")
        client.patch(f"{BASE}/{ws}/editor", json={"label": "never saved"})
        res = client.post(f"{BASE}/{ws}/editor/cancel", json={})
        assert res.get_json()["editor"] is None
        assert _edges(client, ws) == before

    def test_editor_without_open_edge(self, client, imported_workspace):
        res = client.post(f"{BASE}/{imported_workspace}/editor/save", json={})
        assert res.status_code == 409
        assert res.get_json()["code"] == "ERR_CONFLICT_STATE"

    def test_invalid_choice(self, client, imported_workspace):
        ws = imported_workspace
        client.post(f"{BASE}/{ws}/connections/e-job-1-job-2/edit")
        res = client.patch(f"{BASE}/{ws}/editor", json={"type": "zigzag"})
        assert res.status_code == 422

    def test_edit_unknown_edge(self, client, imported_workspace):
        res = client.post(f"{BASE}/{imported_workspace}/connections/nope/edit")
        assert res.status_code == 404

    def test_non_string_label_keeps_edges_savable(self, client, imported_workspace):
        ws = imported_workspace
        client.post(f"{BASE}/{ws}/connections/e-job-1-job-2/edit")
        res = client.patch(f"{BASE}/{ws}/editor", json={"label": {"a": 1}})
        assert res.status_code == 422
        assert res.get_json()["details"] == {"label": "Must be a string."}

        res = client.post(f"{BASE}/{ws}/editor/save", json={})
        assert res.status_code == 200
        assert _edges(client, ws)["e-job-1-job-2"]["label"] == ""

        res = client.post(f"{BASE}/{ws}/journey/save", json={"name": "Renewals"})
        assert res.status_code == 201

    def test_add_connection_non_string_label(self, client, imported_workspace):
        res = client.post(
            f"{BASE}/{imported_workspace}/connections",
            json={"source": "job-3", "target": "job-1", "label": {"a": 1}},
        )
        assert res.status_code == 422
        assert res.get_json()["code"] == "ERR_UNPROCESSABLE"
        assert len(_edges(client, imported_workspace)) == 2


# ── 6. Template + validate ──────────────────────────────────────────────


class TestImportEndpoints:

    def test_template_download(self, client):
        res = client.get("/api/v1/import/template")
        assert res.status_code == 200
        assert res.mimetype == "text/csv"
        assert "attachment" in res.headers["Content-Disposition"]
        assert res.get_data(as_text=True).startswith("Sequence,Micro Job")

    def test_validate_dry_run(self, client, sample_csv):
        res = client.post("/api/v1/import/validate", json={"csv_content": sample_csv})
        assert res.status_code == 200
        data = res.get_json()
        assert data["valid"] is True
        assert data["total_rows"] == 3
        assert data["performer_count"] == 3

    def test_validate_reports_errors(self, client):
        res = client.post(
            "/api/v1/import/validate",
            data="Sequence,Micro Job,Main Job,Domain\n1,A\n",
            content_type="text/csv",
        )
        assert res.status_code == 400
        assert res.get_json()["error"].startswith("CSV parsing errors:")
