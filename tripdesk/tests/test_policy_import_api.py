from __future__ import annotations

import io
import zipfile

import pandas as pd
import pytest
from fastapi.testclient import TestClient

from tripdesk.main import app
from tripdesk.platform.deps import get_platform_session

ORG_ID = "9a4f6a43-9c38-4b6c-a1f4-0d1f1f0b2e77"


@pytest.fixture
def client(fake_session):
    app.dependency_overrides[get_platform_session] = lambda: fake_session
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def test_parse_returns_rules_with_counts(client) -> None:
    payload = "קטגוריה,תקרה,מטבע\nלינה,800,דולר\nמזכרות,50,ILS\n".encode("utf-8")

    response = client.post(
        "/api/policy/import/parse",
        files={"file": ("rules.csv", payload, "text/csv")},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["source_format"] == "csv"
    assert (body["valid_count"], body["invalid_count"]) == (1, 1)
    assert body["rules"][0]["category"] == "accommodation"
    assert body["rules"][0]["currency"] == "USD"


def test_parse_reads_legacy_excel(client, monkeypatch) -> None:
    monkeypatch.setattr(
        pd,
        "read_excel",
        lambda source, **kwargs: pd.DataFrame([["category", "max amount"], ["hotel", "700"]]),
    )

    response = client.post(
        "/api/policy/import/parse",
        files={"file": ("rules.xls", b"\xd0\xcf\x11\xe0", "application/vnd.ms-excel")},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["source_format"] == "xls"
    assert body["rules"][0]["category"] == "accommodation"


def test_parse_rejects_legacy_word(client) -> None:
    response = client.post(
        "/api/policy/import/parse",
        files={"file": ("rules.doc", b"\xd0\xcf\x11\xe0", "application/msword")},
    )

    assert response.status_code == 400


def test_parse_maps_extraction_failure_to_422(client, fake_session) -> None:
    fake_session.fail("invoke")
    document = (
        '<w:document xmlns:w="http://schemas.openxmlformats.org/wordprocessingml/2006/main">'
        "<w:body><w:p><w:r><w:t>ראו נספח א</w:t></w:r></w:p></w:body></w:document>"
    )
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        zf.writestr("word/document.xml", document)

    response = client.post(
        "/api/policy/import/parse",
        files={"file": ("policy.docx", buffer.getvalue(), "application/octet-stream")},
    )

    assert response.status_code == 422


def test_oversized_file_is_413(client, monkeypatch) -> None:
    from tripdesk.core.config import get_settings

    monkeypatch.setattr(get_settings(), "attachment_max_size_bytes", 4)

    response = client.post(
        "/api/policy/import/parse",
        files={"file": ("rules.csv", b"category,max\nfood,1\n", "text/csv")},
    )

    assert response.status_code == 413


def test_import_inserts_valid_rules(client, fake_session) -> None:
    response = client.post(
        "/api/policy/import",
        json={
            "kind": "category_rules",
            "organization_id": ORG_ID,
            "rules": [
                {"category": "food", "max_amount": 120, "currency": "ILS", "destination_type": "all", "per_type": "per_day"},
                {"category": "pets", "max_amount": 5, "is_valid": False, "errors": ["x"]},
            ],
        },
    )

    assert response.status_code == 200
    assert response.json() == {"kind": "category_rules", "imported": 1, "skipped_invalid": 1}
    assert fake_session.calls_of("insert_many")[0]["table"] == "travel_policy_rules"


def test_import_maps_platform_failure_to_502(client, fake_session) -> None:
    fake_session.fail("insert_many")

    response = client.post(
        "/api/policy/import",
        json={
            "kind": "category_rules",
            "organization_id": ORG_ID,
            "rules": [{"category": "food", "max_amount": 120}],
        },
    )

    assert response.status_code == 502
    assert response.json()["detail"]


def test_import_maps_grade_lookup_failure_to_502(client, fake_session) -> None:
    fake_session.fail("select")

    response = client.post(
        "/api/policy/import",
        json={
            "kind": "category_rules",
            "organization_id": ORG_ID,
            "rules": [{"category": "food", "grade": "manager", "max_amount": 120}],
        },
    )

    assert response.status_code == 502
    assert fake_session.calls_of("insert_many") == []


def test_import_without_valid_rules_is_400(client) -> None:
    response = client.post(
        "/api/policy/import",
        json={
            "kind": "restrictions",
            "organization_id": ORG_ID,
            "rules": [{"category": "pets", "is_valid": False}],
        },
    )

    assert response.status_code == 400


def test_import_rejects_malformed_organization_id(client) -> None:
    response = client.post(
        "/api/policy/import",
        json={"kind": "restrictions", "organization_id": "org-1", "rules": [{"category": "food"}]},
    )

    assert response.status_code == 400


def test_template_download_is_an_attachment() -> None:
    response = TestClient(app).get("/api/policy/import/template")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith(
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )
    assert "policy_rules_template.xlsx" in response.headers["content-disposition"]
    assert response.content[:2] == b"PK"
