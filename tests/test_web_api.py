from __future__ import annotations

from pathlib import Path

import pytest
from starlette.testclient import TestClient

from billease.config import Settings
from billease.web import SessionRegistry, create_app


@pytest.fixture
def client(tmp_path: Path) -> TestClient:
    settings = Settings(root_dir=str(tmp_path), db_path=str(tmp_path / "catalog.sqlite3"), currency_symbol="$")
    app = create_app(settings=settings, allow_origins=["*"])
    return TestClient(app)


def _add_product(client: TestClient, name: str, category: str, price: str) -> str:
    resp = client.post("/api/products", json={"name": name, "category": category, "price": price})
    assert resp.status_code == 201, resp.text
    return resp.json()["product"]["id"]


def test_catalog_crud_endpoints(client: TestClient) -> None:
    shirt = _add_product(client, "Shirt", "Clothing", "100")
    _add_product(client, "Kettle", "Appliances", "45.5")

    listing = client.get("/api/products").json()
    assert listing["total"] == 2
    assert client.get("/api/categories").json()["items"] == ["Appliances", "Clothing"]

    bad = client.post("/api/products", json={"name": "S", "category": "Clothing", "price": "1"})
    assert bad.status_code == 422
    assert bad.json()["success"] is False

    upd = client.put(f"/api/products/{shirt}", json={"name": "Shirt", "category": "Tops", "price": "110"})
    assert upd.status_code == 200
    assert upd.json()["product"]["price"] == "110.00"
    assert client.put("/api/products/nope", json={"name": "Shirt", "category": "Tops", "price": "1"}).status_code == 404

    assert client.delete(f"/api/products/{shirt}").status_code == 200
    assert client.delete(f"/api/products/{shirt}").status_code == 404


def test_product_picker_groups_sorted(client: TestClient) -> None:
    _add_product(client, "Shirt", "Clothing", "19.99")
    _add_product(client, "Kettle", "Appliances", "45")
    groups = client.get("/api/picker/products").json()["groups"]
    assert [g["group"] for g in groups] == ["Appliances", "Clothing"]
    assert groups[1]["options"][0]["label"] == "Shirt ($19.99)"
    filtered = client.get("/api/picker/products", params={"q": "kett"}).json()["groups"]
    assert [g["group"] for g in filtered] == ["Appliances"]


def test_bill_session_flow(client: TestClient) -> None:
    a = _add_product(client, "Product A", "General", "100")
    b = _add_product(client, "Product B", "General", "50")

    sid = client.post("/api/bills").json()["session_id"]
    assert client.post(f"/api/bills/{sid}/lines", json={"product_id": a}).status_code == 200
    assert client.post(f"/api/bills/{sid}/lines", json={"product_id": b}).status_code == 200
    assert client.patch(f"/api/bills/{sid}/lines/{b}", json={"quantity": 3}).json()["total_amount"] == "250.00"
    resp = client.patch(f"/api/bills/{sid}/lines/{a}", json={"unit_price": "80"})
    assert resp.json()["line"]["override_price"] == "80.00"
    assert resp.json()["total_amount"] == "230.00"

    state = client.get(f"/api/bills/{sid}").json()
    assert [line["product_id"] for line in state["lines"]] == [a, b]

    snap = client.post(f"/api/bills/{sid}/snapshot", json={"client_name": "Jane"}).json()["snapshot"]
    assert snap["total_amount"] == "230.00"
    assert [line["unit_price"] for line in snap["lines"]] == ["80.00", "50.00"]

    pdf = client.post(f"/api/bills/{sid}/export/pdf", json={"client_name": "Jane"})
    assert pdf.status_code == 200
    assert pdf.headers["content-type"] == "application/pdf"
    assert pdf.content.startswith(b"%PDF")

    html = client.post(f"/api/bills/{sid}/export/html", json={"client_name": "Jane"})
    assert "Total Amount: $230.00" in html.text

    share = client.post(f"/api/bills/{sid}/export/share?phone=15551234", json={"client_name": "Jane"}).json()
    assert share["url"].startswith("https://wa.me/15551234?text=")

    # Exports leave the live bill as it was.
    assert client.get(f"/api/bills/{sid}").json()["total_amount"] == "230.00"


def test_bill_errors_map_to_client_errors(client: TestClient) -> None:
    a = _add_product(client, "Product A", "General", "100")
    sid = client.post("/api/bills").json()["session_id"]

    unknown = client.post(f"/api/bills/{sid}/lines", json={"product_id": "ghost"})
    assert unknown.status_code == 404
    assert unknown.json()["error"] == "UnknownProduct"

    assert client.delete(f"/api/bills/{sid}/lines/{a}").json()["error"] == "UnknownLine"
    invalid = client.patch(f"/api/bills/{sid}/lines/{a}", json={"quantity": "many"})
    assert invalid.status_code == 400
    assert invalid.headers["content-type"].startswith("application/json")
    assert invalid.json() == {"error": "ValidationError", "detail": "invalid quantity: 'many'"}

    empty = client.post(f"/api/bills/{sid}/snapshot", json={"client_name": "Jane"})
    assert empty.status_code == 422
    assert empty.json()["error"] == "EmptyBill"

    client.post(f"/api/bills/{sid}/lines", json={"product_id": a})
    nameless = client.post(f"/api/bills/{sid}/export/pdf", json={"client_name": "  "})
    assert nameless.json()["error"] == "MissingClientName"

    missing = client.get("/api/bills/unknown-session")
    assert missing.status_code == 404
    assert missing.json() == {"error": "NotFound", "detail": "Bill session not found"}
    assert client.delete(f"/api/bills/{sid}").status_code == 200
    assert client.get(f"/api/bills/{sid}").status_code == 404


def test_malformed_requests_get_json_errors(client: TestClient) -> None:
    a = _add_product(client, "Product A", "General", "100")
    sid = client.post("/api/bills").json()["session_id"]

    broken = client.post(f"/api/bills/{sid}/lines", content=b"{not json", headers={"content-type": "application/json"})
    assert broken.status_code == 400
    assert broken.json()["error"] == "ValidationError"

    client.post(f"/api/bills/{sid}/lines", json={"product_id": a})
    huge = client.patch(f"/api/bills/{sid}/lines/{a}", json={"quantity": 10**27})
    assert huge.status_code == 400
    assert huge.json()["error"] == "ValidationError"
    assert client.get(f"/api/bills/{sid}").json()["total_amount"] == "100.00"

    not_object = client.put(f"/api/products/{a}", json=["Shirt"])
    assert not_object.status_code == 400
    assert not_object.json()["detail"] == "Payload must be a JSON object"

    bad_price = client.post("/api/products", json={"name": "Shirt", "category": "C", "price": "99999999999999999999"})
    assert bad_price.status_code == 422
    assert bad_price.json()["success"] is False


def test_sessions_are_evicted_when_idle_or_over_capacity(tmp_path: Path) -> None:
    now = [0.0]
    registry = SessionRegistry(max_sessions=2, idle_seconds=60, clock=lambda: now[0])
    settings = Settings(root_dir=str(tmp_path), db_path=str(tmp_path / "catalog.sqlite3"))
    client = TestClient(create_app(settings=settings, sessions=registry))

    first = client.post("/api/bills").json()["session_id"]
    second = client.post("/api/bills").json()["session_id"]
    assert client.get(f"/api/bills/{first}").status_code == 200  # first is now most recent
    third = client.post("/api/bills").json()["session_id"]
    assert client.get(f"/api/bills/{second}").status_code == 404
    assert len(registry) == 2

    now[0] = 61.0
    assert client.get(f"/api/bills/{first}").status_code == 404
    assert client.get(f"/api/bills/{third}").status_code == 404
    assert client.get("/api/health").json()["sessions"] == 0
