"""Tests for the catalog endpoints, health and error formatting."""

from http import HTTPStatus

from fastapi.testclient import TestClient


def test_health_check(client):
    response = client.get("/health")

    assert response.status_code == HTTPStatus.OK
    assert response.json()["status"] == "ok"
    assert "timestamp" in response.json()


def test_list_products_paginated(client, products):
    response = client.get("/products", params={"page": 2, "limit": 3})

    assert response.status_code == HTTPStatus.OK
    body = response.json()
    assert len(body["products"]) == 3
    assert body["pagination"] == {"page": 2, "limit": 3, "total": len(products), "pages": 3}


def test_search_matches_any_word(client, products):
    """Search terms match name or description, results sorted by name."""
    response = client.get("/products", params={"search": "planter cotton"})

    names = [p["name"] for p in response.json()["products"]]
    assert names == ["Ceramic Planter", "Cotton T-Shirt"]


def test_filter_by_category(client, products):
    category_id = products["Jeans"].category_id

    response = client.get("/products", params={"category": category_id})

    names = {p["name"] for p in response.json()["products"]}
    assert names == {"Cotton T-Shirt", "Jeans"}


def test_limit_is_bounded(client):
    response = client.get("/products", params={"limit": 500})

    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert response.json()["details"][0]["field"] == "limit"


def test_get_product(client, products):
    watch = products["Smart Watch"]

    response = client.get(f"/products/{watch.id}")

    body = response.json()
    assert body["name"] == "Smart Watch"
    assert body["price"] == 249.99
    assert body["stock"] == 30
    assert body["category"]["name"] == "Electronics"
    assert body["imageURL"].startswith("https://")


def test_get_missing_product(client):
    response = client.get("/products/missing")

    assert response.status_code == HTTPStatus.NOT_FOUND
    assert response.json() == {"error": "Product not found"}


def test_list_categories_sorted(client, products):
    names = [c["name"] for c in client.get("/categories").json()]

    assert names == sorted(names)
    assert "Electronics" in names


def test_unhandled_error_is_reported(app, monkeypatch):
    """Unexpected failures become a 500 with a JSON error body."""
    from app.services import catalog_service

    def boom(self):
        raise RuntimeError("database on fire")

    monkeypatch.setattr(catalog_service.CatalogService, "list_categories", boom)
    with TestClient(app, raise_server_exceptions=False) as test_client:
        response = test_client.get("/categories")

    assert response.status_code == HTTPStatus.INTERNAL_SERVER_ERROR
    assert response.json() == {"error": "database on fire"}
