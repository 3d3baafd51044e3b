from food_ordering.core.config import Settings


def test_index(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json()["environment"] == "development"


def test_health_reports_components(client):
    body = client.get("/health").json()

    assert body["database"] == "healthy"
    assert body["payment_service"] == "healthy"
    # No Redis in the test environment
    assert body["status"] in ("operational", "degraded")


def test_sync_database_url_swaps_async_drivers():
    assert Settings(database_url="sqlite+aiosqlite:////tmp/orders.db").sync_database_url == "sqlite:////tmp/orders.db"
    assert (
        Settings(database_url="postgresql+asyncpg://u:p@db:5432/orders").sync_database_url
        == "postgresql+psycopg://u:p@db:5432/orders"
    )
    assert (
        Settings(database_url="postgresql+psycopg://u:p@db:5432/orders").sync_database_url
        == "postgresql+psycopg://u:p@db:5432/orders"
    )


def test_production_config_requires_stripe_keys():
    settings = Settings(env_mode="production", stripe_secret_key=None, stripe_webhook_secret=None)

    assert settings.validate_production_config() == ["STRIPE_SECRET_KEY", "STRIPE_WEBHOOK_SECRET"]
    assert Settings(env_mode="development").validate_production_config() == []


def test_runner_serves_configured_host_and_port(monkeypatch):
    import uvicorn

    from food_ordering import main

    calls = []
    monkeypatch.setattr(uvicorn, "run", lambda target, **kwargs: calls.append((target, kwargs)))

    main.run()

    target, kwargs = calls[0]
    assert target == "food_ordering.main:app"
    assert kwargs["host"] == main.settings.api_host
    assert kwargs["port"] == main.settings.api_port
    assert kwargs["reload"] is True
    assert kwargs["proxy_headers"] is False
