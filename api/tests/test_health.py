async def test_health_ok(client, relay):
    await relay.registry.add_topic("London")
    relay.broker.connect()

    response = await client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["topics"] == 1
    assert data["connections"] == 1
