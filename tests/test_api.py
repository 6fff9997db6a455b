"""
Tests for the HTTP API and the command-line ingest entry point.
"""

from __future__ import annotations

import json

WHALE_DELEGATE = {
    "txId": "api-whale",
    "blockNumber": 100,
    "timestamp": 1_700_000_000_000,
    "type": "DelegateResourceContract",
    "from": {"address": "TFromWhale"},
    "to": {"address": "TToWhale"},
    "amount": 2_000_000_000_000,
    "contract": {"parameters": {"resource": "ENERGY"}},
}


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_summations_defaults(client):
    """Default query returns 288 points over 7 days even with no data."""
    resp = client.get("/summations")
    assert resp.status_code == 200
    body = resp.json()
    assert len(body["data"]) == 288
    assert all(p is None for p in body["data"])
    assert body["metadata"]["period"] == "7d"
    assert body["metadata"]["actualPoints"] == 0


def test_summations_invalid_query(client):
    """Unknown period or out-of-range points is a 400."""
    assert client.get("/summations", params={"period": "2w"}).status_code == 400
    assert client.get("/summations", params={"points": 0}).status_code == 400
    assert client.get("/summations", params={"points": 5000}).status_code == 400


def test_settings_read_and_patch(client, container):
    """PATCH merges with clamping and takes effect without restart."""
    resp = client.get("/settings")
    assert resp.status_code == 200
    assert resp.json()["whaleThresholdTrx"] == 2_000_000

    resp = client.patch("/settings", json={"whaleThresholdTrx": 10, "purgeFrequencyHours": 0})
    assert resp.status_code == 200
    body = resp.json()
    assert body["whaleThresholdTrx"] == 10
    assert body["purgeFrequencyHours"] == 1
    assert body["detailsRetentionDays"] == 2
    container.registry.dispatch(dict(WHALE_DELEGATE, txId="small-whale", amount=10_000_000))
    assert [w["txId"] for w in client.get("/whales/recent").json()["whales"]] == ["small-whale"]


def test_whales_recent_after_ingest(client, container):
    """A dispatched whale delegation shows up in /whales/recent."""
    assert container.registry.dispatch(WHALE_DELEGATE) == 1
    resp = client.get("/whales/recent", params={"limit": 5})
    assert resp.status_code == 200
    whales = resp.json()["whales"]
    assert [w["txId"] for w in whales] == ["api-whale"]
    assert whales[0]["amountTrx"] == 2_000_000.0
    assert client.get("/whales/recent", params={"resourceType": 0}).json()["whales"] == []


def test_whale_timeseries_clamps_days(client):
    resp = client.get("/whales/timeseries", params={"days": 365})
    assert resp.status_code == 200
    assert resp.json()["days"] == 90


def test_pools_empty_and_unknown(client):
    resp = client.get("/pools")
    assert resp.status_code == 200
    body = resp.json()
    assert body["pools"] == []
    assert body["hours"] == 24
    assert client.get("/pools", params={"hours": 1000}).json()["hours"] == 168
    assert client.get("/pools/TNobody").status_code == 404
    assert client.get("/pools/TNobody/members").json()["members"] == []


def test_pool_endpoints_after_pool_delegation(client, container, make_tx):
    """Permission-3 delegations appear under their sender until discovery attributes them."""
    container.observer.process(make_tx("pool-1", permission_id=3, amount=5_000_000))
    sender = "TPoolMemberAccount1111111111111111"
    pools = client.get("/pools").json()["pools"]
    assert pools[0]["address"] == sender
    assert pools[0]["totalAmountTrx"] == 5.0
    assert client.get(f"/pools/{sender}").status_code == 200
    delegations = client.get(f"/pools/{sender}/delegations").json()["delegations"]
    assert delegations[0]["txId"] == "pool-1"


def test_cache_clear(client, container):
    """Clearing drops cached summation responses and resolver answers."""
    client.get("/summations", params={"period": "1d", "points": 10})
    container.resolver.get_pool_for_account("TSomeone", 3)
    resp = client.post("/admin/cache/clear")
    assert resp.status_code == 200
    assert resp.json()["cleared"] == 1
    assert container.resolver.cache_size == 0


def test_stats(client, container):
    container.registry.dispatch(WHALE_DELEGATE)
    body = client.get("/stats").json()
    assert body["counts"]["delegations"] == 1
    assert body["counts"]["whales"] == 1
    assert body["broadcastBacklog"] == 0


def test_ingest_command(tmp_path, monkeypatch, container):
    """main ingest replays a JSON-lines file through the registry."""
    import main
    from backend_tronwatch import runtime

    monkeypatch.setattr(runtime, "build_container", lambda: container)
    path = tmp_path / "txs.jsonl"
    second = dict(WHALE_DELEGATE, txId="api-2", amount=1_000_000)
    path.write_text(json.dumps(WHALE_DELEGATE) + "\n\nnot json\n" + json.dumps(second) + "\n", encoding="utf-8")
    assert main.main(["ingest", str(path)]) == 0
    assert container.db.table_counts()["delegations"] == 2
