import json

import pytest
import requests
import responses

from mediasync.client.client import AnilistClient
from mediasync.config.anilist_settings import AnilistHttpSettings
from mediasync.errors import ProtocolError, QueryError, TransportError, UpstreamError

URL = "https://graphql.test/api"


# --- 1. POSITIVE TESTING (The Contract) ---
@responses.activate
def test_execute_success_returns_data(client):
    # Logic: Prove the client unwraps `data` from a standard GraphQL response.
    responses.add(responses.POST, URL, json={"data": {"Media": {"id": 21}}}, status=200)

    result = client.execute("query { Media { id } }", {"id": 21}, label="AnimeInfo")

    assert result == {"Media": {"id": 21}}


@responses.activate
def test_execute_posts_query_and_variables(client):
    # Logic: Prove the wire body is exactly {query, variables} as JSON.
    responses.add(responses.POST, URL, json={"data": {}}, status=200)

    client.execute("query ($id: Int) { Media(id: $id) { id } }", {"id": 5, "type": "ANIME"})

    request = responses.calls[0].request
    assert json.loads(request.body) == {
        "query": "query ($id: Int) { Media(id: $id) { id } }",
        "variables": {"id": 5, "type": "ANIME"},
    }
    assert request.headers["Content-Type"] == "application/json"


def test_from_settings_uses_configured_endpoint(monkeypatch):
    # Logic: Env-driven settings flow into the client unchanged.
    monkeypatch.setenv("ANILIST_API_URL", "https://graphql.example/")
    monkeypatch.setenv("ANILIST_TIMEOUT_SECONDS", "3.5")

    client = AnilistClient.from_settings(AnilistHttpSettings())

    assert client.base_url == "https://graphql.example"
    assert client.timeout_s == 3.5


# --- 2. NEGATIVE TESTING (The Fragility) ---
@responses.activate
def test_execute_server_error_raises_protocol_error(client):
    # Logic: Prove non-2xx responses fail immediately with the status attached.
    responses.add(responses.POST, URL, json={"errors": [{"message": "boom"}]}, status=500)

    with pytest.raises(ProtocolError) as exc:
        client.execute("query { x }")

    assert exc.value.status == 500
    assert exc.value.detail == [{"message": "boom"}]
    assert not exc.value.is_not_found
    # No retry logic at this layer.
    assert len(responses.calls) == 1


@responses.activate
def test_execute_not_found_is_flagged(client):
    responses.add(
        responses.POST,
        URL,
        json={"errors": [{"message": "Not Found.", "status": 404}], "data": {"Media": None}},
        status=404,
    )

    with pytest.raises(UpstreamError) as exc:
        client.execute("query { x }")

    assert exc.value.is_not_found


@responses.activate
def test_execute_graphql_errors_on_200_raise_query_error(client):
    # Logic: A 200 carrying a non-empty `errors` list is still a failure.
    errors = [{"message": "Variable $type got invalid value", "status": 400}]
    responses.add(responses.POST, URL, json={"errors": errors, "data": None}, status=200)

    with pytest.raises(QueryError) as exc:
        client.execute("query { x }")

    assert exc.value.status == 400
    assert exc.value.detail == errors


@responses.activate
def test_execute_connection_error_raises_transport_error(client):
    # Logic: No response at all maps to the transport sentinel status None.
    responses.add(responses.POST, URL, body=requests.exceptions.ConnectionError("refused"))

    with pytest.raises(TransportError) as exc:
        client.execute("query { x }")

    assert exc.value.status is None


# --- 3. CONSTRAINTS (The Limits) ---
@responses.activate
def test_execute_non_json_body_raises_protocol_error(client):
    responses.add(responses.POST, URL, body="<html>gateway</html>", status=200, content_type="text/html")

    with pytest.raises(ProtocolError) as exc:
        client.execute("query { x }")

    assert exc.value.status == 200
    assert "gateway" in exc.value.detail


@responses.activate
def test_execute_missing_data_returns_empty_dict(client):
    # Logic: Prove valid but empty payloads do not crash.
    responses.add(responses.POST, URL, json={"data": None}, status=200)

    assert client.execute("query { x }") == {}
