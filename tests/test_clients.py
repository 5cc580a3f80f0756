import json

import httpx
import pytest

from infra.clients import (
    AuthServiceError,
    CodeChefClient,
    GfgClient,
    IntegrationError,
    LeetCodeClient,
    SupabaseAuthClient,
    TavusClient,
)
from infra.clients.leetcode import format_leetcode_timestamp, get_language_color, get_leetcode_status_color


def transport(handler):
    return httpx.MockTransport(handler)


def test_leetcode_profile_and_submissions():
    seen = []

    def handler(request):
        seen.append(request.url.path)
        if request.url.path == "/alice":
            return httpx.Response(200, json={"username": "alice", "ranking": 1234})
        if request.url.path == "/alice/submission":
            return httpx.Response(200, json={"count": 3, "submission": [{"title": "A"}, {"title": "B"}, {"title": "C"}]})
        return httpx.Response(200, json={"solvedProblem": 42})

    client = LeetCodeClient(base_url="https://lc.test", transport=transport(handler))
    assert client.profile("alice")["ranking"] == 1234
    assert [s["title"] for s in client.submissions("alice", limit=2)] == ["A", "B"]
    assert client.solved("alice") == {"solvedProblem": 42}
    assert seen == ["/alice", "/alice/submission", "/alice/solved"]


def test_leetcode_http_error_message():
    client = LeetCodeClient(base_url="https://lc.test", transport=transport(lambda r: httpx.Response(404)))
    with pytest.raises(IntegrationError) as exc:
        client.profile("ghost")
    assert exc.value.status_code == 404
    assert exc.value.message == (
        'Failed to fetch LeetCode profile: HTTP 404 Not Found. Please verify the username "ghost" exists on LeetCode.'
    )


def test_leetcode_network_error_message():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = LeetCodeClient(base_url="https://lc.test", transport=transport(handler))
    with pytest.raises(IntegrationError) as exc:
        client.profile("alice")
    assert exc.value.message.startswith("Network error: Unable to connect to LeetCode API.")


def test_leetcode_invalid_json_message():
    client = LeetCodeClient(base_url="https://lc.test", transport=transport(lambda r: httpx.Response(200, text="<html>")))
    with pytest.raises(IntegrationError) as exc:
        client.solved("alice")
    assert "Invalid response from LeetCode API" in exc.value.message


def test_leetcode_display_helpers():
    assert format_leetcode_timestamp("1704412800") == "Jan 5, 2024"
    assert get_leetcode_status_color("Accepted") == "text-green-500"
    assert get_leetcode_status_color("Output Limit Exceeded") == "text-gray-500"
    assert get_language_color("Python") == "text-blue-400"
    assert get_language_color("c++") == get_language_color("cpp")
    assert get_language_color("cobol") == "text-gray-400"


def test_gfg_and_codechef():
    def handler(request):
        if request.url.path.endswith("/potd"):
            return httpx.Response(200, json={"problem_name": "Two Sum", "difficulty": "Easy"})
        return httpx.Response(200, json={"future_contests": [{"contest_code": "START1"}], "extra": 1})

    gfg = GfgClient(base_url="https://fn.test/potd", transport=transport(handler))
    assert gfg.problem_of_the_day()["problem_name"] == "Two Sum"

    codechef = CodeChefClient(base_url="https://fn.test/contests", transport=transport(handler))
    assert codechef.contests() == {"future_contests": [{"contest_code": "START1"}], "past_contests": []}


def test_proxy_failures_raise_integration_error():
    failing = GfgClient(base_url="https://fn.test/potd", transport=transport(lambda r: httpx.Response(500)))
    with pytest.raises(IntegrationError):
        failing.problem_of_the_day()

    with pytest.raises(IntegrationError):
        CodeChefClient(base_url="").contests()


def test_tavus_create_conversation_payload():
    captured = {}

    def handler(request):
        captured["path"] = request.url.path
        captured["api_key"] = request.headers.get("x-api-key")
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"conversation_id": "c1", "conversation_url": "https://tavus.daily.co/c1"})

    client = TavusClient(base_url="https://tavus.test/v2", api_key="secret", transport=transport(handler))
    data = client.create_conversation()

    assert data["conversation_id"] == "c1"
    assert captured["path"] == "/v2/conversations"
    assert captured["api_key"] == "secret"
    props = captured["body"]["properties"]
    assert props["max_call_duration"] == 120
    assert props["enable_recording"] is False
    assert props["enable_closed_captions"] is True
    assert props["participant_left_timeout"] == 30
    assert captured["body"]["conversation_name"].startswith("Taurus AI Chat - ")


def test_tavus_errors():
    with pytest.raises(IntegrationError):
        TavusClient(api_key="").create_conversation()

    client = TavusClient(
        base_url="https://tavus.test/v2",
        api_key="secret",
        transport=transport(lambda r: httpx.Response(400, json={"message": "replica not found"})),
    )
    with pytest.raises(IntegrationError) as exc:
        client.create_conversation()
    assert exc.value.message == "Failed to create conversation: replica not found"

    with pytest.raises(IntegrationError) as exc:
        client.end_conversation("c1")
    assert exc.value.status_code == 400


def test_supabase_sign_in():
    captured = {}

    def handler(request):
        captured["url"] = str(request.url)
        captured["apikey"] = request.headers.get("apikey")
        return httpx.Response(200, json={"access_token": "tok", "user": {"id": "u1"}})

    client = SupabaseAuthClient(base_url="https://sb.test", anon_key="anon", transport=transport(handler))
    session = client.sign_in("a@example.com", "pw")

    assert session["access_token"] == "tok"
    assert captured["url"] == "https://sb.test/auth/v1/token?grant_type=password"
    assert captured["apikey"] == "anon"


def test_supabase_error_message_is_kept_raw():
    def handler(request):
        return httpx.Response(400, json={"error": "invalid_grant", "error_description": "Invalid login credentials"})

    client = SupabaseAuthClient(base_url="https://sb.test", anon_key="anon", transport=transport(handler))
    with pytest.raises(AuthServiceError) as exc:
        client.sign_in("a@example.com", "wrong")
    assert exc.value.message == "Invalid login credentials"
    assert exc.value.status_code == 400


def test_supabase_not_configured():
    with pytest.raises(AuthServiceError):
        SupabaseAuthClient(base_url="").sign_up("a@example.com", "pw")
