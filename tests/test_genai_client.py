import httpx
import pytest

from errors import ConfigurationError, TransportError, UpstreamAPIError
from genai_client import GenerationClient
from prompt_builder import build_analysis_request


def make_client(fake_model, api_key="test-key", timeout=5.0):
    return GenerationClient(
        api_key=api_key,
        model="test-model",
        timeout=timeout,
        transport=httpx.MockTransport(fake_model.handler),
    )


@pytest.mark.asyncio
async def test_returns_candidate_text(fake_model):
    client = make_client(fake_model)
    result = await client.generate(build_analysis_request("text"))

    assert result.model == "test-model"
    assert result.candidates == (fake_model.content,)
    assert fake_model.calls == 1


@pytest.mark.asyncio
async def test_request_carries_schema_and_sampling(fake_model):
    client = make_client(fake_model)
    payload = build_analysis_request("flanked again", temperature=0.7, max_tokens=800)
    await client.generate(payload)

    body = fake_model.requests[0]
    assert body["model"] == "test-model"
    assert body["response_format"] == payload.response_format
    assert body["temperature"] == 0.7
    assert body["max_tokens"] == 800
    assert body["messages"][1]["content"] == payload.user_prompt


@pytest.mark.asyncio
async def test_missing_credential_fails_before_any_call(fake_model, tmp_path):
    client = GenerationClient(
        api_key=None,
        model="test-model",
        transport=httpx.MockTransport(fake_model.handler),
        audit_path=str(tmp_path / "audit.txt"),
    )
    with pytest.raises(ConfigurationError):
        await client.generate(build_analysis_request("text"))

    assert fake_model.calls == 0
    assert "GENAI_CONFIGURATION_ERROR" in (tmp_path / "audit.txt").read_text()


@pytest.mark.asyncio
async def test_http_error_is_upstream_error_with_status(fake_model):
    fake_model.status = 429
    client = make_client(fake_model)

    with pytest.raises(UpstreamAPIError) as exc:
        await client.generate(build_analysis_request("text"))

    assert exc.value.status == 429
    assert "status=429" in exc.value.details
    assert "quota exceeded" in exc.value.details
    # No retries
    assert fake_model.calls == 1


@pytest.mark.asyncio
async def test_server_error_is_not_retried(fake_model):
    fake_model.status = 503
    client = make_client(fake_model)

    with pytest.raises(UpstreamAPIError):
        await client.generate(build_analysis_request("text"))
    assert fake_model.calls == 1


@pytest.mark.asyncio
async def test_connection_failure_is_transport_error(fake_model):
    fake_model.fail_connect = True
    client = make_client(fake_model)

    with pytest.raises(TransportError):
        await client.generate(build_analysis_request("text"))
    assert fake_model.calls == 1


@pytest.mark.asyncio
async def test_timeout_is_transport_error_without_retry(fake_model):
    fake_model.fail_timeout = True
    client = make_client(fake_model, timeout=2.0)

    with pytest.raises(TransportError) as exc:
        await client.generate(build_analysis_request("text"))
    assert fake_model.calls == 1
    assert "timed out after 2s" in exc.value.details
