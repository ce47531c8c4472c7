import pytest
import respx
import httpx
import os
from datetime import datetime
from unittest.mock import patch

from media_pipeline.email_service import EmailService
from media_pipeline.schemas import BatchState, BatchStatus

URL = "http://notification-service/api/notification/send-email"

@pytest.fixture
def mock_env():
    """Mock das variáveis de ambiente necessárias"""
    with patch.dict(os.environ, {
        "NOTIFICATION_SERVICE_URL": "http://notification-service",
        "API_SECURITY_INTERNAL_TOKEN": "test-token-secret"
    }):
        yield

@pytest.fixture
def email_service(mock_env):
    return EmailService()

def completed_status(succeeded: int, failed: int) -> BatchStatus:
    return BatchStatus(
        batch_id="batch-123",
        total_files=succeeded + failed,
        processed=succeeded + failed,
        succeeded=succeeded,
        failed=failed,
        remaining=0,
        status=BatchState.COMPLETED,
        created_at=datetime(2024, 1, 1),
        completed_at=datetime(2024, 1, 1, 0, 5),
    )

# --- Testes ---

@pytest.mark.asyncio
@respx.mock
async def test_send_batch_completion_success(email_service):
    route = respx.post(URL).mock(return_value=httpx.Response(200))

    result = await email_service.send_batch_completion("user@test.com", completed_status(3, 0))

    assert result is True
    assert route.called
    request_data = route.calls.last.request.content.decode()
    assert "batch-123" in request_data
    assert "Lote Conclu" in request_data
    assert route.calls.last.request.headers["x-apigateway-token"] == "test-token-secret"

@pytest.mark.asyncio
@respx.mock
async def test_subject_mentions_failures(email_service):
    route = respx.post(URL).mock(return_value=httpx.Response(201))

    result = await email_service.send_batch_completion("user@test.com", completed_status(1, 2))

    assert result is True
    assert "2 de 3" in route.calls.last.request.content.decode()

@pytest.mark.asyncio
@respx.mock
async def test_notification_service_failure(email_service):
    respx.post(URL).mock(return_value=httpx.Response(500, text="Internal Server Error"))

    result = await email_service.send_batch_completion("u@t.com", completed_status(1, 0))

    assert result is False

@pytest.mark.asyncio
async def test_missing_config_abort():
    with patch.dict(os.environ, {"NOTIFICATION_SERVICE_URL": ""}, clear=True):
        svc = EmailService()
        result = await svc.send_batch_completion("u@t.com", completed_status(1, 0))
        assert result is False

@pytest.mark.asyncio
@respx.mock
async def test_connection_timeout(email_service):
    respx.post(URL).side_effect = httpx.ConnectTimeout

    result = await email_service.send_batch_completion("u@t.com", completed_status(1, 0))

    assert result is False
