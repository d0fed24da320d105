"""
Unit tests for event logger utility.
"""
import logging

import pytest
from unittest.mock import Mock

from user_platform.user_platform.user_service.utils.event_logger import client_ip, log_user_event


@pytest.fixture
def mock_request():
    """Create a mock FastAPI Request object."""
    request = Mock()
    request.client = Mock()
    request.client.host = "192.168.1.1"
    request.headers = {"user-agent": "Mozilla/5.0 Test Browser"}
    return request


def test_log_user_event_writes_log_line(mock_request, caplog):
    """Test that log_user_event emits one INFO line with the event details."""
    with caplog.at_level(logging.INFO):
        log_user_event("login_success", mock_request, user_id=7)

    records = [r for r in caplog.records if r.getMessage().startswith("USER ")]
    assert len(records) == 1
    message = records[0].getMessage()
    assert "USER login_success" in message
    assert "user_id=7" in message
    assert "ip=192.168.1.1" in message
    assert "user_agent=Mozilla/5.0 Test Browser" in message


def test_log_user_event_appends_extra_fields(mock_request, caplog):
    with caplog.at_level(logging.INFO):
        log_user_event("profile_update", mock_request, user_id=3, fields="full_name")

    assert any("fields=full_name" in r.getMessage() for r in caplog.records)


def test_log_user_event_rejects_unknown_type(mock_request):
    """Test that invalid event types raise ValueError."""
    with pytest.raises(ValueError, match="Invalid event_type"):
        log_user_event("password_reset", mock_request)


def test_client_ip_falls_back_to_forwarded_for():
    """Test X-Forwarded-For is used when the client address is unknown."""
    request = Mock()
    request.client = None
    request.headers = {"x-forwarded-for": "10.0.0.1, 10.0.0.2"}
    assert client_ip(request) == "10.0.0.1"


def test_client_ip_unknown():
    request = Mock()
    request.client = None
    request.headers = {}
    assert client_ip(request) is None
