from unittest.mock import MagicMock, patch

import requests

from noir_scheduler import notifier


@patch('noir_scheduler.notifier.requests.post')
@patch('noir_scheduler.notifier.config')
def test_send_sms_success(mock_config, mock_post):
    mock_config.OPENPHONE_API_KEY = "fake_key"
    mock_config.OPENPHONE_PHONE_NUMBER_ID = "PN123"
    mock_config.OPENPHONE_API_URL = "https://api.openphone.com/v1/messages"

    mock_response = MagicMock()
    mock_response.raise_for_status.return_value = None
    mock_post.return_value = mock_response

    assert notifier.send_sms("+15555550100", "Test message") is True

    mock_post.assert_called_once()
    args, kwargs = mock_post.call_args
    assert args[0] == "https://api.openphone.com/v1/messages"
    assert kwargs['json'] == {"to": ["+15555550100"], "from": "PN123", "content": "Test message"}
    assert kwargs['headers']['Authorization'] == "fake_key"


@patch('noir_scheduler.notifier.requests.post')
@patch('noir_scheduler.notifier.config')
def test_send_sms_missing_config(mock_config, mock_post):
    mock_config.OPENPHONE_API_KEY = None
    mock_config.OPENPHONE_PHONE_NUMBER_ID = None

    assert notifier.send_sms("+15555550100", "Test message") is False

    mock_post.assert_not_called()


@patch('noir_scheduler.notifier.requests.post')
@patch('noir_scheduler.notifier.config')
def test_send_sms_failure(mock_config, mock_post):
    mock_config.OPENPHONE_API_KEY = "fake_key"
    mock_config.OPENPHONE_PHONE_NUMBER_ID = "PN123"

    mock_post.side_effect = requests.exceptions.RequestException("Network error")

    # Should not raise exception, just log error
    assert notifier.send_sms("+15555550100", "Test message") is False

    mock_post.assert_called_once()


@patch('noir_scheduler.notifier.requests.post')
@patch('noir_scheduler.notifier.config')
def test_send_sms_without_recipient(mock_config, mock_post):
    mock_config.OPENPHONE_API_KEY = "fake_key"
    mock_config.OPENPHONE_PHONE_NUMBER_ID = "PN123"

    assert notifier.send_sms("", "Test message") is False
    mock_post.assert_not_called()


def test_reservation_message_local_time():
    message = notifier.reservation_message(
        {
            "first_name": "Ada",
            "last_name": "Lovelace",
            "start_time": "2025-07-11T00:00:00+00:00",
            "party_size": 2,
            "notes": "  Birthday  ",
        },
        table_number="3",
    )
    assert "Ada Lovelace" in message
    assert "Thu Jul 10 at 07:00 PM" in message
    assert "2 guests, Table 3" in message
    assert message.endswith("Special Requests: Birthday")


def test_reservation_message_defaults():
    message = notifier.reservation_message({"party_size": 4})
    assert "Guest" in message
    assert "Table TBD" in message
    assert "Special Requests" not in message
