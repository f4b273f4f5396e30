import logging
from datetime import datetime
from typing import Dict

import requests

from noir_scheduler import config
from noir_scheduler.intervals import venue_zone

logger = logging.getLogger(__name__)


def send_sms(recipient: str, content: str) -> bool:
    """Sends a text message through OpenPhone. Returns False instead of raising on failure."""
    api_key = config.OPENPHONE_API_KEY
    from_number = config.OPENPHONE_PHONE_NUMBER_ID

    if not api_key or not from_number:
        logger.warning("OpenPhone configuration missing. Skipping SMS.")
        return False
    if not recipient:
        logger.warning("No recipient phone number. Skipping SMS.")
        return False

    headers = {
        "Authorization": api_key,
        "Content-Type": "application/json",
        "Accept": "application/json",
    }
    payload = {"to": [recipient], "from": from_number, "content": content}

    try:
        response = requests.post(config.OPENPHONE_API_URL, json=payload, headers=headers, timeout=10)
        response.raise_for_status()
        logger.info(f"SMS sent to {recipient}.")
        return True
    except requests.exceptions.RequestException as e:
        logger.error(f"Failed to send SMS to {recipient}: {e}")
        return False


def reservation_message(reservation: Dict, table_number: str | None = None) -> str:
    """Confirmation text for a newly booked reservation."""
    name = f"{reservation.get('first_name') or 'Guest'} {reservation.get('last_name') or ''}".strip()
    start = _local_time(reservation.get("start_time"))
    message = (
        f"{config.VENUE_NAME} Reservation confirmed: {name}, {start}, "
        f"{reservation.get('party_size')} guests, Table {table_number or 'TBD'}"
    )
    notes = (reservation.get("notes") or "").strip()
    if notes:
        message += f"\nSpecial Requests: {notes}"
    return message


def _local_time(value) -> str:
    if not value:
        return "TBD"
    try:
        instant = value if isinstance(value, datetime) else datetime.fromisoformat(str(value))
    except ValueError:
        return str(value)
    if instant.tzinfo is not None:
        instant = instant.astimezone(venue_zone())
    return instant.strftime("%a %b %d at %I:%M %p")
