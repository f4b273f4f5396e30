import logging
import os
from typing import List

logger = logging.getLogger(__name__)

# --- Storage (Supabase PostgREST) ---
SUPABASE_URL = os.environ.get("SUPABASE_URL")
SUPABASE_SERVICE_ROLE_KEY = os.environ.get("SUPABASE_SERVICE_ROLE_KEY")
STORAGE_TIMEOUT_SECONDS = float(os.environ.get("STORAGE_TIMEOUT_SECONDS", "10"))

# --- Venue ---
VENUE_NAME = os.environ.get("VENUE_NAME", "Noir")
VENUE_TIMEZONE = os.environ.get("VENUE_TIMEZONE", "America/Chicago")

# Table numbers that exist on the floor plan but are never offered for reservations.
EXCLUDED_TABLE_NUMBERS: List[str] = [
    n.strip() for n in os.environ.get("EXCLUDED_TABLE_NUMBERS", "").split(",") if n.strip()
]

# --- Scheduling ---
SLOT_INCREMENT_MINUTES = int(os.environ.get("SLOT_INCREMENT_MINUTES", "15"))
SLOT_DURATION_MINUTES = int(os.environ.get("SLOT_DURATION_MINUTES", "90"))
# Parties larger than this get the longer sitting.
SMALL_PARTY_MAX_SIZE = int(os.environ.get("SMALL_PARTY_MAX_SIZE", "2"))
LARGE_PARTY_DURATION_MINUTES = int(os.environ.get("LARGE_PARTY_DURATION_MINUTES", "120"))
SEARCH_HORIZON_DAYS = int(os.environ.get("SEARCH_HORIZON_DAYS", "7"))
SEARCH_TIMEOUT_SECONDS = float(os.environ.get("SEARCH_TIMEOUT_SECONDS", "5"))

# --- OpenPhone (SMS) ---
OPENPHONE_API_URL = "https://api.openphone.com/v1/messages"
OPENPHONE_API_KEY = os.environ.get("OPENPHONE_API_KEY")
OPENPHONE_PHONE_NUMBER_ID = os.environ.get("OPENPHONE_PHONE_NUMBER_ID")
ADMIN_PHONE = os.environ.get("ADMIN_PHONE")
if not OPENPHONE_API_KEY or not OPENPHONE_PHONE_NUMBER_ID:
    logger.warning("OpenPhone configuration incomplete. Skipping SMS notifications.")
