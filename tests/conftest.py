"""
Main conftest file that imports and re-exports all fixtures from modular files.
Required settings are placed in the environment before any app module is
imported.
"""
import os

from dotenv import load_dotenv

dotenv_path = os.path.join(os.path.dirname(__file__), "..", ".env.test")
if os.path.exists(dotenv_path):
    load_dotenv(dotenv_path=dotenv_path, override=True)

os.environ.setdefault("REZTEK_ENVIRONMENT", "testing")
os.environ.setdefault("REZTEK_SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("REZTEK_SUPABASE_ANON_KEY", "test-anon-key")
os.environ.setdefault("REZTEK_SUPABASE_SERVICE_ROLE_KEY", "test-service-role-key")
os.environ.setdefault("REZTEK_SESSION_SECRET_KEY", "test-session-secret-key-with-enough-length")
os.environ.setdefault("REZTEK_AUTHORIZED_ADMIN_EMAILS", "obsadmin@mydomainliving.co.za")

# The imports below register the fixtures with pytest
from tests.fixtures.auth import clock, fake_auth  # noqa: E402,F401
from tests.fixtures.client import client, negotiator  # noqa: E402,F401
from tests.fixtures.store import fake_store  # noqa: E402,F401
