"""Shared constants used across the console."""
from __future__ import annotations

# Application version
VERSION: str = "1.0.0"
APP_NAME: str = "punchout-console"

# Default endpoints
DEFAULT_API_BASE_URL: str = "http://localhost:8080/api"
DEFAULT_GATEWAY_BASE_URL: str = "http://localhost:9090"
DEFAULT_SETUP_PATH: str = "/punchout/setup"

# Environments offered to the operator
ENVIRONMENTS: list[str] = ["dev", "stage", "prod", "s4-dev"]

# Audit-log destination names
AUTH_SERVICE: str = "Auth Service"
MULE_SERVICE: str = "Mule Service"
CATALOG_SERVICE: str = "Catalog Service"
CATALOG_DESTINATIONS: frozenset[str] = frozenset({MULE_SERVICE, CATALOG_SERVICE})

# Prefix the backend writes into catalog fields when the lookup failed
FAILED_MARKER_PREFIX: str = "FAILED"

# Test record statuses
STATUS_SUCCESS: str = "SUCCESS"
STATUS_FAILED: str = "FAILED"
