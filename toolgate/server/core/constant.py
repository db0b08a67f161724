"""Server-wide constants."""

PROJECT_NAME = "Toolgate"
API_V1_STR = "/api/v1"
SCHEMA_VERSION = "v1"
