"""Canonical structured logging field names."""

TIMESTAMP = "timestamp"
LEVEL = "level"
LOGGER = "logger"
MESSAGE = "message"
EXCEPTION = "exception"

# Invocation correlation fields.
INVOCATION_ID = "invocation_id"
STAGE = "stage"

# Common service-level fields.
SERVICE = "service"
ENVIRONMENT = "environment"
