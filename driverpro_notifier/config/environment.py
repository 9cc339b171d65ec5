"""Environment variable loading and validation."""

import os
from typing import Optional

from email_validator import EmailNotValidError, validate_email

from .exceptions import ConfigurationError

REQUIRED_VARIABLES = (
    "FIREBASE_PROJECT_ID",
    "FIREBASE_CLIENT_EMAIL",
    "FIREBASE_PRIVATE_KEY",
    "FIREBASE_DATABASE_URL",
    "SENDGRID_API_KEY",
    "SENDGRID_FROM_EMAIL",
)

DEFAULT_PORT = 8080
DEFAULT_TEST_EMAIL = "test@example.com"
DEFAULT_ENVIRONMENT = "development"


class EnvironmentConfig:
    """Secrets and deployment settings read from the process environment."""

    def __init__(
        self,
        firebase_project_id: str,
        firebase_client_email: str,
        firebase_private_key: str,
        firebase_database_url: str,
        sendgrid_api_key: str,
        sendgrid_from_email: str,
        port: int = DEFAULT_PORT,
        test_email: Optional[str] = None,
        environment: Optional[str] = None,
        log_level: Optional[str] = None,
    ):
        self.firebase_project_id = firebase_project_id
        self.firebase_client_email = firebase_client_email
        # Private keys pasted into .env files carry literal "\n" sequences.
        self.firebase_private_key = firebase_private_key.replace("\\n", "\n")
        self.firebase_database_url = firebase_database_url
        self.sendgrid_api_key = sendgrid_api_key
        self.sendgrid_from_email = sendgrid_from_email
        self.port = port
        self.test_email = test_email or DEFAULT_TEST_EMAIL
        self.environment = environment or DEFAULT_ENVIRONMENT
        self.log_level = log_level

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


def load_environment_config() -> EnvironmentConfig:
    """
    Load and validate environment variables.

    Required environment variables:
    - FIREBASE_PROJECT_ID, FIREBASE_CLIENT_EMAIL, FIREBASE_PRIVATE_KEY:
      service-account credential fields
    - FIREBASE_DATABASE_URL: store endpoint URL
    - SENDGRID_API_KEY: email provider API key
    - SENDGRID_FROM_EMAIL: sender address for every outgoing email

    Optional environment variables:
    - PORT: HTTP listen port (default 8080)
    - TEST_EMAIL: recipient of the diagnostic email (default test@example.com)
    - ENVIRONMENT: environment name (default development)
    - LOG_LEVEL: override log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        EnvironmentConfig with validated values

    Raises:
        ConfigurationError: If required variables are missing or invalid
    """
    errors = []

    values = {name: os.getenv(name, "").strip() for name in REQUIRED_VARIABLES}
    missing = [name for name, value in values.items() if not value]
    for name in missing:
        errors.append(f"Missing required environment variable: {name}")

    port_str = os.getenv("PORT")
    test_email = os.getenv("TEST_EMAIL")
    environment = os.getenv("ENVIRONMENT")
    log_level = os.getenv("LOG_LEVEL")

    port = DEFAULT_PORT
    if port_str:
        try:
            port = int(port_str)
            if not 1 <= port <= 65535:
                errors.append(f"Invalid PORT: {port}. Must be between 1 and 65535.")
        except ValueError:
            errors.append(f"Invalid PORT: '{port_str}'. Must be a valid integer.")

    if values["SENDGRID_FROM_EMAIL"]:
        error = _email_error(values["SENDGRID_FROM_EMAIL"])
        if error:
            errors.append(f"Invalid SENDGRID_FROM_EMAIL: {error}")

    if test_email:
        error = _email_error(test_email)
        if error:
            errors.append(f"Invalid TEST_EMAIL: {error}")

    if log_level:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if log_level.upper() not in valid_levels:
            errors.append(
                f"Invalid LOG_LEVEL: '{log_level}'. Must be one of: {', '.join(valid_levels)}"
            )
        log_level = log_level.upper()

    if errors:
        raise ConfigurationError(
            "Environment variable validation failed",
            errors=errors,
            suggestions=[
                "Copy .env.example to .env and fill in your credentials",
                "Use .env.prod when ENVIRONMENT=production",
                "Keep FIREBASE_PRIVATE_KEY on one line with \\n escapes",
            ],
        )

    return EnvironmentConfig(
        firebase_project_id=values["FIREBASE_PROJECT_ID"],
        firebase_client_email=values["FIREBASE_CLIENT_EMAIL"],
        firebase_private_key=values["FIREBASE_PRIVATE_KEY"],
        firebase_database_url=values["FIREBASE_DATABASE_URL"],
        sendgrid_api_key=values["SENDGRID_API_KEY"],
        sendgrid_from_email=values["SENDGRID_FROM_EMAIL"],
        port=port,
        test_email=test_email,
        environment=environment,
        log_level=log_level,
    )


def _email_error(address: str) -> Optional[str]:
    """Return a description of what is wrong with an address, or None if it is valid."""
    try:
        validate_email(address, check_deliverability=False)
    except EmailNotValidError as e:
        return f"'{address}' - {e}"
    return None
