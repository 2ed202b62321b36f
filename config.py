"""
Configuration module for Bedrock Pilot.
Handles environment variables, model settings, and the project-local state layout.
"""

import os
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv, set_key

# Load environment variables from .env file
load_dotenv()

env_path = ".env"


@dataclass
class AWSConfig:
    """AWS-specific configuration"""
    region: str = os.getenv("AWS_REGION", "us-east-1")
    access_key_id: str = os.getenv("AWS_ACCESS_KEY_ID", "")
    secret_access_key: str = os.getenv("AWS_SECRET_ACCESS_KEY", "")
    session_token: str = os.getenv("AWS_SESSION_TOKEN", "")
    profile_name: str = os.getenv("AWS_PROFILE", "")

    def has_explicit_credentials(self) -> bool:
        return bool(self.access_key_id and self.secret_access_key)

    def has_session_token(self) -> bool:
        return bool(self.session_token)

    def has_profile(self) -> bool:
        return bool(self.profile_name)


@dataclass
class ModelConfig:
    """Model-specific configuration"""
    model_id: str = os.getenv("BEDROCK_MODEL_ID", "us.anthropic.claude-sonnet-4-5-20250929-v1:0")
    max_tokens: int = int(os.getenv("MAX_TOKENS", "16000"))
    temperature: Optional[float] = float(os.getenv("TEMPERATURE", "1")) if os.getenv("TEMPERATURE") else None


@dataclass
class AppConfig:
    """Application-specific configuration"""
    title: str = "Bedrock Pilot"
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_file: str = os.getenv("LOG_FILE", "bedrock_pilot.log")
    working_directory: str = os.getenv("WORKING_DIRECTORY", ".")
    # Validation: a single shell command run after a diff is applied and at startup
    # when a self-update is awaiting confirmation. Blank disables both.
    validation_command: str = os.getenv("VALIDATION_COMMAND", "")
    validation_timeout: int = int(os.getenv("VALIDATION_TIMEOUT", "300"))
    # Build steps used by the self-update path
    compile_command: str = os.getenv("COMPILE_COMMAND", "python -m compileall -q .")
    package_command: str = os.getenv("PACKAGE_COMMAND", "python -m pip wheel --no-deps -q -w dist .")
    build_timeout: int = int(os.getenv("BUILD_TIMEOUT", "120"))
    max_rollback_attempts: int = int(os.getenv("MAX_ROLLBACK_ATTEMPTS", "2"))
    history_limit: int = int(os.getenv("HISTORY_LIMIT", "200"))
    state_dir: str = os.getenv("STATE_DIR", ".bedrock-pilot")
    session_restore_prompt: bool = os.getenv("SESSION_RESTORE_PROMPT", "true").lower() == "true"

    def state_path(self, project_dir: str, *parts: str) -> str:
        """Path inside the project-local state directory."""
        return os.path.join(os.path.abspath(project_dir), self.state_dir, *parts)

    def has_validation_command(self) -> bool:
        return bool((self.validation_command or "").strip())


SENTINEL_FILENAME = "self_update_pending_validation.json"
SESSION_FILENAME = "session.json"


# Create global config instances
aws_config = AWSConfig()
model_config = ModelConfig()
app_config = AppConfig()


def set_validation_command(command: str, persist: bool = True) -> None:
    """Update the validation command for this process and optionally persist it to .env"""
    app_config.validation_command = command.strip()
    os.environ["VALIDATION_COMMAND"] = app_config.validation_command
    if persist:
        if not os.path.exists(env_path):
            open(env_path, "a").close()
        set_key(env_path, "VALIDATION_COMMAND", app_config.validation_command)


def get_credentials_info() -> str:
    if aws_config.has_profile():
        return f"Using AWS profile: {aws_config.profile_name}"
    elif aws_config.has_explicit_credentials():
        if aws_config.has_session_token():
            return "Using temporary credentials (with session token)"
        return "Using explicit credentials"
    return "Using default credential chain"
