"""Application-level constants for chatrelay."""

# ============================================================================
# Application identity
# ============================================================================

APP_NAME = "chatrelay"

# ============================================================================
# Default directories and paths
# ============================================================================

USER_DATA_DIR = f"~/.{APP_NAME}"
DEFAULT_CONFIG_PATH = f"{USER_DATA_DIR}/models.json"
DEFAULT_SECRETS_PATH = f"{USER_DATA_DIR}/secrets.json"

CONFIG_PATH_ENV_VAR = "CHATRELAY_CONFIG"

LOG_FILE_EXTENSION = ".log"
DATETIME_FORMAT_FILENAME = "%Y-%m-%d_%H-%M-%S"

# ============================================================================
# Providers
# ============================================================================

# Environment variables consulted before the secrets file.
PROVIDER_KEY_ENV_VARS = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "google": "GOOGLE_API_KEY",
}

GOOGLE_API_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

# Used when neither the caller nor the model config sets an output cap.
DEFAULT_MAX_OUTPUT_TOKENS = 4096

# Synthesized exchange that carries system instructions for Google models.
GOOGLE_INSTRUCTION_PREAMBLE = "Please respond to the following conversation:"
GOOGLE_INSTRUCTION_ACK = "I understand. I'll follow those instructions."
