"""
Configuration for the FishingHit application.

Values come from environment variables with sensible defaults. The Streamlit
entry point may overlay values from `st.secrets` before handing the dictionary
to the services.
"""
# fishinghit/config.py

import os

DEFAULT_AUTH_ENDPOINT = "https://fishinghit.app/api/auth"
DEFAULT_SUPPORT_EMAIL = "support@fishinghit.com"
DEFAULT_POLICY_URL = "https://docs.google.com/document/d/1dD2YDtgmaGrSuJfCxL4KDO0Xtz9uKa-VHn7puQCP7Ro/edit?usp=sharing"


def _env_flag(name: str, default: str = "False") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


def load_config(overrides=None) -> dict:
    """Loads configuration from environment variables and returns a dictionary.

    Args:
        overrides (dict, optional): Values that take precedence over the environment,
            e.g. keys read from Streamlit secrets.

    Returns:
        dict: The resolved configuration.
    """
    data_dir = os.getenv("FISHINGHIT_DATA_DIR", "data")
    try:
        request_timeout = float(os.getenv("FISHINGHIT_REQUEST_TIMEOUT", 15))
    except ValueError:
        request_timeout = 15.0
    try:
        launch_timeout = float(os.getenv("FISHINGHIT_LAUNCH_TIMEOUT", 5.5))
    except ValueError:
        launch_timeout = 5.5

    config = {
        "DEBUG_MODE": _env_flag("FISHINGHIT_DEBUG"),

        # Remote endpoints
        "AUTH_ENDPOINT": os.getenv("FISHINGHIT_AUTH_ENDPOINT", DEFAULT_AUTH_ENDPOINT),
        "REQUEST_TIMEOUT": request_timeout,
        "LAUNCH_TIMEOUT": launch_timeout,

        # Local storage
        "DATA_DIR": data_dir,
        "KEY_FILE": os.getenv("FISHINGHIT_KEY_FILE", os.path.join(data_dir, "secret.key")),
        "RECORDS_FILE": os.path.join(data_dir, "records.json"),
        "PREFERENCES_FILE": os.path.join(data_dir, "preferences.json"),
        "MEDIA_DIR": os.path.join(data_dir, "media"),

        # Support page
        "SUPPORT_EMAIL": os.getenv("FISHINGHIT_SUPPORT_EMAIL", DEFAULT_SUPPORT_EMAIL),
        "PRIVACY_POLICY_URL": os.getenv("FISHINGHIT_PRIVACY_POLICY_URL", DEFAULT_POLICY_URL),
        "TERMS_URL": os.getenv("FISHINGHIT_TERMS_URL", DEFAULT_POLICY_URL),
    }

    for key, value in (overrides or {}).items():
        if value is not None:
            config[key] = value
    return config
