"""
Wiring of the FishingHit services.

`AppServices` builds every long-lived object from a configuration dictionary:
the encryption key, the preference and record stores, the auth client, the
session manager, the event bus and the launch coordinator. The Streamlit entry
point creates one instance per server process.
"""
# fishinghit/services.py

from datetime import datetime, timedelta
from typing import Optional

import requests

from fishinghit.auth_client import AuthClient
from fishinghit.config import load_config
from fishinghit.encryption import get_encryptor
from fishinghit.events import EventBus
from fishinghit.launch import LaunchCoordinator
from fishinghit.logging_config import configure_logging, get_logger
from fishinghit.preferences import HAS_SEEN_ONBOARDING, ONBOARDING_REMINDER_AT, PreferenceStore
from fishinghit.records import RecordStore
from fishinghit.session import SessionManager

logger = get_logger(__name__)

REMIND_LATER = timedelta(days=3)


class AppServices:
    """Holds the services shared by every page of the app."""

    def __init__(self, config: Optional[dict] = None, http: Optional[requests.Session] = None, timer_factory=None):
        """Builds the services.

        Args:
            config (dict, optional): Output of `load_config`; loaded from the environment if omitted.
            http (requests.Session, optional): HTTP session for the auth client.
            timer_factory (callable, optional): Replaces `threading.Timer` for the launch timeout.
        """
        self.config = config or load_config()
        configure_logging(self.config.get("DEBUG_MODE", False))

        encryptor = get_encryptor(self.config["KEY_FILE"])
        self.preferences = PreferenceStore(self.config["PREFERENCES_FILE"], encryptor)
        self.records = RecordStore(self.config["RECORDS_FILE"], encryptor, media_dir=self.config["MEDIA_DIR"])
        self.client = AuthClient(self.config["AUTH_ENDPOINT"], timeout=self.config["REQUEST_TIMEOUT"], http=http)
        self.session = SessionManager(self.client, self.preferences)
        self.bus = EventBus()

        coordinator_kwargs = {"timeout": self.config["LAUNCH_TIMEOUT"]}
        if timer_factory is not None:
            coordinator_kwargs["timer_factory"] = timer_factory
        self.launch = LaunchCoordinator(self.session, self.bus, **coordinator_kwargs)

    def start(self) -> None:
        """Cleans invalid records and begins the launch sequence."""
        removed = self.records.clean_invalid_data()
        if removed:
            logger.info("Startup cleanup removed %d records", removed)
        self.launch.start()

    @property
    def has_seen_onboarding(self) -> bool:
        return self.preferences.get_bool(HAS_SEEN_ONBOARDING)

    def complete_onboarding(self) -> None:
        self.preferences.set(HAS_SEEN_ONBOARDING, True)
        self.preferences.remove(ONBOARDING_REMINDER_AT)

    def remind_onboarding_later(self, now: Optional[datetime] = None) -> datetime:
        """Skips the introduction and schedules a reminder three days from `now`.

        Returns:
            datetime: When the reminder becomes due.
        """
        remind_at = (now or datetime.now()) + REMIND_LATER
        self.preferences.update({
            HAS_SEEN_ONBOARDING: True,
            ONBOARDING_REMINDER_AT: remind_at.isoformat(),
        })
        logger.info("Onboarding skipped; reminder due at %s", remind_at.isoformat())
        return remind_at

    def onboarding_reminder_due(self, now: Optional[datetime] = None) -> bool:
        raw = self.preferences.get_string(ONBOARDING_REMINDER_AT)
        if raw is None:
            return False
        try:
            remind_at = datetime.fromisoformat(raw)
        except ValueError:
            logger.warning("Ignoring malformed onboarding reminder %r", raw)
            return False
        return (now or datetime.now()) >= remind_at

    def dismiss_onboarding_reminder(self) -> None:
        self.preferences.remove(ONBOARDING_REMINDER_AT)

    def restart_onboarding(self) -> None:
        """Shows the introduction again on the next page load."""
        self.preferences.remove(ONBOARDING_REMINDER_AT)
        self.preferences.set(HAS_SEEN_ONBOARDING, False)
