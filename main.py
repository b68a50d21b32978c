"""
This is the main entry point for the FishingHit Streamlit application.

This script handles the following key responsibilities:
- Sets the overall page configuration for the Streamlit app.
- Initializes the shared `AppServices`, which own all backend logic and data.
- Forwards a deep link from the URL to the launch coordinator.
- Routes the user to onboarding, the loading screen, the authentication pages or
  the main app based on the session state.
"""
# main.py

import streamlit as st
from streamlit.errors import StreamlitAPIException

from fishinghit import events
from fishinghit.config import load_config
from fishinghit.models import SessionState
from fishinghit.services import AppServices
import gui

# Set the basic configuration for the Streamlit page.
st.set_page_config(
    page_title="FishingHit",
    layout="wide"
)


def _secret_overrides():
    """Reads configuration overrides from Streamlit secrets, if a secrets file exists."""
    try:
        return {key: st.secrets[key] for key in ("AUTH_ENDPOINT", "DATA_DIR") if key in st.secrets}
    except (FileNotFoundError, StreamlitAPIException):
        return {}


# Service Initialization
@st.cache_resource
def get_services():
    """
    Initializes and returns the shared services.

    Decorated with `@st.cache_resource` so the services and the launch sequence
    are created once per server process and survive app reruns. The data files
    and the login belong to the device, so every browser tab connected to this
    server sees the same session: a login or logout in one tab applies to all.

    Returns:
        AppServices: The shared service container.
    """
    services = AppServices(load_config(_secret_overrides()))
    services.start()
    return services


services = get_services()

# Session State Management
if 'auth_page' not in st.session_state:
    st.session_state.auth_page = 'welcome'
if 'deep_link_forwarded' not in st.session_state:
    deep_link = st.query_params.get("deeplink")
    if deep_link:
        services.bus.post(events.DEEP_LINK_RECEIVED, {"deeplink": deep_link})
    st.session_state.deep_link_forwarded = True

# Main App Router
session = services.session.snapshot()
loading = session.state in (SessionState.LOADING, SessionState.AWAITING_REGISTRATION_CALLBACK)
if services.has_seen_onboarding and not loading and services.onboarding_reminder_due():
    gui.show_onboarding_reminder(services)

if not services.has_seen_onboarding:
    gui.show_onboarding(services)
elif loading:
    gui.show_loading_page()
elif session.state == SessionState.GUEST_OR_AUTHENTICATED:
    gui.show_main_app(services)
else:
    # Not logged in: a multi-step welcome/login/registration flow.
    if st.session_state.auth_page == 'welcome':
        gui.show_welcome_page(services)
    elif st.session_state.auth_page == 'login':
        gui.show_login_form(services)
    elif st.session_state.auth_page == 'register':
        gui.show_register_form(services)
