"""
This module defines the graphical user interface (GUI) for the FishingHit application using Streamlit.

It includes functions for rendering all UI components: onboarding and its
remind-later banner, the loading screen, the authentication pages (welcome,
login, register, guest access) and the main app with the fishing map, the catch
diary, the fish guide, the gear checklists and the support page.

The main entry point for the signed-in UI is `show_main_app`.
"""
# gui.py

import datetime
import os
import tempfile
import time

import pandas as pd
import streamlit as st

from fishinghit.errors import FishingHitError
from fishinghit.guide import (
    FISH_CATALOG,
    load_favorites,
    partition_by_favorites,
    search_fish,
    set_favorite,
)
from fishinghit.records import WATER_TYPES

LOADING_POLL_SECONDS = 0.5
SPOT_ICONS = ["fish", "anchor", "boat", "star"]


def _rerun():
    """Triggers a rerun of the Streamlit app to refresh the UI."""
    st.rerun()


def _format_date(timestamp_str):
    """Formats an ISO timestamp as e.g. "Jan 01, 2024", or a placeholder when missing."""
    if not timestamp_str:
        return "No date"
    try:
        return datetime.datetime.fromisoformat(timestamp_str).strftime("%b %d, %Y")
    except ValueError:
        return timestamp_str


def _store_upload(services, uploaded_file, kind):
    """Copies an uploaded audio/video file into the media directory and returns its path."""
    if uploaded_file is None:
        return None
    suffix = os.path.splitext(uploaded_file.name)[1]
    with tempfile.NamedTemporaryFile(suffix=suffix, delete=False) as tmp:
        tmp.write(uploaded_file.getvalue())
        tmp_path = tmp.name
    try:
        return services.records.import_media(tmp_path, kind)
    finally:
        os.remove(tmp_path)


# Page navigation helpers
def set_page_welcome():
    """Sets the session state to display the welcome page."""
    st.session_state.auth_page = 'welcome'


def set_page_login():
    """Sets the session state to display the login page."""
    st.session_state.auth_page = 'login'


def set_page_register():
    """Sets the session state to display the registration page."""
    st.session_state.auth_page = 'register'


# Launch Pages
ONBOARDING_PAGES = [
    ("Welcome to FishingHit",
     "Your fishing companion with tools to track, learn and master your fishing adventures."),
    ("Interactive Fishing Map",
     "Mark and explore fishing spots with filters for fish and water types."),
    ("Fishing Diary",
     "Log every catch with photos, notes and details, and look back at them anytime."),
    ("Fish Guide",
     "Discover 52 fish species with their habitats, baits and seasons."),
]


def _next_onboarding_page():
    st.session_state.onboarding_page += 1


def _finish_onboarding(services, open_add_catch=False):
    try:
        services.complete_onboarding()
    except FishingHitError as e:
        st.session_state.onboarding_error = e.message
        return
    if open_add_catch:
        st.session_state.main_menu = "Catch Diary"
        st.session_state.expand_add_catch = True


def _skip_onboarding(services):
    try:
        services.remind_onboarding_later()
    except FishingHitError as e:
        st.session_state.onboarding_error = e.message


def show_onboarding(services):
    """Displays the first-run introduction, one page at a time."""
    page = st.session_state.setdefault("onboarding_page", 0)
    page = min(page, len(ONBOARDING_PAGES) - 1)
    title, description = ONBOARDING_PAGES[page]
    is_last_page = page == len(ONBOARDING_PAGES) - 1

    col1, col2, col3 = st.columns([1, 2, 1])
    with col2:
        st.markdown(f"<h1 style='text-align: center;'>{title}</h1>", unsafe_allow_html=True)
        st.markdown(f"<p style='text-align: center;'>{description}</p>", unsafe_allow_html=True)
        st.progress((page + 1) / len(ONBOARDING_PAGES))

        if is_last_page:
            st.button("Add Your First Catch", on_click=_finish_onboarding, args=(services, True),
                      use_container_width=True)
            st.button("Get Started", on_click=_finish_onboarding, args=(services,),
                      type="primary", use_container_width=True)
        else:
            st.button("Next", on_click=_next_onboarding_page, type="primary", use_container_width=True)
            st.button("Skip, Remind Later", on_click=_skip_onboarding, args=(services,))

        error = st.session_state.pop("onboarding_error", None)
        if error:
            st.error(error)


def _restart_onboarding(services):
    try:
        services.restart_onboarding()
    except FishingHitError as e:
        st.session_state.onboarding_error = e.message
    else:
        st.session_state.onboarding_page = 0


def _dismiss_reminder(services):
    try:
        services.dismiss_onboarding_reminder()
    except FishingHitError as e:
        st.session_state.onboarding_error = e.message


def show_onboarding_reminder(services):
    """Banner shown once a skipped introduction's reminder is due."""
    st.info("Continue learning FishingHit: come back to the tour to explore all features.")
    col1, col2 = st.columns(2)
    with col1:
        st.button("Show the Tour", on_click=_restart_onboarding, args=(services,), key="reminder_tour")
    with col2:
        st.button("Dismiss", on_click=_dismiss_reminder, args=(services,), key="reminder_dismiss")
    error = st.session_state.pop("onboarding_error", None)
    if error:
        st.error(error)


def show_loading_page():
    """Shown while the session is still resolving at launch."""
    with st.spinner("Loading..."):
        time.sleep(LOADING_POLL_SECONDS)
    _rerun()


# Authentication Pages
def _visit_as_guest(services):
    try:
        services.session.visit_as_guest()
    except FishingHitError as e:
        st.session_state.welcome_error = e.message


def show_welcome_page(services):
    """Displays the welcome screen with login, registration and guest options."""
    col1, col2, col3 = st.columns([1, 2, 1])
    with col2:
        st.markdown("<h1 style='text-align: center;'>FishingHit</h1>", unsafe_allow_html=True)
        st.markdown("<p style='text-align: center;'>Your fishing spots, catches and gear in one place.</p>", unsafe_allow_html=True)

        st.button("Log In", on_click=set_page_login, use_container_width=True, type="primary")
        st.button("Create an Account", on_click=set_page_register, use_container_width=True)
        st.button("Continue as Guest", on_click=_visit_as_guest, args=(services,), use_container_width=True)
        error = st.session_state.pop("welcome_error", None)
        if error:
            st.error(error)


def show_login_form(services):
    """Displays the login form and handles authentication.

    Args:
        services: The shared application services.
    """
    st.button("← Back", on_click=set_page_welcome)
    col1, col2, col3 = st.columns([1, 2, 1])
    with col2:
        st.markdown("<h2 style='text-align: center;'>Log In</h2>", unsafe_allow_html=True)
        with st.form("login_form"):
            email = st.text_input("Email")
            password = st.text_input("Password", type="password")
            submitted = st.form_submit_button("Log In", use_container_width=True)

            if submitted:
                if not email or not password:
                    st.error("Email and password are required.")
                else:
                    with st.spinner("Logging in..."):
                        try:
                            logged_in = services.session.login(email, password)
                        except FishingHitError as e:
                            st.error(e.message)
                        else:
                            if logged_in:
                                st.session_state.auth_page = 'welcome'
                                _rerun()
                            else:
                                st.error("We could not finish signing you in. Please try again later.")


def show_register_form(services):
    """Displays the registration form and handles new account creation.

    Args:
        services: The shared application services.
    """
    st.button("← Back", on_click=set_page_welcome)
    col1, col2, col3 = st.columns([1, 2, 1])
    with col2:
        st.markdown("<h2 style='text-align: center;'>Create an Account</h2>", unsafe_allow_html=True)
        with st.form("register_form"):
            email = st.text_input("Email")
            phone = st.text_input("Phone (optional)")
            password = st.text_input("Password", type="password")
            submitted = st.form_submit_button("Register", use_container_width=True)

            if submitted:
                if not email or not password:
                    st.error("Email and password are required.")
                else:
                    with st.spinner("Registering..."):
                        try:
                            registered = services.session.register(email, phone, password)
                        except FishingHitError as e:
                            st.error(e.message)
                        else:
                            if registered:
                                st.session_state.auth_page = 'welcome'
                                _rerun()
                            else:
                                st.error("We could not finish your registration. Please try again later.")


# Main Application UI
def show_main_app(services):
    """
    The main application router shown once the user is logged in or visiting as a guest.

    Args:
        services: The shared application services.
    """
    session = services.session.snapshot()
    menu_items = {
        "Fishing Map": _render_spots_page,
        "Catch Diary": _render_diary_page,
        "Fish Guide": _render_guide_page,
        "Gear Checklists": _render_gear_page,
        "Support": _render_support_page,
    }

    with st.sidebar:
        st.markdown("## FishingHit")
        st.caption(session.display_name)
        page = st.radio("Menu", list(menu_items), key="main_menu")
        st.divider()
        if st.button("Log Out", use_container_width=True):
            services.session.logout()
            st.session_state.auth_page = 'welcome'
            _rerun()

    menu_items[page](services)


def _render_spots_page(services):
    """Map of saved spots with filters and the "new spot" form."""
    st.header("Fishing Map")
    col1, col2 = st.columns(2)
    with col1:
        water_type = st.selectbox("Water type", WATER_TYPES)
    with col2:
        fish_filter = st.text_input("Fish type", key="spot_fish_filter")

    spots = services.records.list_spots(fish_type=fish_filter, water_type=water_type)
    if spots:
        spots_df = pd.DataFrame([spot.to_dict() for spot in spots])
        st.map(spots_df, latitude="latitude", longitude="longitude")
        st.dataframe(spots_df[["fish_type", "depth", "gear", "latitude", "longitude"]], use_container_width=True)
        for spot in spots:
            if st.button(f"Delete {spot.fish_type or 'spot'} ({spot.latitude:.4f}, {spot.longitude:.4f})",
                         key=f"delete_spot_{spot.spot_id}"):
                try:
                    services.records.delete_spot(spot.spot_id)
                except FishingHitError as e:
                    st.error(e.message)
                else:
                    _rerun()
    else:
        st.info("No spots saved yet.")

    with st.expander("Add Spot"):
        with st.form("add_spot_form", clear_on_submit=True):
            latitude = st.number_input("Latitude", min_value=-90.0, max_value=90.0, value=55.751244, format="%.6f")
            longitude = st.number_input("Longitude", min_value=-180.0, max_value=180.0, value=37.618423, format="%.6f")
            fish_type = st.text_input("Fish Type")
            depth = st.text_input("Depth (m)")
            gear = st.text_input("Gear")
            icon_name = st.selectbox("Icon", SPOT_ICONS)
            if st.form_submit_button("Save"):
                try:
                    services.records.add_spot(latitude, longitude, fish_type=fish_type, depth=depth,
                                              gear=gear, icon_name=icon_name)
                except FishingHitError as e:
                    st.error(e.message)
                else:
                    st.success("Spot saved.")


def _render_diary_page(services):
    """The catch diary: filters, top fish types, entries and the "new catch" form."""
    st.header("Catch Diary")
    col1, col2, col3 = st.columns(3)
    with col1:
        search = st.text_input("Search", key="diary_search")
    with col2:
        fish_type = st.text_input("Fish Type (exact)", key="diary_fish_type")
    with col3:
        year = st.text_input("Year (e.g., 2024)", key="diary_year")

    catches = services.records.list_catches(search=search, fish_type=fish_type, year=year)
    top_types = services.records.top_fish_types(5, catches)
    if top_types:
        st.subheader("Top Fish Types")
        top_df = pd.DataFrame(top_types, columns=["Fish Type", "Catches"]).set_index("Fish Type")
        st.bar_chart(top_df)

    if not catches:
        st.info("No catches match your filters.")
    for record in catches:
        _render_catch_entry(services, record)

    _render_add_catch_form(services)


def _render_catch_entry(services, record):
    title = f"{record.fish_type or 'Unknown'} · {record.weight} kg · {_format_date(record.date)}"
    with st.expander(title):
        if record.image:
            st.image(record.image, use_container_width=True)
        st.write(f"Weight: {record.weight} kg")
        st.write(f"Length: {record.length} cm")
        if record.audio_ref:
            st.audio(record.audio_ref)
        if record.video_ref:
            st.video(record.video_ref)

        with st.form(f"note_form_{record.catch_id}"):
            note = st.text_area("Note", value=record.note or "")
            if st.form_submit_button("Save Note"):
                try:
                    services.records.update_catch_note(record.catch_id, note)
                except FishingHitError as e:
                    st.error(e.message)
                else:
                    st.success("Note saved.")

        if st.button("Delete", key=f"delete_catch_{record.catch_id}"):
            try:
                services.records.delete_catch(record.catch_id)
            except FishingHitError as e:
                st.error(e.message)
            else:
                _rerun()


def _render_add_catch_form(services):
    with st.expander("Add Catch", expanded=st.session_state.pop("expand_add_catch", False)):
        with st.form("add_catch_form", clear_on_submit=True):
            fish_type = st.text_input("Fish Type")
            weight = st.text_input("Weight (kg)")
            length = st.text_input("Length (cm)")
            date = st.date_input("Date", value=datetime.date.today())
            photo = st.file_uploader("Photo", type=["jpg", "jpeg", "png"])
            note = st.text_area("Note")
            audio = st.file_uploader("Audio Note", type=["m4a", "mp3", "wav"])
            video = st.file_uploader("Video", type=["mov", "mp4"])
            if st.form_submit_button("Save"):
                try:
                    services.records.add_catch(
                        fish_type,
                        weight,
                        length,
                        image=photo.getvalue() if photo is not None else None,
                        note=note,
                        date=datetime.datetime.combine(date, datetime.time()),
                        audio_ref=_store_upload(services, audio, "audio"),
                        video_ref=_store_upload(services, video, "video"),
                    )
                except FishingHitError as e:
                    st.error(e.message)
                else:
                    st.success("Catch saved.")


def _render_guide_page(services):
    """The fish guide with search and favorites."""
    st.header("Fish Guide")
    search = st.text_input("Search fish...", key="guide_search")
    favorites = load_favorites(services.preferences)
    favorite_fish, other_fish = partition_by_favorites(search_fish(search, FISH_CATALOG), favorites)

    st.subheader("Favorites")
    if not favorite_fish:
        st.caption("Star a fish to pin it here.")
    for fish in favorite_fish:
        _render_fish_row(services, fish, is_favorite=True)

    st.subheader("All Fish")
    for fish in other_fish:
        _render_fish_row(services, fish, is_favorite=False)


def _render_fish_row(services, fish, is_favorite):
    with st.expander(fish.name):
        st.write(f"Habitat: {fish.habitat}")
        st.write(f"Best Bait: {fish.bait}")
        st.write(f"Season: {fish.season}")
        st.write(fish.description)
        label = "Remove from Favorites" if is_favorite else "Add to Favorites"
        if st.button(label, key=f"favorite_{fish.name}"):
            try:
                set_favorite(services.preferences, fish.name, not is_favorite)
            except FishingHitError as e:
                st.error(e.message)
            else:
                _rerun()


def _toggle_item(services, checklist_id, item_id):
    try:
        services.records.toggle_checklist_item(checklist_id, item_id)
    except FishingHitError as e:
        st.session_state.gear_error = e.message


def _render_gear_page(services):
    """Gear checklists: create, tick off, extend and delete."""
    st.header("Gear Checklists")
    error = st.session_state.pop("gear_error", None)
    if error:
        st.error(error)

    for checklist in services.records.list_checklists():
        with st.expander(checklist.name, expanded=True):
            for item in checklist.items:
                st.checkbox(
                    item.name,
                    value=item.is_checked,
                    key=f"gear_{checklist.checklist_id}_{item.item_id}",
                    on_change=_toggle_item,
                    args=(services, checklist.checklist_id, item.item_id),
                )
            with st.form(f"add_item_{checklist.checklist_id}", clear_on_submit=True):
                item_name = st.text_input("New item")
                if st.form_submit_button("Add Item") and item_name.strip():
                    try:
                        services.records.add_checklist_item(checklist.checklist_id, item_name.strip())
                    except FishingHitError as e:
                        st.error(e.message)
                    else:
                        _rerun()
            if st.button("Delete Checklist", key=f"delete_checklist_{checklist.checklist_id}"):
                try:
                    services.records.delete_checklist(checklist.checklist_id)
                except FishingHitError as e:
                    st.error(e.message)
                else:
                    _rerun()

    with st.form("new_checklist_form", clear_on_submit=True):
        st.subheader("New Checklist")
        name = st.text_input("Name")
        items = st.text_area("Items (one per line)")
        if st.form_submit_button("Create"):
            if not name.strip():
                st.error("A checklist needs a name.")
            else:
                try:
                    services.records.create_checklist(name.strip(), items.splitlines())
                except FishingHitError as e:
                    st.error(e.message)
                else:
                    _rerun()


SUPPORT_FAQ = [
    ("How do I add a new fishing spot?",
     "Open the Fishing Map page, expand 'Add Spot', enter details such as the fish type and depth, "
     "and save it. Your spot appears on the map."),
    ("Can I use FishingHit offline?",
     "The diary, the fish guide and your saved spots are stored on this device. "
     "The map tiles need an internet connection."),
    ("How do I edit a catch in the diary?",
     "Open the catch in the Catch Diary, change its note and press 'Save Note'."),
]


def _render_support_page(services):
    """Help for the app: FAQ, contact details and policy links."""
    st.header("Support")
    st.write("Welcome to the FishingHit support page! Below you'll find answers to common questions, "
             "contact information and useful resources.")

    st.subheader("Frequently Asked Questions")
    for question, answer in SUPPORT_FAQ:
        with st.expander(question):
            st.write(answer)

    st.subheader("Contact Us")
    st.write("If you need further assistance, feel free to reach out:")
    email = services.config["SUPPORT_EMAIL"]
    st.markdown(f"**Email:** [{email}](mailto:{email})")

    st.subheader("Resources")
    st.link_button("Privacy Policy", services.config["PRIVACY_POLICY_URL"])
    st.link_button("Terms of Service", services.config["TERMS_URL"])
