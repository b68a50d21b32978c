"""
This module defines the primary data models for the FishingHit application.

These classes structure the data managed by the `RecordStore` and the
`SessionManager`. Records are stored as plain dictionaries inside the encrypted
records file; each class knows how to convert itself to and from that form.
"""
# fishinghit/models.py

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional
import uuid

UNKNOWN_FISH_TYPE = "Unknown"


def parse_measurement(value) -> float:
    """Converts user input to a float, falling back to 0.0 when it cannot be parsed.

    Args:
        value: A number, a string typed by the user, or None.

    Returns:
        float: The parsed value, or 0.0.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).strip())
    except ValueError:
        return 0.0


class CatchRecord:
    """Represents a single logged catch in the fishing diary.

    Attributes:
        catch_id (str): A unique identifier for the catch.
        fish_type (str): The species caught.
        weight (float): Weight in kilograms.
        length (float): Length in centimetres.
        image (bytes): Optional JPEG bytes of the catch photo.
        note (str): Optional free text.
        date (str): Optional ISO-formatted timestamp of the catch.
        audio_ref (str): Optional path of a recorded audio note.
        video_ref (str): Optional path of an attached video.
    """
    def __init__(self, fish_type, weight=0.0, length=0.0, image=None, note=None, date=None,
                 audio_ref=None, video_ref=None, catch_id=None):
        self.catch_id = catch_id or str(uuid.uuid4())
        self.fish_type = fish_type
        self.weight = parse_measurement(weight)
        self.length = parse_measurement(length)
        self.image = image
        self.note = note
        if isinstance(date, datetime):
            date = date.isoformat()
        self.date = date
        self.audio_ref = audio_ref
        self.video_ref = video_ref

    @property
    def year(self) -> Optional[str]:
        """The four-digit year of the catch date, or None when undated."""
        if not self.date:
            return None
        try:
            return str(datetime.fromisoformat(self.date).year)
        except ValueError:
            return None

    def to_dict(self) -> dict:
        data = dict(self.__dict__)
        if self.image is not None:
            data['image'] = base64.b64encode(self.image).decode('ascii')
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "CatchRecord":
        image = data.get('image')
        if image is not None:
            image = base64.b64decode(image)
        return cls(
            fish_type=data.get('fish_type'),
            weight=data.get('weight', 0.0),
            length=data.get('length', 0.0),
            image=image,
            note=data.get('note'),
            date=data.get('date'),
            audio_ref=data.get('audio_ref'),
            video_ref=data.get('video_ref'),
            catch_id=data.get('catch_id'),
        )


class FishingSpot:
    """A saved place on the map.

    Attributes:
        spot_id (str): A unique identifier for the spot.
        latitude (float): Latitude in degrees.
        longitude (float): Longitude in degrees.
        fish_type (str): Optional species usually caught here.
        depth (float): Depth in metres.
        gear (str): Optional tackle description.
        icon_name (str): Optional name of the map marker icon.
    """
    def __init__(self, latitude, longitude, fish_type=None, depth=0.0, gear=None, icon_name=None, spot_id=None):
        self.spot_id = spot_id or str(uuid.uuid4())
        self.latitude = float(latitude)
        self.longitude = float(longitude)
        self.fish_type = fish_type
        self.depth = parse_measurement(depth)
        self.gear = gear
        self.icon_name = icon_name

    def to_dict(self) -> dict:
        return dict(self.__dict__)

    @classmethod
    def from_dict(cls, data: dict) -> "FishingSpot":
        return cls(
            latitude=data['latitude'],
            longitude=data['longitude'],
            fish_type=data.get('fish_type'),
            depth=data.get('depth', 0.0),
            gear=data.get('gear'),
            icon_name=data.get('icon_name'),
            spot_id=data.get('spot_id'),
        )


class FishingRoute:
    """A named sequence of coordinates, stored as [latitude, longitude] pairs."""
    def __init__(self, name, coordinates=None, route_id=None):
        self.route_id = route_id or str(uuid.uuid4())
        self.name = name
        self.coordinates = [[float(lat), float(lon)] for lat, lon in (coordinates or [])]

    def to_dict(self) -> dict:
        return dict(self.__dict__)

    @classmethod
    def from_dict(cls, data: dict) -> "FishingRoute":
        return cls(data.get('name'), data.get('coordinates', []), route_id=data.get('route_id'))


class GearItem:
    def __init__(self, name, is_checked=False, item_id=None):
        self.item_id = item_id or str(uuid.uuid4())
        self.name = name
        self.is_checked = bool(is_checked)

    def to_dict(self) -> dict:
        return dict(self.__dict__)

    @classmethod
    def from_dict(cls, data: dict) -> "GearItem":
        return cls(data.get('name'), data.get('is_checked', False), item_id=data.get('item_id'))


class GearChecklist:
    """A named, ordered list of gear items.

    Attributes:
        checklist_id (str): A unique identifier for the checklist.
        name (str): The checklist title, e.g. "Ice fishing".
        items (list[GearItem]): The items in display order.
    """
    def __init__(self, name, items=None, checklist_id=None):
        self.checklist_id = checklist_id or str(uuid.uuid4())
        self.name = name
        self.items: List[GearItem] = list(items or [])

    def find_item(self, item_id: str) -> Optional[GearItem]:
        for item in self.items:
            if item.item_id == item_id:
                return item
        return None

    def to_dict(self) -> dict:
        return {
            'checklist_id': self.checklist_id,
            'name': self.name,
            'items': [item.to_dict() for item in self.items],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "GearChecklist":
        items = [GearItem.from_dict(item) for item in data.get('items', [])]
        return cls(data.get('name'), items, checklist_id=data.get('checklist_id'))


class FishInfo:
    """Static reference data for one species in the fish guide."""
    def __init__(self, name, habitat, bait, season, description):
        self.name = name
        self.habitat = habitat
        self.bait = bait
        self.season = season
        self.description = description


class SessionState(Enum):
    LOADING = "loading"
    GUEST_OR_AUTHENTICATED = "guest_or_authenticated"
    AWAITING_REGISTRATION_CALLBACK = "awaiting_registration_callback"
    UNAUTHENTICATED = "unauthenticated"


@dataclass(frozen=True)
class SessionSnapshot:
    """A read-only copy of the session handed out to the rest of the app."""
    state: SessionState
    credential_identifier: Optional[str] = None
    authenticated: bool = False
    registration_complete: bool = False
    push_token: Optional[str] = None
    attribution_payload: Optional[Dict] = field(default=None, compare=False)
    deferred_deep_link: Optional[str] = None

    @property
    def is_guest(self) -> bool:
        return self.credential_identifier == "guest"

    @property
    def display_name(self) -> str:
        """Name shown in the sidebar; an anonymous registration has no identifier."""
        if self.is_guest:
            return "Guest"
        return self.credential_identifier or "Angler"
