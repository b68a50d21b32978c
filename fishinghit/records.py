"""
This module provides the local record store for the FishingHit application.

It defines the `RecordStore` class, which is responsible for:
- Loading and saving all records to an encrypted JSON file (`records.json`).
- Managing the fishing diary (catches), saved map spots, routes and gear checklists.
- Derived views over the diary: filtering and the "top fish types" summary.
- Copying recorded audio and video files into the app's media directory.

Every mutation is applied to a copy of the dataset and written to disk before it
replaces the in-memory state, so a failed write never leaves the two apart.
Mutations hold the store's lock from the copy to the replace.
"""
# fishinghit/records.py

from __future__ import annotations

import copy
import json
import os
import shutil
import threading
from collections import Counter
from typing import Iterable, List, Optional, Sequence, Tuple
import uuid

from cryptography.fernet import Fernet, InvalidToken

from fishinghit.errors import PersistenceError
from fishinghit.logging_config import get_logger
from fishinghit.models import (
    UNKNOWN_FISH_TYPE,
    CatchRecord,
    FishingRoute,
    FishingSpot,
    GearChecklist,
    GearItem,
)

logger = get_logger(__name__)

COLLECTIONS = ('catches', 'spots', 'routes', 'checklists')
WATER_TYPES = ('All', 'Freshwater', 'Saltwater')
MEDIA_KINDS = ('audio', 'video')


class RecordStore:
    """Manages all locally stored records."""

    def __init__(self, path: str, encryptor: Fernet, media_dir: Optional[str] = None):
        """Initializes the store and loads the records file.

        Args:
            path (str): Location of the encrypted records file.
            encryptor (Fernet): Cipher used for the file contents.
            media_dir (str, optional): Where imported audio/video files are copied.
        """
        self._path = path
        self._encryptor = encryptor
        self._media_dir = media_dir or os.path.join(os.path.dirname(path) or '.', 'media')
        self._lock = threading.RLock()
        self._data = self._load_data()
        self._ensure_defaults(self._data)

    def _load_data(self) -> dict:
        """Loads and decrypts the records file.

        Returns:
            dict: The loaded data, or an empty dataset if the file doesn't exist or is corrupt.
        """
        try:
            with open(self._path, 'r') as f:
                encrypted_data = f.read()
            if not encrypted_data:
                return {}
            decrypted_data = self._encryptor.decrypt(encrypted_data.encode()).decode()
            data = json.loads(decrypted_data)
            return data if isinstance(data, dict) else {}
        except FileNotFoundError:
            return {}
        except (InvalidToken, json.JSONDecodeError) as e:
            logger.warning("Could not load records file (%s). Starting with a new dataset.", e)
            return {}

    def _save_data(self, data: dict) -> None:
        """Encrypts and writes `data`, then makes it the current dataset.

        Raises:
            PersistenceError: If the file could not be written. The current dataset is kept.
        """
        try:
            directory = os.path.dirname(self._path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            encrypted_data = self._encryptor.encrypt(json.dumps(data, indent=4).encode())
            with open(self._path, 'w') as f:
                f.write(encrypted_data.decode())
        except OSError as e:
            logger.error("Failed to save records to %s: %s", self._path, e)
            raise PersistenceError() from e
        self._data = data

    @staticmethod
    def _ensure_defaults(data: dict) -> None:
        for name in COLLECTIONS:
            data.setdefault(name, [])

    def _working_copy(self) -> dict:
        return copy.deepcopy(self._data)

    @staticmethod
    def _index_of(entries: list, id_field: str, entry_id: str) -> Optional[int]:
        for index, entry in enumerate(entries):
            if entry.get(id_field) == entry_id:
                return index
        return None

    def _remove(self, collection: str, id_field: str, entry_id: str) -> bool:
        with self._lock:
            data = self._working_copy()
            index = self._index_of(data[collection], id_field, entry_id)
            if index is None:
                return False
            del data[collection][index]
            self._save_data(data)
        return True

    # Catches

    def add_catch(self, fish_type, weight, length, image=None, note=None, date=None,
                  audio_ref=None, video_ref=None) -> CatchRecord:
        """Adds a catch to the diary.

        Weight and length may be numbers or the raw text from the form; anything
        that does not parse is stored as 0.0. Empty image data is not stored.

        Returns:
            CatchRecord: The stored catch.
        """
        record = CatchRecord(
            fish_type=fish_type,
            weight=weight,
            length=length,
            image=image or None,
            note=note,
            date=date,
            audio_ref=audio_ref,
            video_ref=video_ref,
        )
        with self._lock:
            data = self._working_copy()
            data['catches'].append(record.to_dict())
            self._save_data(data)
        logger.debug("Added catch %s (%s)", record.catch_id, fish_type)
        return record

    def get_catch(self, catch_id: str) -> Optional[CatchRecord]:
        index = self._index_of(self._data['catches'], 'catch_id', catch_id)
        if index is None:
            return None
        return CatchRecord.from_dict(self._data['catches'][index])

    def update_catch_note(self, catch_id: str, note: str) -> bool:
        """Replaces the note text of a catch.

        Returns:
            bool: True if the catch exists and was updated, False otherwise.
        """
        with self._lock:
            data = self._working_copy()
            index = self._index_of(data['catches'], 'catch_id', catch_id)
            if index is None:
                return False
            data['catches'][index]['note'] = note
            self._save_data(data)
        return True

    def delete_catch(self, catch_id: str) -> bool:
        return self._remove('catches', 'catch_id', catch_id)

    def list_catches(self, search: str = "", fish_type: str = "", year: str = "") -> List[CatchRecord]:
        """Returns diary entries matching every non-empty filter, newest first.

        Args:
            search (str): Case-insensitive substring of the fish type.
            fish_type (str): Exact fish type.
            year (str): Four-digit year of the catch date.

        Returns:
            list[CatchRecord]: Matching catches; undated catches come last.
        """
        search_term = (search or "").lower()
        fish_type = fish_type or ""
        year = (year or "").strip()

        def matches(record: CatchRecord) -> bool:
            matches_search = not search_term or search_term in (record.fish_type or "").lower()
            matches_fish_type = not fish_type or record.fish_type == fish_type
            matches_year = not year or record.year == year
            return matches_search and matches_fish_type and matches_year

        records = [CatchRecord.from_dict(entry) for entry in self._data['catches']]
        filtered = [record for record in records if matches(record)]
        dated = sorted((r for r in filtered if r.date), key=lambda r: r.date, reverse=True)
        undated = [r for r in filtered if not r.date]
        return dated + undated

    def top_fish_types(self, limit: int = 5, catches: Optional[Iterable[CatchRecord]] = None) -> List[Tuple[str, int]]:
        """Counts catches per fish type and returns the `limit` most frequent.

        Args:
            limit (int): Maximum number of groups to return.
            catches (iterable, optional): Catches to summarise; defaults to the whole diary.

        Returns:
            list[tuple[str, int]]: (fish type, count) pairs sorted by descending count.
        """
        if limit <= 0:
            return []
        if catches is None:
            catches = self.list_catches()
        counts = Counter((record.fish_type or UNKNOWN_FISH_TYPE) for record in catches)
        return counts.most_common(limit)

    def clean_invalid_data(self) -> int:
        """Deletes catches whose stored photo is present but empty.

        Returns:
            int: The number of catches removed.
        """
        with self._lock:
            data = self._working_copy()
            kept = [entry for entry in data['catches'] if entry.get('image') != ""]
            removed = len(data['catches']) - len(kept)
            if removed:
                data['catches'] = kept
                self._save_data(data)
        if removed:
            logger.info("Removed %d catches with invalid images", removed)
        return removed

    def import_media(self, source_path: str, kind: str) -> str:
        """Copies an audio or video file into the media directory.

        Args:
            source_path (str): The recorded or picked file.
            kind (str): 'audio' or 'video'.

        Returns:
            str: The path of the stored copy, suitable for `audio_ref`/`video_ref`.
        """
        if kind not in MEDIA_KINDS:
            raise ValueError(f"Unsupported media kind: {kind}")
        target_dir = os.path.join(self._media_dir, kind)
        extension = os.path.splitext(source_path)[1]
        target = os.path.join(target_dir, f"{uuid.uuid4()}{extension}")
        try:
            os.makedirs(target_dir, exist_ok=True)
            shutil.copyfile(source_path, target)
        except OSError as e:
            logger.error("Failed to copy %s file %s: %s", kind, source_path, e)
            raise PersistenceError(f"Could not save the {kind} file") from e
        return target

    # Spots

    def add_spot(self, latitude, longitude, fish_type=None, depth=0.0, gear=None, icon_name=None) -> FishingSpot:
        spot = FishingSpot(latitude, longitude, fish_type=fish_type, depth=depth, gear=gear, icon_name=icon_name)
        with self._lock:
            data = self._working_copy()
            data['spots'].append(spot.to_dict())
            self._save_data(data)
        return spot

    def list_spots(self, fish_type: str = "", water_type: str = "All") -> List[FishingSpot]:
        """Returns saved spots sorted by fish type.

        Args:
            fish_type (str): Case-insensitive substring of the spot's fish type.
            water_type (str): 'All', 'Freshwater' or 'Saltwater'; for the latter two the
                spot's fish type text must contain the word.

        Returns:
            list[FishingSpot]: The matching spots.
        """
        search_term = (fish_type or "").lower()
        spots = [FishingSpot.from_dict(entry) for entry in self._data['spots']]

        def matches(spot: FishingSpot) -> bool:
            text = spot.fish_type or ""
            fish_type_match = not search_term or search_term in text.lower()
            water_type_match = not water_type or water_type == 'All' or water_type in text
            return fish_type_match and water_type_match

        return sorted((s for s in spots if matches(s)), key=lambda s: s.fish_type or "")

    def delete_spot(self, spot_id: str) -> bool:
        return self._remove('spots', 'spot_id', spot_id)

    # Routes

    def add_route(self, name: str, coordinates: Sequence[Sequence[float]]) -> FishingRoute:
        route = FishingRoute(name, coordinates)
        with self._lock:
            data = self._working_copy()
            data['routes'].append(route.to_dict())
            self._save_data(data)
        return route

    def list_routes(self) -> List[FishingRoute]:
        return [FishingRoute.from_dict(entry) for entry in self._data['routes']]

    def delete_route(self, route_id: str) -> bool:
        return self._remove('routes', 'route_id', route_id)

    # Gear checklists

    def create_checklist(self, name: str, item_names: Iterable[str] = ()) -> GearChecklist:
        items = [GearItem(item_name.strip()) for item_name in item_names if item_name and item_name.strip()]
        checklist = GearChecklist(name, items)
        with self._lock:
            data = self._working_copy()
            data['checklists'].append(checklist.to_dict())
            self._save_data(data)
        return checklist

    def list_checklists(self) -> List[GearChecklist]:
        return [GearChecklist.from_dict(entry) for entry in self._data['checklists']]

    def get_checklist(self, checklist_id: str) -> Optional[GearChecklist]:
        index = self._index_of(self._data['checklists'], 'checklist_id', checklist_id)
        if index is None:
            return None
        return GearChecklist.from_dict(self._data['checklists'][index])

    def delete_checklist(self, checklist_id: str) -> bool:
        return self._remove('checklists', 'checklist_id', checklist_id)

    def _update_checklist(self, checklist_id: str, change) -> Optional[GearChecklist]:
        """Applies `change` to a copy of the checklist and saves it.

        `change` returns False to signal that nothing should be written.
        """
        with self._lock:
            data = self._working_copy()
            index = self._index_of(data['checklists'], 'checklist_id', checklist_id)
            if index is None:
                return None
            checklist = GearChecklist.from_dict(data['checklists'][index])
            if change(checklist) is False:
                return None
            data['checklists'][index] = checklist.to_dict()
            self._save_data(data)
        return checklist

    def rename_checklist(self, checklist_id: str, name: str) -> bool:
        def rename(checklist):
            checklist.name = name
        return self._update_checklist(checklist_id, rename) is not None

    def add_checklist_item(self, checklist_id: str, item_name: str) -> Optional[GearItem]:
        item = GearItem(item_name)

        def append(checklist):
            checklist.items.append(item)

        if self._update_checklist(checklist_id, append) is None:
            return None
        return item

    def remove_checklist_item(self, checklist_id: str, item_id: str) -> bool:
        def remove(checklist):
            item = checklist.find_item(item_id)
            if item is None:
                return False
            checklist.items.remove(item)
        return self._update_checklist(checklist_id, remove) is not None

    def set_checklist_item_checked(self, checklist_id: str, item_id: str, is_checked: bool) -> bool:
        def set_checked(checklist):
            item = checklist.find_item(item_id)
            if item is None:
                return False
            item.is_checked = bool(is_checked)
        return self._update_checklist(checklist_id, set_checked) is not None

    def toggle_checklist_item(self, checklist_id: str, item_id: str) -> Optional[bool]:
        """Flips the checked flag of one item.

        Returns:
            bool or None: The new checked state, or None if the item was not found.
        """
        def toggle(checklist):
            item = checklist.find_item(item_id)
            if item is None:
                return False
            item.is_checked = not item.is_checked

        checklist = self._update_checklist(checklist_id, toggle)
        if checklist is None:
            return None
        return checklist.find_item(item_id).is_checked
