"""
This module holds the fish guide: a fixed catalog of species and the user's favorites.

The catalog is reference data and is never written anywhere. Favorites are a set
of species names stored in the preference store as a JSON list of strings, read
and written through `load_favorites` and `save_favorites`.
"""
# fishinghit/guide.py

from __future__ import annotations

import json
from typing import Iterable, List, Optional, Set, Tuple

from fishinghit.logging_config import get_logger
from fishinghit.models import FishInfo
from fishinghit.preferences import FAVORITE_FISH, PreferenceStore

logger = get_logger(__name__)

FISH_CATALOG: Tuple[FishInfo, ...] = (
    FishInfo("Pike", "Freshwater lakes and rivers", "Spinners, live bait", "Spring and Fall", "A predatory fish with a long body and sharp teeth, often found in weedy areas."),
    FishInfo("Perch", "Freshwater ponds and rivers", "Worms, small lures", "Summer", "Small, colorful schooling fish that prefer structures like docks or fallen trees."),
    FishInfo("Carp", "Warm freshwater lakes", "Boilies, corn", "Summer and Fall", "Large, hardy fish known for their strength and adaptability to various conditions."),
    FishInfo("Trout", "Cold freshwater streams", "Flies, worms", "Spring and Fall", "A prized game fish with beautiful markings, thriving in fast-moving, cold water."),
    FishInfo("Bass", "Freshwater lakes and rivers", "Plastic worms, crankbaits", "Spring and Summer", "Aggressive predators popular among anglers, often found near cover."),
    FishInfo("Salmon", "Rivers and oceans", "Spoons, roe", "Fall", "Migratory fish known for their epic spawning runs from ocean to freshwater."),
    FishInfo("Catfish", "Freshwater rivers and ponds", "Stink bait, worms", "Summer", "Bottom-dwellers with whisker-like barbels, feeding on almost anything."),
    FishInfo("Walleye", "Freshwater lakes", "Jigs, minnows", "Spring and Fall", "A nocturnal fish with excellent low-light vision, prized for its taste."),
    FishInfo("Bluegill", "Freshwater ponds", "Worms, crickets", "Summer", "Small, feisty panfish with a blue spot near the gills, great for beginners."),
    FishInfo("Crappie", "Freshwater lakes", "Minnows, jigs", "Spring", "Schooling fish with a delicate flavor, often found near submerged structures."),
    FishInfo("Tuna", "Open ocean", "Live bait, lures", "Summer", "Fast-swimming oceanic giants, highly sought after for sport and food."),
    FishInfo("Mackerel", "Coastal waters", "Feathers, spoons", "Summer", "Sleek, oily fish that travel in large schools near the surface."),
    FishInfo("Cod", "Cold ocean waters", "Jigs, worms", "Winter", "A staple of commercial fishing, known for their white, flaky flesh."),
    FishInfo("Haddock", "North Atlantic", "Clams, worms", "Winter", "Bottom-dwelling fish similar to cod, with a milder flavor."),
    FishInfo("Sardine", "Coastal waters", "Small lures", "Summer", "Small, silvery fish that form massive schools, a key food source in the ocean."),
    FishInfo("Snapper", "Reefs and coastal waters", "Squid, shrimp", "Summer", "Colorful reef fish with a firm texture, popular in tropical fisheries."),
    FishInfo("Grouper", "Reefs and wrecks", "Live bait, jigs", "Summer", "Large, ambush predators that hide in reefs and wrecks."),
    FishInfo("Flounder", "Coastal flats", "Minnows, shrimp", "Fall", "Flatfish that blend into the seabed, known for their unique appearance."),
    FishInfo("Halibut", "Deep ocean waters", "Herring, jigs", "Summer", "Massive flatfish that can grow to enormous sizes, prized by anglers."),
    FishInfo("Swordfish", "Open ocean", "Squid, mackerel", "Summer", "Known for their long, sword-like bills and powerful swimming ability."),
    FishInfo("Sturgeon", "Large rivers and lakes", "Worms, shrimp", "Fall", "Ancient fish with bony plates, famous for their caviar."),
    FishInfo("Barracuda", "Tropical oceans", "Live bait, lures", "Summer", "Ferocious predators with sharp teeth and lightning-fast strikes."),
    FishInfo("Shark", "Open ocean", "Chum, large baitfish", "Summer", "Apex predators of the sea, ranging from small to massive species."),
    FishInfo("Red Snapper", "Gulf of Mexico", "Squid, shrimp", "Summer", "Bright red reef fish with a sweet, nutty flavor."),
    FishInfo("Rainbow Trout", "Cold mountain streams", "Flies, worms", "Spring", "Vividly colored trout, a favorite for fly fishing enthusiasts."),
    FishInfo("Mullet", "Coastal waters", "Bread, small lures", "Summer", "Leaping fish often seen in schools near shorelines."),
    FishInfo("Herring", "North Atlantic and Pacific", "Small jigs", "Winter", "Small, oily fish critical to marine food chains."),
    FishInfo("Anchovy", "Coastal waters", "Tiny lures", "Summer", "Tiny fish that form dense schools, a key baitfish."),
    FishInfo("Tilapia", "Warm freshwater", "Worms, pellets", "Summer", "Hardy fish often raised in aquaculture, easy to catch."),
    FishInfo("Zander", "Freshwater lakes and rivers", "Minnows, spinners", "Fall", "A close relative of the pike, known for its tasty flesh."),
    FishInfo("Bream", "Freshwater lakes", "Worms, maggots", "Summer", "Flat-bodied fish common in still waters."),
    FishInfo("Roach", "Freshwater rivers", "Bread, worms", "Summer", "Small, silvery fish popular in European angling."),
    FishInfo("Chub", "Fast-flowing rivers", "Flies, worms", "Summer", "Strong, wary fish that prefer clear, oxygenated water."),
    FishInfo("Dace", "Freshwater streams", "Maggots, flies", "Summer", "Small, agile fish often caught with light tackle."),
    FishInfo("Rudd", "Freshwater ponds", "Bread, worms", "Summer", "Golden-hued fish similar to roach, found in weedy waters."),
    FishInfo("Tench", "Freshwater ponds", "Worms, corn", "Summer", "Olive-green fish that thrive in muddy, still waters."),
    FishInfo("Grayling", "Cold freshwater rivers", "Flies, worms", "Fall", "Known as the 'lady of the stream' for its graceful fins."),
    FishInfo("Eel", "Freshwater and coastal waters", "Worms, small fish", "Summer", "Snake-like fish that migrate between fresh and saltwater."),
    FishInfo("Gar", "Freshwater rivers and lakes", "Live bait, lures", "Summer", "Long, armored fish with a prehistoric appearance."),
    FishInfo("Bowfin", "Freshwater swamps", "Live bait, cut bait", "Summer", "Tough, primitive fish that can breathe air."),
    FishInfo("Muskie", "Freshwater lakes", "Large lures, live bait", "Fall", "Apex predator known as the 'fish of 10,000 casts'."),
    FishInfo("Northern Pike", "Freshwater lakes", "Spoons, spinners", "Spring", "Aggressive fish with a voracious appetite."),
    FishInfo("Chain Pickerel", "Freshwater ponds", "Spinners, minnows", "Spring", "Smaller cousin of the pike, with distinctive chain-like markings."),
    FishInfo("Grass Carp", "Freshwater lakes", "Grass, corn", "Summer", "Herbivorous fish introduced to control aquatic weeds."),
    FishInfo("Whitefish", "Cold freshwater lakes", "Worms, flies", "Winter", "Delicate fish often caught through ice."),
    FishInfo("Lake Trout", "Deep freshwater lakes", "Spoons, jigs", "Winter", "Large trout that prefer cold, deep waters."),
    FishInfo("Brook Trout", "Cold freshwater streams", "Flies, worms", "Spring", "Colorful trout native to eastern North America."),
    FishInfo("Brown Trout", "Freshwater rivers", "Flies, spinners", "Fall", "Cunning trout with a brownish hue, hard to catch."),
    FishInfo("Cutthroat Trout", "Western streams", "Flies, worms", "Spring", "Named for the red slash under its jaw."),
    FishInfo("Golden Trout", "High mountain streams", "Flies", "Summer", "Rare, vibrant trout found in alpine waters."),
    FishInfo("Arctic Char", "Cold northern lakes", "Spoons, flies", "Winter", "A northern relative of trout with stunning colors."),
    FishInfo("Dolly Varden", "Pacific streams", "Flies, roe", "Fall", "Colorful char often mistaken for trout."),
)


def find_fish(name: str) -> Optional[FishInfo]:
    for fish in FISH_CATALOG:
        if fish.name == name:
            return fish
    return None


def search_fish(text: str = "", catalog: Iterable[FishInfo] = FISH_CATALOG) -> List[FishInfo]:
    """Returns species whose name contains `text`, ignoring case. Empty text matches all."""
    term = (text or "").lower()
    return [fish for fish in catalog if not term or term in fish.name.lower()]


def load_favorites(prefs: PreferenceStore) -> Set[str]:
    """Reads the favorite species names from the preference store.

    A missing or malformed value yields an empty set.
    """
    return _parse_favorites(prefs.get(FAVORITE_FISH, "[]"))


def _parse_favorites(raw) -> Set[str]:
    try:
        names = json.loads(raw) if isinstance(raw, str) else raw
    except json.JSONDecodeError:
        logger.warning("Ignoring malformed favorites value")
        return set()
    if not isinstance(names, list):
        return set()
    return {name for name in names if isinstance(name, str)}


def save_favorites(prefs: PreferenceStore, names: Iterable[str]) -> None:
    """Writes the favorite species names to the preference store."""
    prefs.set(FAVORITE_FISH, json.dumps(sorted(set(names))))


def set_favorite(prefs: PreferenceStore, name: str, is_favorite: bool) -> Set[str]:
    """Adds or removes one species from the favorites and saves the result.

    The read and the write happen as one step on the preference store.

    Returns:
        set[str]: The updated favorites.
    """
    def change(raw):
        favorites = _parse_favorites(raw)
        if is_favorite:
            favorites.add(name)
        else:
            favorites.discard(name)
        return json.dumps(sorted(favorites))

    return _parse_favorites(prefs.modify(FAVORITE_FISH, change, default="[]"))


def partition_by_favorites(fish: Iterable[FishInfo], favorites: Set[str]) -> Tuple[List[FishInfo], List[FishInfo]]:
    """Splits species into the "Favorites" and "All Fish" sections of the guide."""
    favorite_fish, other_fish = [], []
    for entry in fish:
        (favorite_fish if entry.name in favorites else other_fish).append(entry)
    return favorite_fish, other_fish
