# pbf_studio/context.py
"""Context documents injected into every prompt.

Each of the three documents resolves through three tiers:

1. the override store (operator edits saved from the editor),
2. the server context file under ``CONTEXT_ROOT``,
3. the compiled default below.

The first tier that yields a value wins and its tier is reported as the
document's origin. A file read result is never written back into the
override store, so resetting an override always re-reads the file.
"""
import logging
import os
from enum import Enum
from typing import Callable, Dict, Optional, Protocol, Tuple

from pydantic import BaseModel, ConfigDict
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlmodel import Session

from pbf_studio.models import ContextOverride, utcnow
from pbf_studio.utils import _safe_join_under

logger = logging.getLogger(__name__)


class ContextKey(str, Enum):
    FACILITY_SPECS = "facility-specs"
    DESIGN_GUIDELINES = "design-guidelines"
    COMPANY_CONTEXT = "company-context"


class Origin(str, Enum):
    OVERRIDE = "override"
    REMOTE = "remote"
    DEFAULT = "default"


CONTEXT_FILES = {key: f"{key.value}.txt" for key in ContextKey}


DEFAULT_FACILITY_SPECS = """MAIN BUILDING:
- Dimensions: 130m long x 80m wide
- Height: 8m at center (sloped roof with skylights)
- Structure: Divided into 2 SEPARATE HALLS by solid opaque wall in middle
- Each hall contains 6 circular tanks (arranged in 2 rows of 3)
- Total internal tanks: 12 (6 per hall)
- External migration tanks: 4 circular tanks outside building

TANK SPECIFICATIONS:
- Diameter: 16m each
- Height: 1.8m
- Volume: 350 cubic meters
- Material: Blue fiberglass
- Spacing: 3m between tanks

BUILDING FEATURES:
- Walls: Tinted semi-transparent glass (blue-green tint)
- Roof: Sloped with skylights along center ridge for natural light
- Floor: Light gray epoxy with blue directional lines
- LED lighting along tank edges
- Digital monitoring screens
- Stainless steel railings
- Plants along walkways

QUARANTINE BUILDING (separate):
- Dimensions: 25m wide x 50m deep
- Contains 14 smaller circular tanks
- Tank diameter: 5-6m each"""

DEFAULT_DESIGN_GUIDELINES = """# Pure Blue Fish - Design Guidelines

## Concept
High-tech aquaculture facility, NOT agricultural/farm aesthetic.
Clean, modern, professional appearance. Premium, futuristic feel.

## Color Palette
- Pure Blue #0066CC (tanks, accents)
- Turquoise #008B8B (water, atmosphere)
- White #F5F5F5 (floors, walls)
- Gray #4A4A4A (steel, frames)
- Green #228B22 (plants)

## Required Elements
- Light gray epoxy floor with blue lines
- Digital monitoring screens
- Workers in white lab coats
- Plants along walkways
- Blue LED lighting on tank edges
- Clear water with visible fish
- Stainless steel railings

## MUST AVOID
- Farm aesthetic (hay, dirt, rust)
- Murky water
- Messy exposed pipes
- Dark industrial atmosphere"""

DEFAULT_COMPANY_CONTEXT = """# Pure Blue Fish (PBF)

Israeli aquaculture company with Zero Water Discharge (ZWD) technology.
Mission: "Saving the Ocean & Feeding the World"
Founded 2016, HQ: Binyamina, Israel

## Facilities
- Israel (Binyamina): 125 tonnes/year, Red Drum - OPERATIONAL
- USA (South Carolina): 5,000 tonnes/year planned - FUNDRAISING

## Technology
Only proven commercial ZWD-RAS globally.
Complete nitrogen + carbon cycles = zero water discharge.
Can build anywhere (no coastal requirement).

## Species
- Red Drum: $12-12.50/kg, mild white meat
- Yellowtail Kingfish: $18-20/kg, sushi-grade premium"""

DEFAULTS: Dict[ContextKey, str] = {
    ContextKey.FACILITY_SPECS: DEFAULT_FACILITY_SPECS,
    ContextKey.DESIGN_GUIDELINES: DEFAULT_DESIGN_GUIDELINES,
    ContextKey.COMPANY_CONTEXT: DEFAULT_COMPANY_CONTEXT,
}


class ContextValidationError(ValueError):
    """Raised when a context key is unknown or saved content is not a string."""


class ResolvedContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: ContextKey
    content: str
    origin: Origin


def parse_context_key(value: str) -> ContextKey:
    try:
        return ContextKey(value)
    except ValueError:
        raise ContextValidationError(f"Unknown context key: {value}") from None


def resolve_context(
    override_lookup: Callable[[], Optional[str]],
    remote_fetch: Callable[[], Optional[str]],
    default: str,
) -> Tuple[str, Origin]:
    """Pick the active value for one context document.

    ``override_lookup`` returns the saved edit or None. ``remote_fetch``
    returns the file text, None for a non-success read, or raises
    ``OSError``/``UnicodeDecodeError``. An empty override counts as absent.
    """
    saved = override_lookup()
    if saved:
        return saved, Origin.OVERRIDE

    try:
        text = remote_fetch()
    except (OSError, UnicodeDecodeError) as e:
        logger.debug("Context file unavailable, using compiled default: %s", e)
        text = None
    if text is not None:
        return text, Origin.REMOTE

    return default, Origin.DEFAULT


def read_context_file(context_root: str, key: ContextKey) -> str:
    path = _safe_join_under(context_root, CONTEXT_FILES[key])
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def write_context_file(context_root: str, key: ContextKey, content: str) -> None:
    os.makedirs(context_root, exist_ok=True)
    path = _safe_join_under(context_root, CONTEXT_FILES[key])
    with open(path, "w", encoding="utf-8") as f:
        f.write(content)


class OverrideStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...
    def set(self, key: str, content: str) -> None: ...
    def delete(self, key: str) -> None: ...


class SQLOverrideStore:
    """Override store backed by the ``ContextOverride`` table."""

    def __init__(self, engine):
        self.engine = engine

    def get(self, key: str) -> Optional[str]:
        with Session(self.engine) as session:
            row = session.get(ContextOverride, key)
            return row.content if row else None

    def set(self, key: str, content: str) -> None:
        now = utcnow()
        stmt = sqlite_insert(ContextOverride).values(key=key, content=content, updated_at=now)
        stmt = stmt.on_conflict_do_update(
            index_elements=["key"], set_={"content": content, "updated_at": now}
        )
        with Session(self.engine) as session:
            session.exec(stmt)
            session.commit()

    def delete(self, key: str) -> None:
        with Session(self.engine) as session:
            row = session.get(ContextOverride, key)
            if row:
                session.delete(row)
                session.commit()


class ContextResolver:
    """Read/write path for the three context documents.

    Concurrent saves to the same key are last-write-wins.
    """

    def __init__(self, store: OverrideStore, context_root: str):
        self.store = store
        self.context_root = context_root

    def resolve(self, key: ContextKey) -> ResolvedContext:
        content, origin = resolve_context(
            lambda: self.store.get(key.value),
            lambda: read_context_file(self.context_root, key),
            DEFAULTS[key],
        )
        return ResolvedContext(key=key, content=content, origin=origin)

    def resolve_all(self) -> Dict[ContextKey, ResolvedContext]:
        return {key: self.resolve(key) for key in ContextKey}

    def save(self, key: ContextKey, content) -> None:
        if not isinstance(content, str):
            raise ContextValidationError("Content must be a string")
        self.store.set(key.value, content)

    def reset(self, key: ContextKey) -> ResolvedContext:
        self.store.delete(key.value)
        return self.resolve(key)
