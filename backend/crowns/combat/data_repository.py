"""Combat data repository for spells, items and special abilities.

Primary source: the built-in tables shipped with the package.
Optional source: local JSON files that add or override entries.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from .abilities import ABILITY_DEFINITIONS
from .items import ITEM_EFFECTS
from .models.content import AbilityDefinition, ItemInfo, SpellInfo
from .spells import SPELL_TEMPLATES

logger = logging.getLogger(__name__)

_ModelT = TypeVar("_ModelT", bound=BaseModel)


def _safe_slug(value: str) -> str:
    text = (value or "").strip().lower()
    if not text:
        return ""
    out = []
    for ch in text:
        if ch.isalnum() or ch in ("_", "-"):
            out.append(ch)
        elif ch.isspace() or ch in ("/", "\\", ":", "|", "."):
            out.append("_")
    slug = "".join(out).strip("_")
    while "__" in slug:
        slug = slug.replace("__", "_")
    return slug


def _flatten_entries(raw: Any) -> List[Dict[str, Any]]:
    """Flatten a JSON payload (list, or dict keyed by id) into entry dicts."""
    if isinstance(raw, list):
        return [entry for entry in raw if isinstance(entry, dict)]
    if isinstance(raw, dict):
        if "id" in raw:
            return [raw]
        entries = []
        for key, value in raw.items():
            if isinstance(value, dict):
                entries.append({"id": key, **value})
        return entries
    return []


class CombatDataRepository:
    """Read-only lookup over combat content tables."""

    def __init__(
        self,
        spells: Optional[Mapping[str, SpellInfo]] = None,
        items: Optional[Mapping[str, ItemInfo]] = None,
        abilities: Optional[Mapping[str, AbilityDefinition]] = None,
    ) -> None:
        self._spells = MappingProxyType(dict(spells or {}))
        self._items = MappingProxyType(dict(items or {}))
        self._abilities = MappingProxyType(dict(abilities or {}))

    @classmethod
    def default(cls) -> "CombatDataRepository":
        return cls(SPELL_TEMPLATES, ITEM_EFFECTS, ABILITY_DEFINITIONS)

    @classmethod
    def from_directory(cls, path: Path, include_defaults: bool = True) -> "CombatDataRepository":
        """
        Load ``spells.json``, ``items.json`` and ``abilities.json`` from a directory.

        Entries override built-in ones with the same id. Invalid entries are
        reported and raise, so broken content never reaches a live fight.
        """
        base = cls.default() if include_defaults else cls()
        spells = dict(base._spells)
        items = dict(base._items)
        abilities = dict(base._abilities)

        spells.update(cls._load_file(path / "spells.json", SpellInfo))
        items.update(cls._load_file(path / "items.json", ItemInfo))
        abilities.update(cls._load_file(path / "abilities.json", AbilityDefinition))
        return cls(spells, items, abilities)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get_spell(self, spell_id: str) -> Optional[SpellInfo]:
        return self._lookup(self._spells, spell_id)

    def get_item(self, item_id: str) -> Optional[ItemInfo]:
        return self._lookup(self._items, item_id)

    def get_ability(self, ability_id: str) -> Optional[AbilityDefinition]:
        return self._lookup(self._abilities, ability_id)

    def list_spells(self) -> List[SpellInfo]:
        return list(self._spells.values())

    def list_items(self) -> List[ItemInfo]:
        return list(self._items.values())

    def list_abilities(self) -> List[AbilityDefinition]:
        return list(self._abilities.values())

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @staticmethod
    def _lookup(table: Mapping[str, _ModelT], entry_id: Optional[str]) -> Optional[_ModelT]:
        if not entry_id:
            return None
        if entry_id in table:
            return table[entry_id]
        key = _safe_slug(entry_id)
        for candidate_id, entry in table.items():
            if _safe_slug(candidate_id) == key:
                return entry
            if _safe_slug(getattr(entry, "name", "")) == key:
                return entry
        return None

    @staticmethod
    def _load_file(path: Path, model: Type[_ModelT]) -> Dict[str, _ModelT]:
        if not path.exists():
            return {}

        raw = json.loads(path.read_text(encoding="utf-8"))
        loaded: Dict[str, _ModelT] = {}
        for entry in _flatten_entries(raw):
            try:
                parsed = model.model_validate(entry)
            except ValidationError as exc:
                logger.warning("Invalid %s entry in %s: %s", model.__name__, path, exc)
                raise
            loaded[parsed.id] = parsed
        logger.info("Loaded %d %s entries from %s", len(loaded), model.__name__, path)
        return loaded
