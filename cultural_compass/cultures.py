"""Culture id to display-name lookup."""

from __future__ import annotations

from typing import Dict, Mapping

from .errors import ValidationError


class CultureDirectory:
    """Resolves a culture id into the name handed to the analyzer."""

    def __init__(self, cultures: Mapping[str, str]):
        self._names: Dict[str, str] = {str(k).lower(): str(v) for k, v in cultures.items()}

    def name_for(self, culture_id: str) -> str:
        name = self._names.get(str(culture_id).strip().lower())
        if name is None:
            raise ValidationError([f"Culture not found: {culture_id}"])
        return name
