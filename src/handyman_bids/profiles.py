"""Bidder rating lookup used by the price recommendation engine."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field


class RatingLookup(ABC):
    """User/profile service boundary: average review rating per user, or None if unrated."""

    @abstractmethod
    def get_rating(self, user_id: str) -> Optional[float]:
        pass


class HandymanProfile(BaseModel):
    """Subset of a handyman profile relevant to pricing and matching."""

    user_id: str
    name: str = ""
    rating: Optional[float] = Field(default=None, ge=0, le=5)
    skills: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)


class ProfileDirectory(RatingLookup):
    """In-process profile directory, e.g. loaded from a YAML export of the profile service."""

    def __init__(self, profiles: Optional[list[HandymanProfile]] = None):
        self._profiles: dict[str, HandymanProfile] = {p.user_id: p for p in profiles or []}

    def add(self, profile: HandymanProfile) -> None:
        self._profiles[profile.user_id] = profile

    def get(self, user_id: str) -> Optional[HandymanProfile]:
        return self._profiles.get(user_id)

    def get_rating(self, user_id: str) -> Optional[float]:
        profile = self._profiles.get(user_id)
        # a zero rating means "no reviews yet"
        if profile is None or not profile.rating:
            return None
        return profile.rating

    @classmethod
    def from_yaml(cls, path: str | Path) -> "ProfileDirectory":
        """Load profiles from YAML: a list, or a mapping under `profiles`."""
        data = yaml.safe_load(Path(path).read_text()) or []
        if isinstance(data, dict):
            data = data.get("profiles", [])
        return cls([HandymanProfile.model_validate(p) for p in data])
