"""
Catalog Models

Static reference data: job profiles, languages and expertises.
Read-only from the booking system's perspective. Catalog keys are text slugs
(e.g. "backend-developer", "fr") so seat snapshots stay readable in the database.
"""

from typing import Optional

from pydantic import BaseModel


class HRProfile(BaseModel):
    """A job role a seat can require."""

    profile_id: str
    name: str
    category_name: Optional[str] = None

    class Config:
        from_attributes = True


class HRLanguage(BaseModel):
    """Spoken language."""

    language_id: str
    name: str

    class Config:
        from_attributes = True


class HRExpertise(BaseModel):
    """Technical or business expertise."""

    expertise_id: str
    name: str

    class Config:
        from_attributes = True
