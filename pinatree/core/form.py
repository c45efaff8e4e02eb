"""
Tree record form: field values and validation rules.

All violated constraints are reported together so the user can fix them in
one pass.
"""
from dataclasses import dataclass, fields
from datetime import date
from typing import Callable, Dict, Optional

NAME_MIN_LENGTH = 2
SPECIES_MIN_LENGTH = 2
DESCRIPTION_MIN_LENGTH = 10
# String(255) columns
NAME_MAX_LENGTH = 255
SPECIES_MAX_LENGTH = 255

FORM_FIELDS = ("name", "species", "date_planted", "description")


@dataclass
class TreeForm:
    name: str = ""
    species: str = ""
    date_planted: Optional[date] = None
    description: str = ""

    def update(self, **changes) -> None:
        known = {f.name for f in fields(self)}
        for key, value in changes.items():
            if key not in known:
                raise KeyError(f"Unknown form field: {key}")
            setattr(self, key, value)

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def _check_name(form: TreeForm, strict: bool, today: date) -> Optional[str]:
    value = (form.name or "").strip()
    if not value:
        return "Tree name is required"
    if len(value) < NAME_MIN_LENGTH:
        return f"Tree name must be at least {NAME_MIN_LENGTH} characters"
    if len(value) > NAME_MAX_LENGTH:
        return f"Tree name must be at most {NAME_MAX_LENGTH} characters"
    return None


def _check_species(form: TreeForm, strict: bool, today: date) -> Optional[str]:
    value = (form.species or "").strip()
    if not value:
        return "Species is required"
    if len(value) < SPECIES_MIN_LENGTH:
        return f"Species must be at least {SPECIES_MIN_LENGTH} characters"
    if len(value) > SPECIES_MAX_LENGTH:
        return f"Species must be at most {SPECIES_MAX_LENGTH} characters"
    return None


def _check_date_planted(form: TreeForm, strict: bool, today: date) -> Optional[str]:
    if form.date_planted is None:
        return "Date planted is required"
    if form.date_planted > today:
        return "Date planted cannot be in the future"
    return None


def _check_description(form: TreeForm, strict: bool, today: date) -> Optional[str]:
    value = (form.description or "").strip()
    if not strict:
        return None
    if not value:
        return "Description is required"
    if len(value) < DESCRIPTION_MIN_LENGTH:
        return f"Description must be at least {DESCRIPTION_MIN_LENGTH} characters"
    return None


_RULES: Dict[str, Callable[[TreeForm, bool, date], Optional[str]]] = {
    "name": _check_name,
    "species": _check_species,
    "date_planted": _check_date_planted,
    "description": _check_description,
}


def validate_field(form: TreeForm, field: str, strict: bool = True, today: Optional[date] = None) -> Optional[str]:
    """Check a single field; returns the error message or None."""
    return _RULES[field](form, strict, today or date.today())


def validate_form(form: TreeForm, strict: bool = True, today: Optional[date] = None) -> Dict[str, str]:
    """Check every field; returns ``{field: message}`` for each violation."""
    today = today or date.today()
    errors = {}
    for field in FORM_FIELDS:
        message = _RULES[field](form, strict, today)
        if message:
            errors[field] = message
    return errors
