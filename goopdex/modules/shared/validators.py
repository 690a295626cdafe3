"""
Goopdex Domain Validators

Raise-on-error checks for caller input. Each validator returns None on
success and raises `ValidationError` (or `NotFoundError`) otherwise.

Usage
-----
    from goopdex.modules.shared.validators import validate_coordinates

    validate_coordinates(48.85, 2.35)   # OK
    validate_coordinates(91.0, 0.0)     # raises ValidationError
"""

from __future__ import annotations

from typing import Any, Optional

from .exceptions import NotFoundError, ValidationError


def validate_positive_id(value: Any, name: str) -> None:
    # bool is an int subclass; reject it explicitly.
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(name, f"{name} must be a positive integer, got {value!r}")


def validate_coordinates(latitude: Optional[float], longitude: Optional[float]) -> None:
    """
    Validate an optional catch location.

    Both coordinates must be given together, latitude in [-90, 90] and
    longitude in [-180, 180].
    """
    if latitude is None and longitude is None:
        return

    if latitude is None or longitude is None:
        raise ValidationError(
            "location", "latitude and longitude must be provided together"
        )

    if not -90.0 <= float(latitude) <= 90.0:
        raise ValidationError("latitude", f"latitude must be within [-90, 90], got {latitude}")

    if not -180.0 <= float(longitude) <= 180.0:
        raise ValidationError(
            "longitude", f"longitude must be within [-180, 180], got {longitude}"
        )


def validate_nickname(nickname: Optional[str], max_length: int) -> Optional[str]:
    """
    Normalize a nickname: strip whitespace, empty becomes None.

    Returns the normalized value; raises if it exceeds `max_length`.
    """
    if nickname is None:
        return None

    cleaned = nickname.strip()
    if not cleaned:
        return None

    if len(cleaned) > max_length:
        raise ValidationError(
            "nickname", f"nickname must be at most {max_length} characters, got {len(cleaned)}"
        )
    return cleaned


def validate_player_name(name: str, max_length: int) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("player_name", "player name must not be empty")
    if len(cleaned) > max_length:
        raise ValidationError(
            "player_name", f"player name must be at most {max_length} characters"
        )
    return cleaned


def validate_non_negative(value: int, name: str) -> None:
    if not isinstance(value, int) or value < 0:
        raise ValidationError(name, f"{name} must be a non-negative integer, got {value!r}")


def require_found(entity: Optional[Any], resource_type: str, identifier: Any) -> Any:
    """Return `entity`, or raise NotFoundError when it is None."""
    if entity is None:
        raise NotFoundError(resource_type, identifier)
    return entity
