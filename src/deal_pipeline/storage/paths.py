"""Document paths for opportunities."""

from typing import Optional

from ..core.errors import ValidationError


def _segment(name: str, value: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(name, "is required")
    value = str(value).strip()
    if "/" in value:
        raise ValidationError(name, "must not contain '/'", value)
    return value


def opportunity_path(consultant_id: str, client_id: str, opportunity_id: str) -> str:
    return (
        f"consultants/{_segment('consultant_id', consultant_id)}"
        f"/clients/{_segment('client_id', client_id)}"
        f"/opportunities/{_segment('opportunity_id', opportunity_id)}"
    )


def opportunities_prefix(consultant_id: Optional[str] = None, client_id: Optional[str] = None) -> str:
    """Prefix matching every opportunity of a consultant, or of one client."""
    if consultant_id is None:
        return "consultants/"
    prefix = f"consultants/{_segment('consultant_id', consultant_id)}/clients/"
    if client_id is not None:
        prefix += f"{_segment('client_id', client_id)}/opportunities/"
    return prefix


def is_opportunity_path(path: str) -> bool:
    parts = path.split("/")
    return len(parts) == 6 and parts[0] == "consultants" and parts[2] == "clients" and parts[4] == "opportunities"
