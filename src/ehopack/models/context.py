"""
EHO Pack Request Context

Models describing who asked for a report, for which site and over which
period. These are the explicit inputs to the engine; nothing is read from
ambient application state.

Key components:
- Actor: The authenticated user the hosting application resolved
- Site / Organization: Identity of the premises being inspected
- ReportWindow: Inclusive date range covered by the report
- ReportRequest: Everything the pipeline needs to start
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional, Union

from ..exceptions import InvalidRequestError, InvalidWindowError

UNKNOWN_SITE_NAME = "Unknown Site"


# =============================================================================
# Actor
# =============================================================================

@dataclass(frozen=True)
class Actor:
    """
    The user on whose behalf a report is generated.

    Opaque to the engine apart from the cover's "prepared by" line.
    """
    user_id: str
    display_name: str = ""
    company_id: Optional[str] = None
    site_id: Optional[str] = None
    role: Optional[str] = None


# =============================================================================
# Site / Organization
# =============================================================================

@dataclass(frozen=True)
class Organization:
    """Parent organization (company) of a site."""
    id: str
    legal_name: str
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Organization":
        return cls(
            id=str(row["id"]),
            legal_name=row.get("legal_name") or row.get("name") or "",
            contact_email=row.get("contact_email") or row.get("email"),
            contact_phone=row.get("contact_phone") or row.get("phone"),
        )


@dataclass(frozen=True)
class Site:
    """
    A single premises. Scopes every site-bound query.

    Attributes:
        id: Site identifier as supplied by the caller
        name: Display name
        organization_id: Parent organization, None when unknown
        is_placeholder: True when the identity lookup failed
    """
    id: str
    name: str
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    city: Optional[str] = None
    postcode: Optional[str] = None
    organization_id: Optional[str] = None
    is_placeholder: bool = False

    @classmethod
    def placeholder(cls, site_id: str) -> "Site":
        """Identity used when the site lookup returns nothing."""
        return cls(id=site_id, name=UNKNOWN_SITE_NAME, is_placeholder=True)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Site":
        org_id = row.get("organization_id") or row.get("company_id")
        return cls(
            id=str(row["id"]),
            name=row.get("name") or UNKNOWN_SITE_NAME,
            address_line1=row.get("address_line1") or row.get("address"),
            address_line2=row.get("address_line2"),
            city=row.get("city"),
            postcode=row.get("postcode"),
            organization_id=str(org_id) if org_id else None,
        )

    @property
    def address(self) -> str:
        parts = [self.address_line1, self.address_line2, self.city, self.postcode]
        return ", ".join(p for p in parts if p)


@dataclass(frozen=True)
class SiteContext:
    """Output of context resolution: the site plus its organization, if found."""
    site: Site
    organization: Optional[Organization] = None

    @property
    def organization_id(self) -> Optional[str]:
        return self.site.organization_id


# =============================================================================
# Report Window
# =============================================================================

def _coerce_date(value: Union[str, date, None], name: str) -> date:
    if value is None or value == "":
        raise InvalidRequestError(
            message=f"Missing required parameter: {name}",
            details={"parameter": name},
        )
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        raise InvalidRequestError(
            message=f"{name} must be an ISO date (YYYY-MM-DD), got {value!r}",
            details={"parameter": name, "value": str(value)},
        )


@dataclass(frozen=True)
class ReportWindow:
    """
    Inclusive date range covered by a report.

    Invariant: start <= end. Enforced on construction so that an invalid
    window can never reach the query layer.
    """
    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise InvalidWindowError(
                message=(
                    f"Report window start {self.start.isoformat()} is after "
                    f"end {self.end.isoformat()}"
                ),
                details={"start_date": self.start.isoformat(), "end_date": self.end.isoformat()},
            )

    @classmethod
    def parse(cls, start: Union[str, date, None], end: Union[str, date, None]) -> "ReportWindow":
        """Build a window from ISO strings or dates, raising InvalidRequestError."""
        return cls(_coerce_date(start, "start_date"), _coerce_date(end, "end_date"))

    @property
    def days(self) -> int:
        """Number of calendar days covered, both ends included."""
        return (self.end - self.start).days + 1

    def contains(self, value: Union[date, datetime]) -> bool:
        day = value.date() if isinstance(value, datetime) else value
        return self.start <= day <= self.end

    def as_params(self) -> dict[str, str]:
        return {"start_date": self.start.isoformat(), "end_date": self.end.isoformat()}


# =============================================================================
# Report Request
# =============================================================================

@dataclass(frozen=True)
class ReportRequest:
    """
    Everything the pipeline needs to produce one document.

    Attributes:
        site_id: Site to report on
        window: Inclusive report period
        actor: Requesting user, if the host resolved one
        categories: Optional task template category filter
        include_missed: Show missed task occurrences in completion tables
        today: Reference date for expiry classification
    """
    site_id: str
    window: ReportWindow
    actor: Optional[Actor] = None
    categories: tuple[str, ...] = ()
    include_missed: bool = False
    today: date = field(default_factory=date.today)

    def __post_init__(self) -> None:
        if not self.site_id or not str(self.site_id).strip():
            raise InvalidRequestError(
                message="Missing required parameter: site_id",
                details={"parameter": "site_id"},
            )

    @classmethod
    def from_params(
        cls,
        site_id: Optional[str],
        start_date: Union[str, date, None],
        end_date: Union[str, date, None],
        *,
        actor: Optional[Actor] = None,
        categories: Optional[list[str]] = None,
        include_missed: bool = False,
        today: Optional[date] = None,
    ) -> "ReportRequest":
        """Validate raw endpoint parameters. Raises before any query is issued."""
        if not site_id or not str(site_id).strip():
            raise InvalidRequestError(
                message="Missing required parameter: site_id",
                details={"parameter": "site_id"},
            )
        window = ReportWindow.parse(start_date, end_date)
        cleaned = tuple(c.strip() for c in (categories or []) if c and c.strip())
        return cls(
            site_id=str(site_id).strip(),
            window=window,
            actor=actor,
            categories=cleaned,
            include_missed=include_missed,
            today=today or date.today(),
        )
