"""Typed dataclasses passed between the suggestion engine stages.

None of these are ORM objects: the company provider snapshots rows into
``CompanyRecord`` so scoring never touches the database session.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from flowmatch.domain.enums import FlowKind, MatchKind, SuggestionStatus


# ---------------------------------------------------------------------------
# Raw company snapshots (provider output)
# ---------------------------------------------------------------------------

@dataclass
class RawResource:
    """One output or input row as stored by the directory service."""
    id: str
    name: str | None
    category: str | None = None
    unit_measure: str | None = None
    family_name: str | None = None
    is_waste: bool = False


@dataclass
class CompanyRecord:
    """Detached snapshot of a company and its declared flows."""
    id: str
    name: str
    owner_id: str | None = None
    sector: str | None = None
    address: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    validation_status: str | None = None
    outputs: list[RawResource] = field(default_factory=list)
    inputs: list[RawResource] = field(default_factory=list)
    type_names: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Normalized matching inputs
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ResourceDescriptor:
    """A normalized, comparable material flow."""
    id: str
    name: str
    category: str | None
    family: str | None
    unit: str | None
    kind: FlowKind
    company_id: str


@dataclass
class CompanyContext:
    """A company's aggregated view used for one scoring pass."""
    company_id: str
    name: str
    sector: str | None = None
    address: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    productions: list[ResourceDescriptor] = field(default_factory=list)
    wastes: list[ResourceDescriptor] = field(default_factory=list)
    needs: list[ResourceDescriptor] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    type_set: frozenset[str] = frozenset()

    @property
    def offers(self) -> list[ResourceDescriptor]:
        """Productions followed by wastes."""
        return [*self.productions, *self.wastes]

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


@dataclass(frozen=True)
class Match:
    """A discovered link between an offered resource and a needed one."""
    offer: ResourceDescriptor
    need: ResourceDescriptor
    strength: float
    kind: MatchKind
    unit_match: bool


# ---------------------------------------------------------------------------
# Scoring outputs
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Classification:
    label: str
    badge: str
    color: str


@dataclass
class ScoreBreakdown:
    """Per-component points, each bounded by its weight."""
    resource: int = 0
    proximity: int = 0
    quantity: int = 0
    sector: int = 0

    @property
    def total(self) -> int:
        return self.resource + self.proximity + self.quantity + self.sector

    def to_dict(self) -> dict:
        return {
            "resource": self.resource,
            "proximity": self.proximity,
            "quantity": self.quantity,
            "sector": self.sector,
        }


@dataclass
class CompatibilityScore:
    """Composite compatibility of one company pair."""
    score: int
    breakdown: ScoreBreakdown
    classification: Classification
    distance_km: float | None = None
    resource_match_detail: int = 0
    quantity_matches: int = 0
    shared_sector_types: list[str] = field(default_factory=list)

    @property
    def label(self) -> str:
        return self.classification.label

    @property
    def badge(self) -> str:
        return self.classification.badge

    @property
    def color(self) -> str:
        return self.classification.color


@dataclass(frozen=True)
class Reason:
    """One human-readable justification for a suggestion."""
    type: str
    message: str

    def to_dict(self) -> dict:
        return {"type": self.type, "message": self.message}


# ---------------------------------------------------------------------------
# Interaction metadata
# ---------------------------------------------------------------------------

@dataclass
class InteractionMetadata:
    """Fixed-shape metadata stored on a suggestion interaction.

    ``components``, ``raw_scores`` and ``computed_at`` are owned by the
    engine and replaced on every recomputation. ``note`` and
    ``note_updated_at`` are owned by the user.
    """
    components: dict | None = None
    raw_scores: dict | None = None
    computed_at: str | None = None
    note: str | None = None
    note_updated_at: str | None = None

    @classmethod
    def from_json(cls, data: dict | None) -> InteractionMetadata:
        if not isinstance(data, dict):
            return cls()
        return cls(
            components=data.get("components"),
            raw_scores=data.get("raw_scores"),
            computed_at=data.get("computed_at"),
            note=data.get("note"),
            note_updated_at=data.get("note_updated_at"),
        )

    def to_json(self) -> dict:
        data = {
            "components": self.components,
            "raw_scores": self.raw_scores,
            "computed_at": self.computed_at,
            "note": self.note,
            "note_updated_at": self.note_updated_at,
        }
        return {k: v for k, v in data.items() if v is not None}


@dataclass
class InteractionSnapshot:
    """Detached copy of a ``SuggestionInteraction`` row."""
    id: str
    status: str
    meta: dict | None = None
    last_score: int | None = None
    distance_km: float | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row) -> InteractionSnapshot:
        return cls(
            id=row.id,
            status=row.status,
            meta=dict(row.meta) if isinstance(row.meta, dict) else None,
            last_score=row.last_score,
            distance_km=row.distance_km,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


@dataclass
class StatusChangeResult:
    """Confirmation returned for a save/ignore/contact action."""
    status: SuggestionStatus
    interaction_id: str
    updated_at: datetime | None
    message: str


# ---------------------------------------------------------------------------
# Suggestions
# ---------------------------------------------------------------------------

@dataclass
class CompanySummary:
    id: str
    name: str
    sector: str | None = None
    address: str | None = None
    latitude: float | None = None
    longitude: float | None = None


@dataclass
class SuggestionMeta:
    is_fresh: bool
    created_at: datetime
    updated_at: datetime


@dataclass
class Suggestion:
    """One candidate company as surfaced to the requesting user."""
    company: CompanySummary
    status: SuggestionStatus
    interaction_id: str | None
    distance_km: float | None
    compatibility: CompatibilityScore
    tags: list[str]
    reasons: list[Reason]
    forward_matches: list[Match] = field(default_factory=list)
    backward_matches: list[Match] = field(default_factory=list)
    meta: SuggestionMeta | None = None

    @property
    def score(self) -> int:
        return self.compatibility.score


@dataclass
class SuggestionComputation:
    """Result of one orchestrator run."""
    company: CompanyContext
    suggestions: list[Suggestion]
    scanned: int = 0
    skipped_no_match: int = 0
    skipped_low_score: int = 0
    failed: int = 0
