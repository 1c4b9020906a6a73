"""State models for the price hunter pipeline.

All models serialize with camelCase keys (``priceRON``, ``sizeInch``,
``overallScore``...) and accept either camelCase or snake_case on input,
so oracle JSON and cached payloads validate the same way.
"""

from datetime import datetime
from enum import Enum
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base model with camelCase wire names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        """Dump to the JSON-compatible camelCase payload."""
        return self.model_dump(mode="json", by_alias=True)


class SourceKind(str, Enum):
    """Kind of surface a listing fragment was observed on."""

    PRICE_SITE = "priceSite"
    RESALE_SITE = "resaleSite"
    DISCOVERY = "discovery"
    USER_TARGET = "userTarget"


class Category(str, Enum):
    """Product category inferred from the query."""

    TV = "tv"
    LAPTOP = "laptop"
    PHONE = "phone"
    AUDIO = "audio"
    ACCESSORY = "accessory"
    OTHER = "other"


class Condition(str, Enum):
    """Item condition."""

    NEW = "new"
    USED = "used"
    RESEALED = "resealed"
    UNKNOWN = "unknown"


class PanelType(str, Enum):
    """Display panel technology."""

    OLED = "oled"
    QLED = "qled"
    LCD = "lcd"
    UNKNOWN = "unknown"


ALL_CONDITIONS = [Condition.NEW, Condition.RESEALED, Condition.USED]

Negotiable = Union[bool, Literal["unknown"]]


def coerce_enum(enum_cls, value, default):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        return default


def string_list(value) -> list[str]:
    """Oracle list field as strings; scalars of any other type count as empty."""
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, (list, tuple)):
        return []
    return [str(x) for x in value if x]


class ListingFragment(ApiModel):
    """One observed offer from one source."""

    title: Optional[str] = None
    link: str
    price_ron: Optional[float] = Field(default=None, alias="priceRON")
    snippet: Optional[str] = None
    raw_text: Optional[str] = None
    source: SourceKind

    @field_validator("price_ron", mode="before")
    @classmethod
    def _positive_price(cls, v):
        if v is None or isinstance(v, bool):
            return None
        try:
            price = float(v)
        except (TypeError, ValueError):
            return None
        return price if price > 0 else None

    @property
    def has_text(self) -> bool:
        """Whether any descriptive text field is non-empty."""
        return any((self.title, self.snippet, self.raw_text))

    def text_blob(self) -> str:
        """Lowercased title + rawText + snippet used by keyword filters."""
        return f"{self.title or ''} {self.raw_text or ''} {self.snippet or ''}".lower()


class Candidate(ListingFragment):
    """A listing fragment merged with enrichment facts and scores."""

    condition: Condition = Condition.UNKNOWN
    negotiable: Negotiable = "unknown"
    defects: list[str] = Field(default_factory=list)
    size_inch: Optional[float] = None
    panel_type: PanelType = PanelType.UNKNOWN
    notes: Optional[str] = None

    model_code: Optional[str] = None
    product_key: Optional[str] = None
    canonical: Optional[str] = None
    differences: list[str] = Field(default_factory=list)
    pros: list[str] = Field(default_factory=list)
    cons: list[str] = Field(default_factory=list)

    overall_score: Optional[float] = None
    value_score: Optional[float] = None
    hard_fit: float = 0.0

    @field_validator("condition", mode="before")
    @classmethod
    def _condition(cls, v):
        return coerce_enum(Condition, v, Condition.UNKNOWN)

    @field_validator("panel_type", mode="before")
    @classmethod
    def _panel(cls, v):
        return coerce_enum(PanelType, v, PanelType.UNKNOWN)

    @field_validator("negotiable", mode="before")
    @classmethod
    def _negotiable(cls, v):
        return v if isinstance(v, bool) else "unknown"

    @field_validator("defects", "differences", "pros", "cons", mode="before")
    @classmethod
    def _lists(cls, v):
        return string_list(v)

    @classmethod
    def from_fragment(cls, fragment: ListingFragment) -> "Candidate":
        """Promote a fragment to a candidate with default enrichment."""
        return cls.model_validate(fragment.model_dump())

    def best_identifier(self) -> str:
        """modelCode > productKey > canonical > title, first non-empty."""
        for value in (self.model_code, self.product_key, self.canonical, self.title):
            if value and value.strip():
                return value
        return ""


class ListingFacts(ApiModel):
    """Per-link facts returned by the fact oracle."""

    link: str
    condition: Condition = Condition.UNKNOWN
    negotiable: Negotiable = "unknown"
    defects: list[str] = Field(default_factory=list)
    size_inch: Optional[float] = None
    notes: Optional[str] = None

    @field_validator("condition", mode="before")
    @classmethod
    def _condition(cls, v):
        return coerce_enum(Condition, v, Condition.UNKNOWN)

    @field_validator("negotiable", mode="before")
    @classmethod
    def _negotiable(cls, v):
        return v if isinstance(v, bool) else "unknown"

    @field_validator("defects", mode="before")
    @classmethod
    def _defects(cls, v):
        return string_list(v)


class Intent(ApiModel):
    """Normalized interpretation of the user query. Immutable once built."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    category: Category = Category.OTHER
    budget_lei: Optional[float] = None
    size_min: Optional[float] = None
    size_max: Optional[float] = None
    condition_ok: list[Condition] = Field(default_factory=lambda: list(ALL_CONDITIONS))
    must_have: list[str] = Field(default_factory=list)
    must_exclude: list[str] = Field(default_factory=list)
    search_query: str
    expanded_queries: list[str] = Field(default_factory=list)

    @field_validator("category", mode="before")
    @classmethod
    def _category(cls, v):
        return coerce_enum(Category, v, Category.OTHER)

    @field_validator("condition_ok", mode="before")
    @classmethod
    def _conditions(cls, v):
        if not v:
            return list(ALL_CONDITIONS)
        if isinstance(v, str):
            v = [v]
        if not isinstance(v, (list, tuple)):
            return list(ALL_CONDITIONS)
        parsed = {coerce_enum(Condition, x, Condition.UNKNOWN) for x in v}
        parsed.discard(Condition.UNKNOWN)
        if not parsed:
            return list(ALL_CONDITIONS)
        # Set semantics: keep a canonical order
        return [c for c in ALL_CONDITIONS if c in parsed]

    @field_validator("must_have", "must_exclude", "expanded_queries", mode="before")
    @classmethod
    def _keywords(cls, v):
        return [x.strip() for x in string_list(v) if x.strip()]

    def wants_oled(self) -> bool:
        """Whether any must-have entry mentions OLED."""
        return any("oled" in x.lower() for x in self.must_have)


class SearchRequest(ApiModel):
    """Raw request parameters."""

    q: str
    budget: Optional[float] = None
    size_min: Optional[float] = None
    size_max: Optional[float] = None
    condition: str = "any"
    targets: list[str] = Field(default_factory=list)


class SourceStatus(ApiModel):
    """Per-adapter status in the result payload."""

    ok: bool
    count: int = 0
    error: Optional[str] = None
    query_url: Optional[str] = None


class ReviewSource(ApiModel):
    """One external reference found by web search."""

    title: Optional[str] = None
    link: Optional[str] = None
    snippet: Optional[str] = None


class CandidateReviews(ApiModel):
    """References collected for one ranked candidate."""

    candidate_link: str
    model: str
    sources: list[ReviewSource] = Field(default_factory=list)


class ReviewSet(ApiModel):
    """Review lookup output."""

    items: list[CandidateReviews] = Field(default_factory=list)
    error: Optional[str] = None


class DebugStep(ApiModel):
    """One pipeline step outcome."""

    name: str
    ok: bool
    count: int = 0
    error: Optional[str] = None


class DebugInfo(ApiModel):
    """Execution trace for a pipeline run."""

    started_at: datetime = Field(default_factory=datetime.now)
    input: SearchRequest
    steps: list[DebugStep] = Field(default_factory=list)

    def record(
        self, name: str, ok: bool, count: int = 0, error: Optional[str] = None
    ) -> None:
        """Append a step outcome."""
        self.steps.append(DebugStep(name=name, ok=ok, count=count, error=error))


class CacheInfo(ApiModel):
    """Cache status attached to a served result."""

    hit: bool
    key: str
    age_seconds: Optional[int] = None


class SearchResult(ApiModel):
    """Externally visible search payload."""

    q: str
    intent: Intent
    top: list[Candidate] = Field(default_factory=list)
    reviews: ReviewSet = Field(default_factory=ReviewSet)
    recommendation: Optional[str] = None
    sources: dict[str, SourceStatus] = Field(default_factory=dict)
    debug: Optional[DebugInfo] = None
    ts: datetime = Field(default_factory=datetime.now)
    build: str = "price-hunter-auto-v1"
    cache: Optional[CacheInfo] = None


class CacheEntry(ApiModel):
    """A stored search result with its write timestamp."""

    key: str
    stored_at_epoch_ms: int
    result: SearchResult
