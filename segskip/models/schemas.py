from enum import Enum, IntEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Platform(str, Enum):
    YOUTUBE = "youtube"
    BILIBILI = "bilibili"


class Category(str, Enum):
    # Declaration order doubles as priority for equal-length overlaps
    SPONSOR = "sponsor"
    SELF_PROMO = "selfpromo"
    INTERACTION = "interaction"
    INTRO = "intro"
    OUTRO = "outro"
    PREVIEW = "preview"
    FILLER = "filler"
    MUSIC_OFFTOPIC = "music_offtopic"
    EXCLUSIVE_ACCESS = "exclusive_access"
    MUTE = "mute"
    NATIVE_AD = "native_ad"

    @property
    def display_name(self) -> str:
        return CATEGORY_NAMES[self]

    @property
    def color(self) -> str:
        return CATEGORY_COLORS[self]

    @property
    def priority(self) -> int:
        return list(Category).index(self)


CATEGORY_NAMES = {
    Category.SPONSOR: "Sponsor",
    Category.SELF_PROMO: "Self-promotion",
    Category.INTERACTION: "Interaction reminder",
    Category.INTRO: "Intro",
    Category.OUTRO: "Outro",
    Category.PREVIEW: "Preview",
    Category.FILLER: "Filler",
    Category.MUSIC_OFFTOPIC: "Non-music section",
    Category.EXCLUSIVE_ACCESS: "Exclusive access",
    Category.MUTE: "Muted section",
    Category.NATIVE_AD: "Ad",
}

CATEGORY_COLORS = {
    Category.SPONSOR: "#00d400",
    Category.SELF_PROMO: "#ffff00",
    Category.INTERACTION: "#cc00ff",
    Category.INTRO: "#00ffff",
    Category.OUTRO: "#0202ed",
    Category.PREVIEW: "#008fd6",
    Category.FILLER: "#7300ff",
    Category.MUSIC_OFFTOPIC: "#ff9900",
    Category.EXCLUSIVE_ACCESS: "#008a5c",
    Category.MUTE: "#b54d4b",
    Category.NATIVE_AD: "#ffcc00",
}

# Categories requested from the remote service when the caller has no filter
DEFAULT_FETCH_CATEGORIES = [
    Category.SPONSOR,
    Category.SELF_PROMO,
    Category.INTERACTION,
    Category.INTRO,
    Category.OUTRO,
]


class ActionType(str, Enum):
    SKIP = "skip"
    MUTE = "mute"


class VoteType(IntEnum):
    DOWNVOTE = 0
    UPVOTE = 1
    UNDO = 20


class Segment(BaseModel):
    """A time range of skippable content, in seconds."""

    model_config = ConfigDict(frozen=True)

    id: str
    start: float = Field(ge=0)
    end: float = Field(ge=0)
    category: Category
    action_type: ActionType = ActionType.SKIP
    is_volatile: bool = False  # Natively detected, never cached
    votes: int = 0
    locked: bool = False
    description: str = ""
    video_duration: float | None = None

    @model_validator(mode="after")
    def _check_range(self) -> "Segment":
        if self.start >= self.end:
            raise ValueError(f"segment start {self.start} must be before end {self.end}")
        return self

    @property
    def duration(self) -> float:
        return self.end - self.start

    def contains(self, time: float) -> bool:
        return self.start <= time < self.end


class RemoteSegment(BaseModel):
    """Segment as served by the SponsorBlock API."""

    UUID: str
    segment: list[float] = Field(min_length=2, max_length=2)
    category: Category
    actionType: ActionType = ActionType.SKIP
    votes: int = 0
    locked: int = 0
    description: str = ""
    videoDuration: float | None = None

    @field_validator("actionType", mode="before")
    @classmethod
    def _unknown_action_is_skip(cls, value):
        # The service also knows "full" and "poi"; those are treated as skips
        if value not in ("skip", "mute"):
            return "skip"
        return value

    def to_segment(self) -> Segment:
        return Segment(
            id=self.UUID,
            start=self.segment[0],
            end=self.segment[1],
            category=self.category,
            action_type=self.actionType,
            votes=self.votes,
            locked=bool(self.locked),
            description=self.description,
            video_duration=self.videoDuration or None,
        )


class NativeAdMarker(BaseModel):
    """Ad range read from the host player's own progress bar."""

    model_config = ConfigDict(frozen=True)

    start: float
    end: float
    kind: str = "native_ad"


class ProgressMarker(BaseModel):
    segment_id: str
    category: Category
    left: float  # Percent of content duration
    width: float  # Percent of content duration
    color: str
    label: str


class MarkerStyle(BaseModel):
    container_id: str = "segskip-markers"
    class_name: str = "segskip-marker"
    opacity: float = 0.7
    default_color: str = "#ff0000"


class NotificationOptions(BaseModel):
    kind: str = "info"  # "info", "success", "warning", "error"
    duration: float = 3.0  # Seconds before the host dismisses it


class BrandingInfo(BaseModel):
    title: str | None = None
    thumbnail_time: float | None = None
    random_time: float | None = None
    video_duration: float | None = None


class SkipOptions(BaseModel):
    """User-facing behaviour switches for the decision engine."""

    auto_skip: bool = True
    skip_categories: set[Category] = {
        Category.SPONSOR,
        Category.SELF_PROMO,
        Category.NATIVE_AD,
    }
    show_notifications: bool = True
    show_progress_markers: bool = True
    detect_native_ads: bool = True
    skip_delay: float = Field(default=0.0, ge=0)
    mute_instead_of_skip: bool = False


class SegmentListResponse(BaseModel):
    platform: Platform
    video_id: str
    segments: list[Segment]


class SubmitSegmentRequest(BaseModel):
    start: float = Field(ge=0)
    end: float = Field(gt=0)
    category: Category = Category.SPONSOR

    @model_validator(mode="after")
    def _check_range(self) -> "SubmitSegmentRequest":
        if self.start >= self.end:
            raise ValueError("start must be before end")
        return self


class VoteRequest(BaseModel):
    segment_id: str
    vote_type: VoteType = VoteType.UPVOTE
    video_id: str | None = None


class ActionResponse(BaseModel):
    success: bool


class ErrorResponse(BaseModel):
    error: str
    code: str  # "NOT_FOUND", "SUBMISSION_FAILED", "INVALID_OPTION", etc.
    retry_after: int | None = None  # Seconds to wait before retry


class HealthResponse(BaseModel):
    status: str
    version: str
    cached_entries: int
