"""Pydantic schema for configuration validation."""

import hashlib
import json
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class Ledger(BaseModel):
    """Ledger arithmetic settings."""
    precision: int = Field(default=18, ge=0, le=60, description="Fractional digits kept after each division")
    ape_window_blocks: int = Field(
        default=100, ge=0,
        description="Blocks after publication during which a first signal counts as an early (ape) signal"
    )


class ProtocolSettings(BaseModel):
    """Protocol the badge tracks belong to."""
    name: str = Field(min_length=1, description="Protocol name")


class Track(BaseModel):
    """Badge track (category)."""
    name: str = Field(min_length=1, description="Track name")
    protocol_role: str = Field(min_length=1, description="Protocol role the track rewards")


class Badge(BaseModel):
    """Badge definition and the metric threshold that earns it."""
    name: str = Field(min_length=1, description="Unique badge name")
    description: str = Field(default="", description="How the badge is earned")
    track: str = Field(description="Track the badge belongs to")
    voting_weight: int = Field(default=0, ge=0, description="Voting power granted to the winner")
    image: str = Field(default="", description="Image URI")
    metric: Optional[str] = Field(default=None, description="Progress metric that earns the badge")
    threshold: Optional[int] = Field(default=None, ge=1, description="Metric value at which the badge is earned")

    @model_validator(mode="after")
    def validate_metric_threshold(self):
        """metric and threshold go together."""
        if (self.metric is None) != (self.threshold is None):
            raise ValueError(f"Badge '{self.name}': metric and threshold must be set together")
        return self


class Config(BaseModel):
    """Complete configuration for the ledger."""
    ledger: Ledger = Field(default_factory=Ledger)
    protocol: ProtocolSettings
    tracks: List[Track] = Field(default_factory=list)
    badges: List[Badge] = Field(default_factory=list)

    @field_validator("badges")
    @classmethod
    def validate_unique_badges(cls, v):
        """Badge names identify definitions and must be unique."""
        names = [badge.name for badge in v]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate badge names: {', '.join(duplicates)}")
        return v

    @model_validator(mode="after")
    def validate_tracks_exist(self):
        """Every badge must reference a configured track."""
        known = {track.name for track in self.tracks}
        unknown = sorted({badge.track for badge in self.badges if badge.track not in known})
        if unknown:
            raise ValueError(f"Badges reference unknown tracks: {', '.join(unknown)}")
        return self

    def badges_for_metric(self, metric: str) -> List[Badge]:
        """Threshold badges bound to a metric, lowest threshold first."""
        return sorted(
            (badge for badge in self.badges if badge.metric == metric),
            key=lambda badge: badge.threshold,
        )

    def compute_hash(self) -> str:
        """Compute config hash for reproducibility."""
        config_dict = self.model_dump()
        config_str = json.dumps(config_dict, sort_keys=True)
        return hashlib.sha256(config_str.encode()).hexdigest()[:16]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Config':
        """Create config from dictionary."""
        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return self.model_dump()
