"""
Generation parameters.

All terrain parameters are required; only the seed, the generation mode and
the border margin switch have defaults. The sea level has no built-in value.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from ..core.errors import InvalidConfiguration
from ..core.heightmap_generator import MAX_SHARPNESS, GenerationMode


class GenerationConfig(BaseModel):
    """Parameters for one map generation."""

    model_config = ConfigDict(frozen=True)

    width: float = Field(gt=0, description="Domain width")
    height: float = Field(gt=0, description="Domain height")
    spacing: float = Field(gt=0, description="Minimum distance between cell seeds")
    sea_level: float = Field(gt=0, lt=1, description="Land/water height threshold")
    peak_height: float = Field(gt=0, le=1, description="Height of the first blob")
    decay: float = Field(gt=0, le=1, description="Height factor applied per ring of cells")
    sharpness: float = Field(
        ge=0, le=MAX_SHARPNESS, description="Random height modulation strength"
    )
    blob_count: int = Field(gt=0, description="Number of blobs to plant")
    mode: GenerationMode = Field(
        default=GenerationMode.SPREAD,
        description="Clustered blobs (spread) or a central island with hills (random_map)",
    )
    seed: Optional[str] = Field(default=None, description="Random seed for reproducible maps")
    apply_margin: bool = Field(
        default=True,
        description="Keep cell seeds out of the border band blobs cannot cross",
    )

    @model_validator(mode="after")
    def _check_margin_decay(self):
        if self.apply_margin and self.decay >= 1:
            raise ValueError("decay must be below 1 when apply_margin is set")
        return self

    @classmethod
    def create(cls, **values) -> "GenerationConfig":
        """Build a config, reporting validation problems as InvalidConfiguration."""
        try:
            return cls(**values)
        except ValidationError as e:
            raise InvalidConfiguration(str(e)) from e
