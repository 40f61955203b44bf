import os
from pathlib import Path
from typing import List

from dotenv import dotenv_values
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

from ..core.models import Anchor, GeoPoint, GridCell
from ..core.options import RenderOptions

# Load .env for local runs, without overriding variables already in the environment
BASE_DIR = Path(__file__).resolve().parent.parent.parent
env_file = BASE_DIR / ".env"


def load_env_file(path: Path):
    if not path.exists():
        return
    file_env = dotenv_values(path)
    for key, value in file_env.items():
        if key not in os.environ and value is not None:
            os.environ[key] = value


load_env_file(env_file)


class AnchorSetting(BaseModel):
    """One calibration anchor as it appears in configuration."""

    lat: float = Field(description="Anchor latitude in degrees")
    lon: float = Field(description="Anchor longitude in degrees")
    x: int = Field(description="Grid x the anchor maps to")
    z: int = Field(description="Grid z the anchor maps to")

    def to_anchor(self) -> Anchor:
        return Anchor(GeoPoint(self.lat, self.lon), GridCell(self.x, self.z))


SEATTLE_ANCHORS = [
    AnchorSetting(lat=47.68489, lon=-122.33745, x=1877, z=1412),
    AnchorSetting(lat=47.6073105, lon=-122.3420636, x=1092, z=15572),
    AnchorSetting(lat=47.6493244, lon=-122.2757343, x=9380, z=8023),
    AnchorSetting(lat=47.5859511, lon=-122.2863789, x=7917, z=19462),
    AnchorSetting(lat=47.6068780, lon=-122.2987088, x=6446, z=15665),
]


class Settings(BaseSettings):
    """Application settings pulled from environment variables."""

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Logging format (console or json)")

    # World Configuration
    world_width: int = Field(default=10240, description="World extent along x in cells")
    world_depth: int = Field(default=20480, description="World extent along z in cells")
    base_height: int = Field(default=64, description="Terrain height for in-memory worlds")

    # Calibration
    scale_correction: float = Field(
        default=1.10, description="Empirical factor applied to planar deltas"
    )
    anchors: List[AnchorSetting] = Field(
        default_factory=lambda: list(SEATTLE_ANCHORS),
        description="Calibration anchors as a JSON list",
    )

    # Rendering
    lane_width: int = Field(default=6, description="Cells per lane")
    sidewalk_width: int = Field(default=3, description="Sidewalk band width")
    clearance: int = Field(default=3, description="Air blocks cleared above roads")
    min_building_height: int = Field(default=6, description="Minimum building height")
    max_build_height: int = Field(default=240, description="Highest y a building may reach")
    mount_search_limit: int = Field(default=64, description="Sign mount search steps")

    # Flushing
    road_flush_interval: int = Field(default=100, description="Roads per flush")
    building_flush_interval: int = Field(default=200, description="Buildings per flush")
    sign_flush_interval: int = Field(default=100, description="Signs per flush")

    class Config:
        env_prefix = "VOXMAP_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    def anchor_list(self) -> List[Anchor]:
        return [a.to_anchor() for a in self.anchors]

    def render_options(self) -> RenderOptions:
        return RenderOptions(
            lane_width=self.lane_width,
            sidewalk_width=self.sidewalk_width,
            clearance=self.clearance,
            min_building_height=self.min_building_height,
            max_build_height=self.max_build_height,
            mount_search_limit=self.mount_search_limit,
            road_flush_interval=self.road_flush_interval,
            building_flush_interval=self.building_flush_interval,
            sign_flush_interval=self.sign_flush_interval,
        )


# Instantiate singleton settings object
settings = Settings()
