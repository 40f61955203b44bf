from pydantic import BaseModel, ConfigDict, Field


class RenderOptions(BaseModel):
    """Constants shared by the feature renderers and the placer."""

    model_config = ConfigDict(frozen=True)

    lane_width: int = Field(default=6, ge=1, description="Cells per lane")
    default_lanes: int = Field(default=2, ge=1, description="Lanes when untagged")
    sidewalk_width: int = Field(default=3, ge=1, description="Sidewalk band width")
    clearance: int = Field(default=3, ge=0, description="Air blocks cleared above roads")
    min_building_height: int = Field(default=6, ge=1, description="Minimum building height")
    story_height: int = Field(default=4, ge=1, description="Blocks per story")
    max_build_height: int = Field(default=240, description="Highest y a building may reach")
    mount_search_limit: int = Field(
        default=64, ge=1, description="Steps walked outward looking for a sign mount"
    )
    road_flush_interval: int = Field(default=100, ge=1, description="Roads per flush")
    building_flush_interval: int = Field(default=200, ge=1, description="Buildings per flush")
    sign_flush_interval: int = Field(default=100, ge=1, description="Signs per flush")
