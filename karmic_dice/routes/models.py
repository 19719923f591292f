"""Pydantic request/response models for API endpoints."""

from pydantic import BaseModel, Field

from karmic_dice.models import AveragesReport, FaceResult, KarmicChange


class RollBody(BaseModel):
    dice: dict[str, int] = Field(default_factory=dict)
    actor_id: str | None = None


class RolledFace(BaseModel):
    die_type: str
    original: int
    final: int
    bias: float
    adjusted: bool

    @classmethod
    def from_result(cls, result: FaceResult) -> "RolledFace":
        return cls(
            die_type=result.denomination.value,
            original=result.original,
            final=result.final,
            bias=result.bias,
            adjusted=result.adjusted,
        )


class RollResponse(BaseModel):
    user_id: str
    faces: list[RolledFace]
    changes: list[KarmicChange]
    summary_html: str


class UserAverages(BaseModel):
    user_id: str
    averages: AveragesReport
