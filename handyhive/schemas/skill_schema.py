from pydantic import BaseModel, Field, field_validator, model_validator
from typing import List
from uuid import UUID
from datetime import datetime

MAX_SKILLS = 20


class SkillIn(BaseModel):
    skill_name: str = Field(..., min_length=2, max_length=50, examples=["plumbing"])
    experience_years: int = Field(0, ge=0, le=50)
    is_primary: bool = False

    @field_validator('skill_name')
    @classmethod
    def normalize_skill_name(cls, v: str) -> str:
        v = v.strip().lower()
        if len(v) < 2:
            raise ValueError('skill_name must be at least 2 characters')
        return v


class SkillSet(BaseModel):
    skills: List[SkillIn] = Field(..., max_length=MAX_SKILLS)

    @model_validator(mode='after')
    def one_entry_per_skill(self):
        names = [skill.skill_name for skill in self.skills]
        if len(set(names)) != len(names):
            raise ValueError('each skill can only be listed once')
        if sum(skill.is_primary for skill in self.skills) > 1:
            raise ValueError('only one skill can be primary')
        return self


class SkillOut(BaseModel):
    id: UUID
    provider_id: UUID
    skill_name: str
    experience_years: int
    is_primary: bool
    created_at: datetime

    class Config:
        from_attributes = True
