"""
Input and AI-output validation schemas using Pydantic.
"""
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

WorkoutCategoryName = Literal["Strength Training", "Cardiovascular", "Flexibility & Mobility", "HIIT"]
DifficultyName = Literal["Beginner", "Intermediate", "Advanced"]
DietCategoryName = Literal["Weight Loss", "Muscle Gain", "Balanced Diet", "Vegan", "Ketogenic"]
PlanTypeName = Literal["workout", "diet"]


# === Generative service output ===
class ExerciseSchema(BaseModel):
    """One exercise of a generated workout."""
    name: str = Field(..., min_length=1)
    details: str = ""

    @field_validator('name', 'details', mode='before')
    @classmethod
    def strip_whitespace(cls, v):
        return v.strip() if isinstance(v, str) else v


class WorkoutCandidateSchema(BaseModel):
    """Fixed output schema of workout generation."""
    planName: str = Field(..., min_length=1)
    planDescription: str
    category: WorkoutCategoryName
    difficulty: DifficultyName
    duration: str
    exercises: List[ExerciseSchema] = Field(..., min_length=1)

    @field_validator('planName', 'planDescription', 'duration', mode='before')
    @classmethod
    def strip_whitespace(cls, v):
        return v.strip() if isinstance(v, str) else v


class DietCandidateSchema(BaseModel):
    """Fixed output schema of diet generation; instructions are one meal per line."""
    name: str = Field(..., min_length=1)
    description: str
    category: DietCategoryName
    instructions: str
    caloriesPerDay: Optional[str] = None
    protein: Optional[str] = None
    carbs: Optional[str] = None
    fat: Optional[str] = None

    @field_validator('name', 'description', mode='before')
    @classmethod
    def strip_whitespace(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator('instructions')
    @classmethod
    def validate_instructions(cls, v):
        """Ensure at least one non-empty line."""
        if not any(line.strip() for line in v.split("\n")):
            raise ValueError('Diet plan must contain at least one instruction line')
        return v


class WorkoutSuggestionSchema(BaseModel):
    """A whole workout plan as returned by plan-type detection and suggestions."""
    name: str = Field(..., min_length=1)
    description: str = ""
    category: WorkoutCategoryName
    instructions: str
    duration: Optional[str] = None
    difficulty: Optional[DifficultyName] = None

    @field_validator('name', 'description', mode='before')
    @classmethod
    def strip_whitespace(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator('instructions')
    @classmethod
    def validate_instructions(cls, v):
        if not any(line.strip() for line in v.split("\n")):
            raise ValueError('Workout plan must contain at least one instruction line')
        return v


class PlanTypeOutputSchema(BaseModel):
    """Single plan whose type (workout or diet) the service picked from the prompt."""
    planType: PlanTypeName
    workout: Optional[WorkoutSuggestionSchema] = None
    diet: Optional[DietCandidateSchema] = None

    @model_validator(mode='after')
    def check_plan_present(self):
        if getattr(self, self.planType) is None:
            raise ValueError(f'planType is {self.planType!r} but no {self.planType} plan was given')
        return self


class SuggestionsOutputSchema(BaseModel):
    """Several whole plans of one detected type."""
    planType: PlanTypeName
    workouts: Optional[List[WorkoutSuggestionSchema]] = None
    diets: Optional[List[DietCandidateSchema]] = None

    @model_validator(mode='after')
    def check_plans_present(self):
        if not self.plans():
            raise ValueError(f'planType is {self.planType!r} but no {self.planType} plans were given')
        return self

    def plans(self):
        return (self.workouts if self.planType == "workout" else self.diets) or []



# === HTTP inputs ===
class PlanInput(BaseModel):
    """Schema for a manually submitted plan (workout or diet variant fields)."""
    model_config = ConfigDict(extra='forbid')

    name: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    category: str = Field(..., min_length=1)
    instructions: List[str] = Field(..., min_length=1)
    mediaUrl: Optional[str] = None
    duration: Optional[str] = None
    difficulty: Optional[DifficultyName] = None
    caloriesPerDay: Optional[str] = None
    protein: Optional[str] = None
    carbs: Optional[str] = None
    fat: Optional[str] = None

    @field_validator('name', 'category')
    @classmethod
    def strip_whitespace(cls, v):
        """Remove leading/trailing whitespace."""
        v = v.strip()
        if not v:
            raise ValueError('Value cannot be empty')
        return v

    @field_validator('instructions')
    @classmethod
    def validate_instructions(cls, v):
        """Filter out empty steps."""
        steps = [step.strip() for step in v if step and step.strip()]
        if not steps:
            raise ValueError('Plan must have at least one instruction')
        return steps


class GenerateInput(BaseModel):
    """Schema for a generation request; follow_up sends the editor history as context."""
    prompt: str
    follow_up: bool = False


class PromptInput(BaseModel):
    """Schema for a one-shot request where the service picks the plan type."""
    prompt: str


class LoginInput(BaseModel):
    """Schema for the identity supplied by the identity provider."""
    id: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3, max_length=320)
    name: Optional[str] = None

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        v = v.strip()
        if '@' not in v:
            raise ValueError('Invalid email address')
        return v
