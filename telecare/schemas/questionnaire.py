from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class Question(BaseModel):
    id: str
    type: Literal["multiple_choice", "scale", "text", "boolean"]
    question: str
    options: Optional[List[str]] = None
    required: bool = False


class Questionnaire(BaseModel):
    id: str
    title: str
    description: str
    questions: List[Question] = Field(default_factory=list)
