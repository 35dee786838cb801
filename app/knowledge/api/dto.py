from pydantic import BaseModel, Field
from typing import Optional

from app.knowledge.entity.knowledge import KnowledgeType


class KnowledgeCreateDTO(BaseModel):
    """DTO for adding a knowledge item"""

    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    type: KnowledgeType = KnowledgeType.NOTE


class KnowledgeUpdateDTO(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    type: Optional[KnowledgeType] = None


class InsightDTO(BaseModel):
    text: str = Field(..., min_length=1)
