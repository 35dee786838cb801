# app/knowledge/entity/knowledge.py
import re
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.chat.entity.chat import new_id, now_ms


_LINE_BREAKS = re.compile(r"[ \t]*[\r\n]+[ \t]*")


def single_line(title: str) -> str:
    """Titles live on the export header line, so line breaks become single spaces."""
    return _LINE_BREAKS.sub(" ", title).strip()


class KnowledgeType(str, Enum):
    BOOK = "book"
    NOTE = "note"
    STRATEGY = "strategy"
    OBSERVATION = "observation"


class KnowledgeItem(BaseModel):
    """A note folded into every system instruction."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=new_id)
    title: str
    type: KnowledgeType = KnowledgeType.NOTE
    content: str
    created_at: int = Field(default_factory=now_ms, alias="createdAt")

    @field_validator("title")
    @classmethod
    def _single_line_title(cls, value: str) -> str:
        return single_line(value)


def initial_knowledge() -> list[KnowledgeItem]:
    """Sample knowledge base used when nothing is stored yet."""
    return [
        KnowledgeItem(
            id="1",
            title="The Lean Startup",
            type=KnowledgeType.BOOK,
            content=(
                "Core idea: Build-Measure-Learn. Ship an MVP (minimum viable product) fast, "
                "measure real customer behaviour and decide whether to pivot or persevere. "
                "Avoid waste by validating hypotheses before scaling."
            ),
        ),
        KnowledgeItem(
            id="2",
            title="Hiring strategy",
            type=KnowledgeType.STRATEGY,
            content=(
                "Hire slowly, fire quickly. Look for cultural fit before hard skills. "
                "A candidate's first 90 days are a trial period."
            ),
        ),
    ]
