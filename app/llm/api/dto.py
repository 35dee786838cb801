# app/llm/api/dto.py
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional


class ChatProxyResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: str
    used_model: str = Field(serialization_alias="usedModel")
    used_provider: str = Field(serialization_alias="usedProvider")


class ProviderInfo(BaseModel):
    name: str
    latency_ms: Optional[int]
    status: str


class ProviderListResponse(BaseModel):
    providers: List[ProviderInfo]
