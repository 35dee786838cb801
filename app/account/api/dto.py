from pydantic import BaseModel, ConfigDict, Field, AliasChoices


class LoginDTO(BaseModel):
    """DTO for account login"""
    model_config = ConfigDict(populate_by_name=True)

    account_id: str = Field(..., validation_alias=AliasChoices("account_id", "accountId", "id"))
    password: str
