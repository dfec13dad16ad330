from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from typing import Optional, Any


class AnalyzeRequest(BaseModel):
    """`contractText` and `text` are accepted as equivalent names."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    contract_text: Optional[Any] = Field(
        default=None,
        validation_alias=AliasChoices("contractText", "text", "contract_text"),
    )
    context: Optional[str] = None
