"""Common model types shared across requests and responses."""
from typing import Annotated
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from src.escrow.amounts import WALLET_PATTERN

HEX32_PATTERN = r"^0x[0-9a-fA-F]{64}$"


class CamelModel(BaseModel):
    """Base model exchanging camelCase JSON while using snake_case in code."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


WalletAddress = Annotated[str, Field(pattern=WALLET_PATTERN.pattern)]


class SignatureModel(BaseModel):
    v: Annotated[int, Field(ge=0, le=255)]
    r: Annotated[str, Field(pattern=HEX32_PATTERN)]
    s: Annotated[str, Field(pattern=HEX32_PATTERN)]

    @field_validator("v")
    @classmethod
    def validate_recovery_id(cls, v: int) -> int:
        if v not in (0, 1, 27, 28):
            raise ValueError("v must be 0, 1, 27 or 28")
        return v
