from typing import Any, List

from pydantic import BaseModel, ConfigDict, Field


class EncryptedRecord(BaseModel):
    """
    A user as returned by the user service. Every value should be base64
    ciphertext; missing or non-string values are kept as they arrived and fail
    later, field by field, during decryption.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    id: Any = None
    name: Any = None
    email: Any = None
    role: Any = None

    @classmethod
    def from_payload(cls, item: Any) -> "EncryptedRecord":
        if isinstance(item, EncryptedRecord):
            return item
        if isinstance(item, dict):
            return cls.model_validate(item)
        return cls()


class PlaintextRecord(BaseModel):
    model_config = ConfigDict(frozen=True, extra="allow")

    id: str
    name: str
    email: str
    role: str


class FieldFailure(BaseModel):
    index: int = Field(..., description="Position of the record in the fetched list.")
    field: str
    error: str = Field(..., description="Name of the error class.")
    message: str


class DecryptedUsers(BaseModel):
    records: List[PlaintextRecord] = Field(default_factory=list)
    failures: List[FieldFailure] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


class NewUser(BaseModel):
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    role: str = Field(..., min_length=1)
