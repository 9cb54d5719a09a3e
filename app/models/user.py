"""User and shared document model helpers."""
from pydantic import BaseModel, EmailStr, Field, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Optional, Literal
from datetime import datetime
from bson import ObjectId


class PyObjectId(ObjectId):
    """Custom ObjectId type for Pydantic v2."""
    
    @classmethod
    def __get_pydantic_core_schema__(cls, source_type, handler):
        from pydantic_core import core_schema
        return core_schema.union_schema(
            [
                core_schema.is_instance_schema(ObjectId),
                core_schema.chain_schema([
                    core_schema.str_schema(),
                    core_schema.no_info_plain_validator_function(cls.validate),
                ])
            ],
            serialization=core_schema.plain_serializer_function_ser_schema(
                str, when_used="json"
            ),
        )
    
    @classmethod
    def validate(cls, v):
        if isinstance(v, ObjectId):
            return v
        if isinstance(v, str) and ObjectId.is_valid(v):
            return ObjectId(v)
        raise ValueError("Invalid ObjectId")


def to_object_id(value) -> Optional[ObjectId]:
    """Parse a path/body identifier, returning None when it is not a valid ObjectId."""
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


# Shared by every stored document: camelCase on the wire and in MongoDB.
DOCUMENT_CONFIG = ConfigDict(
    populate_by_name=True,
    arbitrary_types_allowed=True,
    alias_generator=to_camel,
)


class UserModel(BaseModel):
    """Reviewer or candidate account, owned by the auth service."""
    
    model_config = ConfigDict(**DOCUMENT_CONFIG, extra="ignore")
    
    id: Optional[PyObjectId] = Field(default=None, alias="_id")
    name: str = ""
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    role: Literal["hr", "candidate"] = "candidate"
    company: str = ""
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)
