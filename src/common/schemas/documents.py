import base64
import binascii

from pydantic import BaseModel, Field, field_validator


class DocumentUploadRequest(BaseModel):
    mime_type: str = Field(min_length=1)
    content: bytes

    @field_validator("content", mode="before")
    @classmethod
    def decode_content(cls, v):
        if isinstance(v, bytes):
            return v
        try:
            return base64.b64decode(v, validate=True)
        except (binascii.Error, TypeError) as err:
            raise ValueError("content must be base64 encoded") from err
