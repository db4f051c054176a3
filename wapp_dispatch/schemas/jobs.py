"""Job documents carried over the job channel"""

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError as PydanticValidationError,
    model_validator,
)
from typing import Any, List, Literal, Optional, Union

from ..core.exceptions import JobParseError


class MediaRef(BaseModel):
    """Media attached to a template header"""
    model_config = ConfigDict(frozen=True, extra="ignore")

    url: str = Field(..., min_length=1)
    filename: Optional[str] = None
    type: Literal["image", "document", "video"] = "image"

    @model_validator(mode="before")
    @classmethod
    def _infer_type(cls, data: Any) -> Any:
        # A filename only makes sense for documents
        if isinstance(data, dict) and not data.get("type"):
            data = {**data, "type": "document" if data.get("filename") else "image"}
        return data


def _clean(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def _clean_params(value: Any) -> Any:
    if isinstance(value, list):
        return [str(v).strip() if isinstance(v, (int, float)) else _clean(v) or "" for v in value]
    return value


class Job(BaseModel):
    """
    One outbound message instruction.

    Wire format is camelCase JSON. The keys used by older producers
    (contactId, phoneNumber, params, buttonParams, imageUrl, documentUrl,
    filename) are accepted as well.

    Exactly-one-recipient / exactly-one-payload is checked by the dispatcher,
    not here, so jobs built in code fail the same way as jobs read off the wire.
    """
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    recipient_phone: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("recipientPhone", "phoneNumber", "recipient_phone"),
        serialization_alias="recipientPhone",
    )
    contact_ref: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("contactRef", "contactId", "contact_ref"),
        serialization_alias="contactRef",
    )
    text_body: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("textBody", "text", "text_body"),
        serialization_alias="textBody",
    )
    template_name: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("templateName", "template_name"),
        serialization_alias="templateName",
    )
    template_body_params: Optional[List[str]] = Field(
        None,
        validation_alias=AliasChoices("templateBodyParams", "params", "template_body_params"),
        serialization_alias="templateBodyParams",
    )
    template_button_params: Optional[List[str]] = Field(
        None,
        validation_alias=AliasChoices("templateButtonParams", "buttonParams", "template_button_params"),
        serialization_alias="templateButtonParams",
    )
    media_ref: Optional[MediaRef] = Field(
        None,
        validation_alias=AliasChoices("mediaRef", "media_ref"),
        serialization_alias="mediaRef",
    )

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = {key: _clean(value) for key, value in data.items()}

        for key in ("templateBodyParams", "params", "templateButtonParams", "buttonParams"):
            if key in data:
                data[key] = _clean_params(data[key])

        if not data.get("mediaRef") and not data.get("media_ref"):
            if data.get("documentUrl"):
                data["mediaRef"] = {
                    "url": data["documentUrl"],
                    "filename": data.get("filename"),
                    "type": "document",
                }
            elif data.get("imageUrl"):
                data["mediaRef"] = {"url": data["imageUrl"], "type": "image"}
        return data

    @property
    def kind(self) -> Optional[str]:
        """'text', 'template', or None when the payload kind is ambiguous"""
        if self.text_body and not self.template_name:
            return "text"
        if self.template_name and not self.text_body:
            return "template"
        return None

    @classmethod
    def from_raw(cls, raw: Union[str, bytes]) -> "Job":
        """
        Parse a channel payload.

        Raises:
            JobParseError: payload is not JSON or does not match the job shape
        """
        try:
            return cls.model_validate_json(raw)
        except PydanticValidationError as e:
            raise JobParseError(
                message="Invalid job payload",
                details={"errors": [err["msg"] for err in e.errors()]},
            ) from e

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)

    def log_context(self) -> dict:
        """Fields safe to log (no message text)"""
        return {
            "contact_ref": self.contact_ref,
            "has_phone": bool(self.recipient_phone),
            "kind": self.kind,
            "template": self.template_name,
        }
