"""
Calculation Request Schemas

Pydantic models for the preview / create / update payloads. Both the
camelCase names used by API clients (calculationType, inputParameters...)
and snake_case names are accepted.

Pydantic errors never leave this module: parse_request() translates them
into the engine's ValidationError naming the offending fields.
"""

from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from ..errors import InvalidValueError, MissingFieldError, ValidationError


class RecordStatus(str, Enum):
    """Review status of a saved calculation. Not interpreted by the engine."""
    DRAFT = "Draft"
    UNDER_REVIEW = "Under Review"
    APPROVED = "Approved"


class _Request(BaseModel):
    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)


class PreviewRequest(_Request):
    """Compute without persisting."""
    calculation_type: str = Field(alias="calculationType", min_length=1)
    input_parameters: Dict[str, Any] = Field(alias="inputParameters")


class CreateRequest(_Request):
    """Compute and persist a new record."""
    project_id: int = Field(alias="projectId")
    calculation_type: str = Field(alias="calculationType", min_length=1)
    calculation_name: str = Field(alias="calculationName", min_length=1, max_length=255)
    input_parameters: Dict[str, Any] = Field(alias="inputParameters")
    building_id: Optional[int] = Field(default=None, alias="buildingId")
    selected_buildings: Optional[List[Any]] = Field(default=None, alias="selectedBuildings")
    status: RecordStatus = Field(default=RecordStatus.DRAFT, validate_default=True)
    remarks: Optional[str] = None
    calculated_by: Optional[str] = Field(default=None, alias="calculatedBy")
    created_by: Optional[str] = Field(default=None, alias="createdBy")


class UpdateRequest(_Request):
    """
    Partial update of an existing record.

    There is no calculation_type field: the type of a saved record is
    immutable, and unknown fields are rejected.
    """
    model_config = ConfigDict(populate_by_name=True, use_enum_values=True, extra="forbid")

    calculation_name: Optional[str] = Field(default=None, alias="calculationName", min_length=1, max_length=255)
    input_parameters: Optional[Dict[str, Any]] = Field(default=None, alias="inputParameters")
    selected_buildings: Optional[List[Any]] = Field(default=None, alias="selectedBuildings")
    building_id: Optional[int] = Field(default=None, alias="buildingId")
    status: Optional[RecordStatus] = None
    remarks: Optional[str] = None
    verified_by: Optional[str] = Field(default=None, alias="verifiedBy")
    approved_by: Optional[str] = Field(default=None, alias="approvedBy")
    updated_by: Optional[str] = Field(default=None, alias="updatedBy")
    expected_version: Optional[int] = Field(default=None, alias="expectedVersion", ge=1)

    def changes(self) -> Dict[str, Any]:
        """Fields explicitly present in the payload, minus control fields."""
        return self.model_dump(exclude_unset=True, exclude={"expected_version", "updated_by"})


RequestT = TypeVar("RequestT", bound=_Request)


def _field_name(model: Type[BaseModel], loc: str) -> str:
    for name, info in model.model_fields.items():
        if loc in (name, info.alias):
            return name
    return loc


def parse_request(model: Type[RequestT], payload: Mapping[str, Any]) -> RequestT:
    """
    Validate a request payload.

    Raises:
        MissingFieldError: required fields absent, null or blank
        ValidationError: any other schema violation
    """
    if not isinstance(payload, Mapping):
        raise InvalidValueError("payload", payload, "an object")
    try:
        return model.model_validate(dict(payload))
    except PydanticValidationError as e:
        missing: List[str] = []
        invalid: List[str] = []
        messages: List[str] = []
        for error in e.errors():
            field = _field_name(model, str(error["loc"][0])) if error["loc"] else "payload"
            value = error.get("input")
            if error["type"] == "missing" or value is None or value == "":
                if field not in missing:
                    missing.append(field)
            elif error["type"] == "extra_forbidden":
                invalid.append(field)
                messages.append(f"'{field}' cannot be changed")
            else:
                invalid.append(field)
                messages.append(f"'{field}': {error['msg']}")
        if missing:
            raise MissingFieldError(missing) from None
        raise ValidationError(f"Invalid request: {'; '.join(messages)}", invalid) from None
