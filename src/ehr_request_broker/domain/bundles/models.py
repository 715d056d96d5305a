"""Pydantic models for FHIR-style bundles returned by the EHR middleware.

Only the envelope is modelled: a bundle must declare ``resourceType``
"Bundle" and a ``type``, and every entry must carry a resource with a
``resourceType``. Everything else is preserved untouched so that a
parsed bundle serializes back to the same content.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


class BundleEntry(BaseModel):
    """A single entry of a bundle."""

    full_url: Optional[str] = Field(default=None, alias="fullUrl")
    resource: Dict[str, Any] = Field(..., description="Clinical resource")

    model_config = {"extra": "allow", "populate_by_name": True}

    @field_validator("resource")
    @classmethod
    def _require_resource_type(cls, value: Dict[str, Any]) -> Dict[str, Any]:
        resource_type = value.get("resourceType")
        if not isinstance(resource_type, str) or not resource_type:
            raise ValueError("entry resource has no resourceType")
        return value

    @property
    def resource_type(self) -> str:
        return self.resource["resourceType"]

    @property
    def reference(self) -> Optional[str]:
        """Relative reference ``Type/id`` of the resource, if it has an id."""
        resource_id = self.resource.get("id")
        if not resource_id:
            return None
        return f"{self.resource_type}/{resource_id}"


class Bundle(BaseModel):
    """A collection of clinical-data resources."""

    resource_type: Literal["Bundle"] = Field(..., alias="resourceType")
    id: Optional[str] = None
    type: str = Field(..., min_length=1, description="Bundle type")
    entry: List[BundleEntry] = Field(default_factory=list)

    model_config = {
        "extra": "allow",
        "populate_by_name": True,
        "json_schema_extra": {
            "example": {
                "resourceType": "Bundle",
                "type": "searchset",
                "entry": [
                    {
                        "fullUrl": "urn:uuid:1",
                        "resource": {"resourceType": "Encounter", "id": "1"},
                    }
                ],
            }
        },
    }

    def resources_of_type(self, resource_type: str) -> List[Dict[str, Any]]:
        """Return the resources of the given type, in entry order."""
        return [
            e.resource for e in self.entry if e.resource_type == resource_type
        ]
