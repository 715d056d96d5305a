"""Provenance annotation of bundle contents.

Before a final result is stored, every clinical resource of the bundle is
paired with a Provenance resource recording who produced it and when. The
Provenance resources are appended to the bundle as additional entries.
"""

import logging
import uuid
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from .models import Bundle, BundleEntry

logger = logging.getLogger(__name__)

PARTICIPANT_TYPE_SYSTEM = (
    "http://terminology.hl7.org/CodeSystem/provenance-participant-type"
)


class ProvenanceBuilder:
    """Adds Provenance resources to the items of a bundle.

    Parameters
    ----------
    organization_name : str
        Display name of the healthcare organization releasing the data
    organization_id : Optional[str], default=None
        Identifier of the organization, recorded on the agent
    clock : Callable[[], datetime], default=datetime.now
        Source of the ``recorded`` timestamp

    Notes
    -----
    The input bundle is never modified; ``annotate`` works on a deep copy.
    Resources without an id receive a generated one so that the Provenance
    target can reference them. Existing Provenance resources are not
    annotated again.

    Examples
    --------
    >>> builder = ProvenanceBuilder("General Hospital")
    >>> annotated = builder.annotate(bundle)
    >>> len(annotated.resources_of_type("Provenance"))
    3
    """

    def __init__(
        self,
        organization_name: str,
        organization_id: Optional[str] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.organization_name = organization_name
        self.organization_id = organization_id
        self._clock = clock

    def annotate(self, bundle: Bundle) -> Bundle:
        """Return a copy of ``bundle`` with one Provenance per resource."""
        annotated = bundle.model_copy(deep=True)
        recorded = self._clock().isoformat()

        provenance_entries = []
        for entry in annotated.entry:
            if entry.resource_type == "Provenance":
                continue
            if not entry.resource.get("id"):
                entry.resource["id"] = uuid.uuid4().hex
            provenance_entries.append(
                self._build_entry(entry.reference, recorded)
            )

        annotated.entry.extend(provenance_entries)
        logger.debug(
            f"Added {len(provenance_entries)} provenance resources to bundle"
        )
        return annotated

    def _build_entry(self, target: str, recorded: str) -> BundleEntry:
        provenance_id = uuid.uuid4().hex
        return BundleEntry(
            fullUrl=f"urn:uuid:{provenance_id}",
            resource={
                "resourceType": "Provenance",
                "id": provenance_id,
                "target": [{"reference": target}],
                "recorded": recorded,
                "agent": [self._build_agent()],
            },
        )

    def _build_agent(self) -> Dict[str, Any]:
        who: Dict[str, Any] = {"display": self.organization_name}
        if self.organization_id:
            who["identifier"] = {"value": self.organization_id}
        return {
            "type": {
                "coding": [
                    {"system": PARTICIPANT_TYPE_SYSTEM, "code": "author"}
                ]
            },
            "who": who,
        }
