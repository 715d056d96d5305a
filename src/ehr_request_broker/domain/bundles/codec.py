"""JSON bundle codec backed by the pydantic bundle models."""

from typing import Optional, Union

from pydantic import ValidationError

from ..requests.exceptions import BundleParseError
from ..requests.interfaces import BundleCodec
from .models import Bundle
from .provenance import ProvenanceBuilder


class JsonBundleCodec(BundleCodec):
    """Parses, annotates and serializes JSON bundles.

    Parameters
    ----------
    provenance_builder : Optional[ProvenanceBuilder], default=None
        Builder used by ``annotate``. When None, annotation returns the
        bundle unchanged.
    """

    def __init__(self, provenance_builder: Optional[ProvenanceBuilder] = None):
        self.provenance_builder = provenance_builder

    def parse_and_validate(self, raw_payload: Union[str, bytes]) -> Bundle:
        """Parse ``raw_payload`` into a Bundle.

        Raises
        ------
        BundleParseError
            If the payload is empty, is not UTF-8 JSON, or is not a bundle
        """
        if isinstance(raw_payload, bytes):
            try:
                raw_payload = raw_payload.decode("utf-8")
            except UnicodeDecodeError as e:
                raise BundleParseError(f"Payload is not UTF-8: {e}") from e
        if raw_payload is None or not raw_payload.strip():
            raise BundleParseError("Empty payload")

        try:
            return Bundle.model_validate_json(raw_payload)
        except ValidationError as e:
            raise BundleParseError(_describe(e)) from e

    def annotate(self, bundle: Bundle) -> Bundle:
        if self.provenance_builder is None:
            return bundle
        return self.provenance_builder.annotate(bundle)

    def serialize(self, bundle: Bundle) -> str:
        """Serialize ``bundle`` to compact JSON.

        Notes
        -----
        Resources are held as plain JSON values, so decimals go through
        Python floats: ``1.50`` is written back as ``1.5`` and numbers
        outside the float range become ``null``. Partial results are
        stored as received and are not affected.
        """
        return bundle.model_dump_json(by_alias=True, exclude_none=True)


def _describe(error: ValidationError) -> str:
    problems = []
    for detail in error.errors():
        location = ".".join(str(part) for part in detail["loc"])
        if location:
            problems.append(f"{location}: {detail['msg']}")
        else:
            problems.append(detail["msg"])
    return "; ".join(problems)
