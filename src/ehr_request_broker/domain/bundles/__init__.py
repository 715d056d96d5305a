"""Clinical-data bundle parsing, validation and provenance annotation."""

from .codec import JsonBundleCodec
from .models import Bundle, BundleEntry
from .provenance import ProvenanceBuilder

__all__ = ["Bundle", "BundleEntry", "JsonBundleCodec", "ProvenanceBuilder"]
