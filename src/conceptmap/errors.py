from __future__ import annotations


class ConceptMapError(RuntimeError):
    pass


class ExtractionFailure(ConceptMapError):
    """Text or concept extraction produced nothing usable; nothing was written."""


class MalformedExtraction(ExtractionFailure):
    """Extractor output parsed, but its top-level shape is wrong."""


class StoreFailure(ConceptMapError):
    """A graph store create call failed. Earlier creates in the batch stay committed."""
