"""
Exception types raised by the compliance services
"""


class ComplianceError(Exception):
    """Base error for the compliance knowledge base"""


class OracleError(ComplianceError):
    """An external model call (embedding or explanation) failed"""


class KnowledgeStoreError(ComplianceError):
    """The knowledge base snapshot could not be read or written"""


class TextExtractionError(ComplianceError):
    """Text could not be extracted from an uploaded document"""


class IngestionError(ComplianceError):
    """A rules document could not be ingested into the knowledge base"""
