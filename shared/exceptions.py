"""Error taxonomy of the knowledge engine.

Chunking is total over its input domain and has no error type. Embedding
errors are local to a single chunk or query, storage errors wrap whatever the
persistence backend raised, and feed errors abort a whole sync run.
"""


class KnowledgeError(Exception):
    """Base class for all knowledge engine errors."""


##########################################
############### EMBEDDING ################
##########################################

class EmbeddingError(KnowledgeError):
    """Embedding generation failed for a single text."""


class EmptyTextError(EmbeddingError):
    """The text to embed is blank after trimming."""

    def __init__(self, message: str = "Cannot embed empty text.") -> None:
        super().__init__(message)


class ModelUnavailableError(EmbeddingError):
    """The embedding backend (model file or remote service) cannot be used."""


class NoTokensError(EmbeddingError):
    """Tokenization produced no term with a resolvable vector."""


##########################################
################ STORAGE #################
##########################################

class StorageError(KnowledgeError):
    """A knowledge store operation failed (I/O, serialization, constraint)."""


##########################################
################# FEED ###################
##########################################

class FeedFetchError(KnowledgeError):
    """The remote content feed could not be fetched or parsed."""


##########################################
############### DOCUMENTS ################
##########################################

class DocumentNotFoundError(KnowledgeError):
    """No document with the requested id exists in the store."""

    def __init__(self, document_id: str) -> None:
        super().__init__(f"Document '{document_id}' not found.")
        self.document_id = document_id


class DocumentImportError(KnowledgeError):
    """A file could not be imported as a knowledge document."""
