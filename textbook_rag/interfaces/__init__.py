"""Public interface definitions for the pipeline's external collaborators.

Text extraction, embedding generation and the vector index are reached
only through the abstract base classes below.  Concrete adapters live in
``textbook_rag/providers/`` and are injected into the coordinator, so
tests can substitute in-memory fakes.

CONCRETE PROVIDER MAP:
    Interface            →  Concrete implementations (in textbook_rag/providers/)
    ─────────────────────────────────────────────────────────────────────
    ITextExtractor       →  PDFTextExtractor, PlainTextExtractor,
                            CompositeTextExtractor
    IEmbeddingProvider   →  OpenAIEmbeddingProvider,
                            SentenceTransformerEmbeddingProvider
    IVectorIndex         →  ChromaDBVectorIndex
"""

from textbook_rag.interfaces.embedding_provider import IEmbeddingProvider
from textbook_rag.interfaces.text_extractor import ITextExtractor
from textbook_rag.interfaces.vector_store_provider import IVectorIndex

__all__ = [
    "IEmbeddingProvider",
    "ITextExtractor",
    "IVectorIndex",
]
