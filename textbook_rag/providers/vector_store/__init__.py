"""Vector index implementations.

ChromaDB is the sole vector index implementation. It stores chunk embeddings
on disk (persistent) and supports cosine-similarity search with metadata
filtering. Data persists at CHROMADB_PERSIST_DIR (default: ./data/chromadb).

To swap ChromaDB for another vector database (Pinecone, Qdrant, Weaviate),
create a new class implementing IVectorIndex and wire it in
textbook_rag/cli/ingest.py.
"""

from textbook_rag.providers.vector_store.chromadb_provider import ChromaDBVectorIndex

__all__ = ["ChromaDBVectorIndex"]
